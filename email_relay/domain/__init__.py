"""Domain packages for the relay"""

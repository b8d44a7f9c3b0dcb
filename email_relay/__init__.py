"""Email relay - send-email function for the business manager app"""

__version__ = "1.0.0"

"""Activity domain - Audit log of notable user actions"""

from .router import router

__all__ = ["router"]

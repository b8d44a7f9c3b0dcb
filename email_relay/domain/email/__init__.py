"""Email domain - Validation, formatting and delivery of relayed emails"""

from .router import router

__all__ = ["router"]

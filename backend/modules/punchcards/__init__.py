# backend/modules/punchcards/__init__.py

"""
Digital punch cards: NFC tag taps, earning rules and reward codes.
"""

from .routes.punch_routes import router as punch_router
from .routes.customer_routes import router as customer_router
from .routes.business_routes import router as business_router
from .exceptions import PunchError, handle_punch_error
from .services.punch_engine import PunchEngine

__all__ = [
    "punch_router",
    "customer_router",
    "business_router",
    "PunchError",
    "handle_punch_error",
    "PunchEngine",
]

"""
Routers Package
===============

Routers are like the reception desk - they direct incoming requests
to the right place.
"""

from .sensors import router as sensors_router, set_store, get_store, get_owner, Unauthenticated
from .notifications import router as notifications_router

__all__ = [
    "sensors_router",
    "notifications_router",
    "set_store",
    "get_store",
    "get_owner",
    "Unauthenticated",
]

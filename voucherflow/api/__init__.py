"""Public API routers exposed by the FastAPI application."""

from . import admin, auth, health, vouchers

__all__ = [
    "admin",
    "auth",
    "health",
    "vouchers",
]

"""
API routers package

Handlers are plain functions: the ORM session and bcrypt block, so
FastAPI runs them in its threadpool.
"""
from skateguide.api import (
    system,
    auth,
    skateparks,
    favorites,
    users,
    admin
)

__all__ = [
    "system",
    "auth",
    "skateparks",
    "favorites",
    "users",
    "admin"
]

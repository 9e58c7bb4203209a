"""
API route handlers.
Public routers mount under the API prefix, admin routers under the admin prefix.
"""

from .properties import router as properties_router
from .home import router as home_router
from .admin_properties import router as admin_properties_router
from .admin_agents import router as admin_agents_router

__all__ = [
    "properties_router",
    "home_router",
    "admin_properties_router",
    "admin_agents_router",
]

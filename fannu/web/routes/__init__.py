from .public import router as public_router
from .creator import router as creator_router
from .admin import router as admin_router
from .api import router as api_router

__all__ = ["public_router", "creator_router", "admin_router", "api_router"]

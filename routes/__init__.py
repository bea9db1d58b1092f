"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.order_imports import router as order_imports_router

__all__ = [
    "order_imports_router",
]

"""Route aggregation.

All routers registered here get mounted in main.py. Authentication is
enforced per route through the get_current_user dependency rather than
per router, because open and protected pages share the same router.
"""

from fastapi import APIRouter

from vitrina.api.data import router as data_router
from vitrina.api.health import router as health_router
from vitrina.api.pages import router as pages_router

api_router = APIRouter()

api_router.include_router(pages_router, tags=["pages"])
api_router.include_router(data_router, tags=["data"])
api_router.include_router(health_router, tags=["health"])

"""
app/api/routers package marker.
"""

from app.api.routers.proxy_router import router as proxy_router
from app.api.routers.report_router import router as report_router

__all__ = [
    "proxy_router",
    "report_router",
]

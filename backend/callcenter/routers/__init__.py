"""API routers."""

from callcenter.routers.calls import router as calls_router
from callcenter.routers.geocode import router as geocode_router
from callcenter.routers.health import router as health_router
from callcenter.routers.stats import router as stats_router

__all__ = ["calls_router", "geocode_router", "health_router", "stats_router"]

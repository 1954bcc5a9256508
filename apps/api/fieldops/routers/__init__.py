"""API routers."""

from fieldops.routers.automations import router as automations_router
from fieldops.routers.internal import router as internal_router
from fieldops.routers.jobs import router as jobs_router
from fieldops.routers.tech import router as tech_router

__all__ = [
    "automations_router",
    "internal_router",
    "jobs_router",
    "tech_router",
]

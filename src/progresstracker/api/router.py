"""Main API router that aggregates all route modules."""

from fastapi import APIRouter, Depends

from progresstracker.api import auth
from progresstracker.api.deps import RateLimitDependency, require_api_key
from progresstracker.services.rate_limit import RateLimitType

api_router = APIRouter(
    dependencies=[
        Depends(RateLimitDependency(RateLimitType.API)),
        Depends(require_api_key),
    ]
)

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

from fastapi import APIRouter

from liftlab.api.v1 import attribution, experiments, health, marketing

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(experiments.router, prefix="/experiments", tags=["experiments"])
api_router.include_router(attribution.router, prefix="/attribution", tags=["attribution"])
api_router.include_router(marketing.router, prefix="/marketing", tags=["marketing"])

"""Master API router mounted at /api."""

from fastapi import APIRouter

from ratedeck.api.routes import az_destinations, health, jobs

api_router = APIRouter(prefix="/api")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(jobs.router)
api_router.include_router(az_destinations.router)

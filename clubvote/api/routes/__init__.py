"""Top level API router registration."""
from fastapi import APIRouter, FastAPI

from clubvote.api.routes import ballots, elections, health


def register_routes(application: FastAPI) -> None:
    """Register all API routers with the FastAPI application."""
    api_router = APIRouter(prefix="/api")

    api_router.include_router(health.router, tags=["health"])
    api_router.include_router(elections.router, tags=["elections"])
    api_router.include_router(ballots.router, tags=["ballots"])

    application.include_router(api_router)


__all__ = ["register_routes"]

"""
Module for registering routes in the FastAPI application.
"""

from fastapi import FastAPI

from app.analytics.router import router as analytics_router
from app.logging.router import router as log_router


def register_routes(app: FastAPI) -> None:
    """
    Registers all the routes for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance.
    """
    # Include API routes
    app.include_router(analytics_router, prefix="/api")
    app.include_router(log_router, prefix="/api")

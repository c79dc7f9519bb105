"""
Router package for the Workout Parser API.

This package contains all API routers organized by domain:
- health: Liveness and configuration status
- parse: Workout text parsing pipeline
"""

from api.routers.health import router as health_router
from api.routers.parse import router as parse_router

__all__ = [
    "health_router",
    "parse_router",
]

"""API route modules."""

from routes.health_routes import router as health_router
from routes.webhooks_routes import router as webhooks_router

__all__ = [
    "health_router",
    "webhooks_router",
]

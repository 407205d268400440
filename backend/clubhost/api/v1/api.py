"""API routes for the FastAPI application."""

from clubhost.api.router import TrailingSlashRouter
from clubhost.api.v1.endpoints import health, onboarding, webhooks

# Use our custom router that handles trailing slashes
api_router = TrailingSlashRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(onboarding.router, prefix="/onboarding", tags=["onboarding"])
api_router.include_router(webhooks.router, prefix="/webhook", tags=["webhooks"])

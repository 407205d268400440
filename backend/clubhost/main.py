"""Main module of the FastAPI application.

This module sets up the FastAPI application, the middleware to log incoming requests and
unhandled exceptions, and the resources that live as long as the process: the Stripe
client and the host plan scheduler.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from clubhost.api.middleware import (
    add_request_id,
    clubhost_exception_handler,
    exception_logging_middleware,
    external_service_exception_handler,
    log_requests,
    not_found_exception_handler,
    permission_exception_handler,
    validation_exception_handler,
)
from clubhost.api.router import TrailingSlashRouter
from clubhost.api.v1.api import api_router
from clubhost.billing.reconciler import HostPlanReconciler
from clubhost.core.config import settings
from clubhost.core.exceptions import (
    ClubhostException,
    ExternalServiceError,
    NotFoundException,
    PermissionException,
)
from clubhost.core.logging import logger
from clubhost.db.init_db import init_db
from clubhost.db.session import async_engine
from clubhost.integrations.stripe_client import StripeClient
from clubhost.platform.scheduler import HostPlanScheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Creates missing tables when asked to, builds the Stripe client and starts the host
    plan reconciler.
    """
    if settings.CREATE_TABLES_ON_STARTUP:
        await init_db(async_engine)

    app.state.stripe_client = StripeClient(settings) if settings.STRIPE_ENABLED else None
    if app.state.stripe_client is None:
        logger.info("Stripe is disabled, payment webhooks will be acknowledged and ignored")

    scheduler = None
    if settings.HOST_PLAN_RECONCILER_ENABLED:
        scheduler = HostPlanScheduler(HostPlanReconciler(app.state.stripe_client))
        await scheduler.start()

    yield

    if scheduler:
        await scheduler.stop()
    await async_engine.dispose()


# Create FastAPI app with our custom router and disable FastAPI's built-in redirects
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
    router=TrailingSlashRouter(),
    redirect_slashes=False,
)

app.include_router(api_router)

# Register middleware directly
app.middleware("http")(add_request_id)
app.middleware("http")(log_requests)
app.middleware("http")(exception_logging_middleware)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(PermissionException)(permission_exception_handler)
app.exception_handler(NotFoundException)(not_found_exception_handler)
app.exception_handler(ExternalServiceError)(external_service_exception_handler)
app.exception_handler(ClubhostException)(clubhost_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.app_url],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

"""Dependencies that are used in the API endpoints."""

import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request

from clubhost.core.config import settings
from clubhost.core.exceptions import ExternalServiceError
from clubhost.core.logging import ContextualLogger, logger
from clubhost.db.session import get_db  # noqa: F401
from clubhost.integrations.stripe_client import StripeClient


async def get_uid(request: Request) -> str:
    """Uid of the caller, as set by the upstream identity layer.

    Raises:
    ------
        HTTPException: 401 if the identity header is missing.
    """
    uid = request.headers.get(settings.AUTH_UID_HEADER)
    if not uid:
        raise HTTPException(status_code=401, detail="No valid authentication provided")
    return uid


async def get_logger(request: Request, uid: str = Depends(get_uid)) -> ContextualLogger:
    """Logger carrying the request id and the caller's uid."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return logger.with_context(request_id=request_id, uid=uid, context_base="api")


async def get_optional_stripe_client(request: Request) -> Optional[StripeClient]:
    """Stripe client built at startup, or None when billing is disabled."""
    return getattr(request.app.state, "stripe_client", None)


async def get_stripe_client(
    stripe_client: Optional[StripeClient] = Depends(get_optional_stripe_client),
) -> StripeClient:
    """Stripe client for endpoints that cannot work without billing.

    Raises:
    ------
        ExternalServiceError: If billing is disabled.
    """
    if stripe_client is None:
        raise ExternalServiceError(
            service_name="Billing",
            message="Billing is not enabled for this instance",
        )
    return stripe_client

"""Host onboarding endpoints."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import crud, schemas
from clubhost.api import deps
from clubhost.api.router import TrailingSlashRouter
from clubhost.billing.tier_policy import DEFAULT_TIER, get_tier_config
from clubhost.clubs.lifecycle import club_lifecycle
from clubhost.core.config import settings
from clubhost.core.exceptions import ExternalServiceError, NotFoundException
from clubhost.core.logging import ContextualLogger
from clubhost.integrations.stripe_client import StripeClient

router = TrailingSlashRouter()


@router.patch("/host/club", response_model=schemas.OnboardingState)
async def save_club_draft(
    draft: schemas.ClubDraftUpdate,
    db: AsyncSession = Depends(deps.get_db),
    uid: str = Depends(deps.get_uid),
    log: ContextualLogger = Depends(deps.get_logger),
) -> schemas.OnboardingState:
    """Save the club draft of the onboarding form.

    Args:
        draft: Fields to merge into the draft
        db: Database session
        uid: The caller
        log: Request logger

    Returns:
        The onboarding document after the write
    """
    onboarding = await club_lifecycle.save_club_draft(db, uid=uid, draft=draft, log=log)
    return schemas.OnboardingState(onboarding=onboarding)


@router.post("/host/activate", response_model=schemas.HostClub)
async def activate_host_club(
    db: AsyncSession = Depends(deps.get_db),
    uid: str = Depends(deps.get_uid),
    log: ContextualLogger = Depends(deps.get_logger),
) -> schemas.HostClub:
    """Create the drafted club, or reuse the one the draft points at.

    Host privileges are not granted here; they follow the payment.
    """
    return await club_lifecycle.create_or_reuse(db, uid=uid, log=log)


@router.post("/host/select-plan", response_model=schemas.SelectPlanResponse)
async def select_host_plan(
    db: AsyncSession = Depends(deps.get_db),
    uid: str = Depends(deps.get_uid),
    log: ContextualLogger = Depends(deps.get_logger),
    stripe_client: StripeClient = Depends(deps.get_stripe_client),
) -> schemas.SelectPlanResponse:
    """Start the subscription checkout for the default host plan.

    The club is created (or reused) first so the checkout metadata can carry its id. The
    webhook for the completed session activates the plan.

    Args:
        db: Database session
        uid: The caller
        log: Request logger
        stripe_client: Stripe client

    Returns:
        The checkout session and the club it is for

    Raises:
        ExternalServiceError: If no Stripe price is configured or Stripe fails
    """
    host_club = await club_lifecycle.create_or_reuse(db, uid=uid, log=log)

    user = await crud.user.get(db, uid)
    if not user:
        raise NotFoundException(f"User {uid} not found")

    config = get_tier_config(DEFAULT_TIER)
    price_id = stripe_client.get_price_for_tier(config.tier)
    if not price_id:
        raise ExternalServiceError(
            service_name="Stripe",
            message=f"No Stripe price configured for {config.tier.value}",
        )

    trial_days = max(settings.HOST_PLAN_TRIAL_DAYS, 0)
    has_trial = trial_days > 0
    metadata = {
        "uid": uid,
        "clubId": host_club.club_id,
        "type": "host_plan",
        "tier": config.tier.value,
        "priceId": price_id,
        "priceAud": str(config.monthly_price),
        "priceCurrency": config.currency,
        "hasTrial": "true" if has_trial else "false",
        "trialDays": str(trial_days),
        "phase": "trial" if has_trial else "active",
    }

    session = await stripe_client.create_host_plan_checkout_session(
        price_id=price_id,
        success_url=(
            f"{settings.app_url}/onboarding/host/welcome?session_id={{CHECKOUT_SESSION_ID}}"
        ),
        cancel_url=f"{settings.app_url}/onboarding/host/select-plan?resume=true",
        client_reference_id=host_club.club_id,
        metadata=metadata,
        trial_period_days=trial_days,
        customer_email=user.email,
    )
    log.with_context(club_id=host_club.club_id).info(
        f"Started host plan checkout {session.id} on {config.tier.value}"
    )

    return schemas.SelectPlanResponse(
        session_id=session.id,
        checkout_url=getattr(session, "url", None),
        club_id=host_club.club_id,
        slug=host_club.slug,
    )

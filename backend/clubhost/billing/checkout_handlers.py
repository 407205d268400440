"""Completed checkouts that are not host plans: download purchases and membership joins."""

from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import crud, schemas
from clubhost.billing.tier_policy import compute_platform_host_split
from clubhost.core.datetime_utils import from_unix_timestamp, utc_now
from clubhost.core.logging import ContextualLogger, logger
from clubhost.db.transaction import run_transaction
from clubhost.db.unit_of_work import UnitOfWork
from clubhost.integrations.stripe_client import stripe_field, stripe_id, stripe_metadata
from clubhost.models import Club, Payment


def _club_fee_percent(club: Optional[Club]) -> Optional[float]:
    if club is None:
        return None
    return (club.billing or {}).get("transactionFeePercent")


def _checkout_currency(session: Any) -> str:
    return (stripe_field(session, "currency") or "aud").upper()


async def record_download_purchase(
    db: AsyncSession, session: Any, log: Optional[ContextualLogger] = None
) -> Optional[Payment]:
    """Record a one-time download purchase.

    The payment row is keyed by the checkout session, so a redelivered event updates the
    existing row instead of adding a second one.

    Args:
        db: Database session.
        session: The completed checkout session.
        log: Logger carrying the event context.

    Returns:
        The payment row, or None when the session metadata is incomplete.
    """
    log = log or logger
    metadata = stripe_metadata(session)
    club_id = metadata.get("clubId")
    uid = metadata.get("uid")
    download_id = metadata.get("downloadId")
    session_id = stripe_field(session, "id")
    if not club_id or not uid or not download_id:
        log.warning(f"Missing download checkout metadata on session {session_id}")
        return None

    amount_cents = stripe_field(session, "amount_total", 0)
    payment_intent_id = stripe_id(stripe_field(session, "payment_intent"))

    async def _apply(uow: UnitOfWork) -> Payment:
        club = await crud.club.get(db, club_id)
        split = compute_platform_host_split(amount_cents, _club_fee_percent(club))
        fields = {
            "status": "succeeded",
            "amount_cents": amount_cents,
            "currency": _checkout_currency(session),
            "platform_fee_cents": split["platform_fee_amount"],
            "host_amount_cents": split["host_amount"],
            "stripe_payment_intent_id": payment_intent_id,
        }

        existing = await crud.payment.get_by_session(db, stripe_session_id=session_id)
        if existing:
            return await crud.payment.update(db, db_obj=existing, obj_in=fields, uow=uow)

        payment_in = schemas.PaymentCreate(
            uid=uid,
            club_id=club_id,
            download_id=download_id,
            type="download",
            stripe_session_id=session_id,
            **fields,
        )
        return await crud.payment.create(db, obj_in=payment_in, uow=uow)

    payment = await run_transaction(db, _apply, retry_on=(IntegrityError,), log=log)
    log.info(f"Recorded download purchase for user {uid} download {download_id}")
    return payment


async def record_membership_join(
    db: AsyncSession,
    session: Any,
    subscription: Any = None,
    log: Optional[ContextualLogger] = None,
) -> bool:
    """Add a paying or trialing member to a club.

    The member count only grows when the club was not already in the user's joined list,
    so a redelivered checkout does not count the member twice.

    Args:
        db: Database session.
        session: The completed checkout session.
        subscription: The membership subscription, when the checkout created one.
        log: Logger carrying the event context.

    Returns:
        True if the membership was recorded.
    """
    log = log or logger
    metadata = stripe_metadata(session)
    club_id = metadata.get("clubId")
    uid = metadata.get("uid")
    session_id = stripe_field(session, "id")
    if not club_id or not uid:
        log.warning(f"Missing club checkout metadata on session {session_id}")
        return False

    amount_cents = stripe_field(session, "amount_total", 0)
    subscription_id = stripe_id(stripe_field(session, "subscription"))
    is_trialing = stripe_field(subscription, "status") == "trialing"
    trial_ends_at = (
        from_unix_timestamp(stripe_field(subscription, "trial_end")) if is_trialing else None
    )

    async def _apply(uow: UnitOfWork) -> bool:
        club = await crud.club.get(db, club_id)
        if club is None:
            log.warning(f"Checkout {session_id} references missing club {club_id}")
            return False

        user = await crud.user.get(db, uid)
        if user is None:
            await crud.user.create(
                db,
                obj_in={"id": uid, "roles": {"user": True}, "clubs_joined": [club_id]},
                uow=uow,
            )
            was_member = False
        else:
            clubs_joined = list(user.clubs_joined or [])
            was_member = club_id in clubs_joined
            if not was_member:
                clubs_joined.append(club_id)
                await crud.user.update(
                    db, db_obj=user, obj_in={"clubs_joined": clubs_joined}, uow=uow
                )

        if not was_member:
            await crud.club.update(
                db, db_obj=club, obj_in={"members_count": (club.members_count or 0) + 1}, uow=uow
            )

        status = (
            schemas.MembershipStatus.TRIALING if is_trialing else schemas.MembershipStatus.ACTIVE
        )
        membership_fields = {
            "status": status.value,
            "is_trialing": is_trialing,
            "trial_ends_at": trial_ends_at,
            "stripe_subscription_id": subscription_id,
            "last_payment_type": "trial_start" if is_trialing else "subscription",
            "last_payment_at": utc_now(),
            "consecutive_failed_payments": 0,
        }
        membership = await crud.club_membership.get_by_member(db, uid=uid, club_id=club_id)
        if membership:
            await crud.club_membership.update(
                db, db_obj=membership, obj_in=membership_fields, uow=uow
            )
        else:
            await crud.club_membership.create(
                db, obj_in={"uid": uid, "club_id": club_id, **membership_fields}, uow=uow
            )

        if not await crud.payment.get_by_session(db, stripe_session_id=session_id):
            payment_fields: dict[str, Any] = {
                "uid": uid,
                "club_id": club_id,
                "currency": _checkout_currency(session),
                "stripe_session_id": session_id,
                "stripe_payment_intent_id": stripe_id(stripe_field(session, "payment_intent")),
            }
            if amount_cents > 0:
                split = compute_platform_host_split(amount_cents, _club_fee_percent(club))
                payment_fields.update(
                    type="subscription",
                    status="succeeded",
                    amount_cents=amount_cents,
                    platform_fee_cents=split["platform_fee_amount"],
                    host_amount_cents=split["host_amount"],
                )
            else:
                payment_fields.update(type="trial_start", status="trialing", amount_cents=0)
            await crud.payment.create(
                db, obj_in=schemas.PaymentCreate(**payment_fields), uow=uow
            )

        return True

    recorded = await run_transaction(db, _apply, retry_on=(IntegrityError,), log=log)
    if recorded:
        log.info(f"Added user {uid} to club {club_id}")
    return recorded

"""Membership trial resolution."""

from datetime import datetime
from typing import Optional

from clubhost.core.datetime_utils import ensure_utc, utc_now
from clubhost.models import ClubMembership


def is_trial_active(membership: Optional[ClubMembership], now: Optional[datetime] = None) -> bool:
    """Whether a member's trial is still running.

    A trial is active only while the membership is flagged as trialing and its end lies
    strictly in the future. Naive datetimes are read as UTC.

    Args:
        membership: The membership row, or None for a non-member.
        now: Reference time, defaults to the current time.

    Returns:
        True if the trial is active.
    """
    if membership is None or not membership.is_trialing:
        return False
    trial_ends_at = ensure_utc(membership.trial_ends_at)
    if trial_ends_at is None:
        return False
    return trial_ends_at > ensure_utc(now or utc_now())

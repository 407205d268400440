"""Pure business rules for host billing tiers.

This module holds the tier table and the threshold arithmetic used by activation,
cancellation and the periodic reconciler. It has no database or Stripe dependencies.
"""

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Mapping, Optional

from clubhost.core.exceptions import UnknownTierError

# Largest integer JSON clients read exactly; stands in for "no limit".
UNBOUNDED = 2**53 - 1


class HostBillingTier(str, Enum):
    """Host plan tiers."""

    TIER_A = "tier_a"
    TIER_B = "tier_b"
    TIER_C = "tier_c"


DEFAULT_TIER = HostBillingTier.TIER_A

HOST_PLAN_TRIAL_DAYS = 14
HOST_PLAN_WARNING_HOURS = 48


@dataclass(frozen=True)
class SoftLimitGrace:
    """Grace periods around soft limit breaches, in days."""

    pre_upgrade_check_days: int = 7
    auto_upgrade_days: int = 14
    downgrade_cooldown_days: int = 30


HOST_PLAN_SOFT_LIMIT_GRACE = SoftLimitGrace()


class TierRank(Enum):
    """Tier hierarchy for upgrade/downgrade decisions."""

    TIER_A = 0
    TIER_B = 1
    TIER_C = 2

    @classmethod
    def from_tier(cls, tier: HostBillingTier) -> "TierRank":
        """Convert HostBillingTier to TierRank."""
        return cls[HostBillingTier(tier).name]


class ChangeType(Enum):
    """Type of tier change."""

    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    SAME = "same"


@dataclass(frozen=True)
class SoftLimits:
    """Soft usage limits of a tier."""

    paying_members: int
    video_uploads: int
    bandwidth_gb: int

    def to_document(self) -> dict:
        """Render the limits the way they are stored in ``club.billing.softLimits``."""
        return {
            "payingMembers": self.paying_members,
            "videoUploads": self.video_uploads,
            "bandwidthGb": self.bandwidth_gb,
        }


@dataclass(frozen=True)
class TierConfig:
    """Parameters of a billing tier."""

    tier: HostBillingTier
    monthly_price: float
    transaction_fee_percent: float
    included_paying_members: int
    soft_limits: SoftLimits
    upgrade_members_threshold: int
    downgrade_members_threshold: int
    currency: str = "AUD"

    def as_dict(self) -> dict:
        """Plain dict view, with the tier as its string id."""
        data = asdict(self)
        data["tier"] = self.tier.value
        return data


# Tier configuration
HOST_BILLING_TIERS: Mapping[HostBillingTier, TierConfig] = {
    HostBillingTier.TIER_A: TierConfig(
        tier=HostBillingTier.TIER_A,
        monthly_price=49.99,
        transaction_fee_percent=5,
        included_paying_members=100,
        soft_limits=SoftLimits(paying_members=99, video_uploads=50, bandwidth_gb=300),
        upgrade_members_threshold=100,
        downgrade_members_threshold=100,
    ),
    HostBillingTier.TIER_B: TierConfig(
        tier=HostBillingTier.TIER_B,
        monthly_price=99,
        transaction_fee_percent=3,
        included_paying_members=500,
        soft_limits=SoftLimits(paying_members=499, video_uploads=200, bandwidth_gb=2000),
        upgrade_members_threshold=500,
        downgrade_members_threshold=100,
    ),
    HostBillingTier.TIER_C: TierConfig(
        tier=HostBillingTier.TIER_C,
        monthly_price=199,
        transaction_fee_percent=2,
        included_paying_members=UNBOUNDED,
        soft_limits=SoftLimits(paying_members=UNBOUNDED, video_uploads=1000, bandwidth_gb=10000),
        upgrade_members_threshold=UNBOUNDED,
        downgrade_members_threshold=500,
    ),
}

DEFAULT_PLATFORM_FEE_PERCENT = 5


def parse_tier(tier: Optional[str]) -> HostBillingTier:
    """Parse a tier id, raising ``UnknownTierError`` for anything outside the table."""
    try:
        return HostBillingTier(tier)
    except ValueError as e:
        raise UnknownTierError(str(tier)) from e


def get_tier_config(tier: Optional[str] = None) -> TierConfig:
    """Return the configuration of a tier.

    ``None`` resolves to the default tier. Any other value must be a known tier id.

    Raises:
        UnknownTierError: If ``tier`` is not a known tier id.
    """
    if tier is None:
        return HOST_BILLING_TIERS[DEFAULT_TIER]
    return HOST_BILLING_TIERS[parse_tier(tier)]


def resolve_tier(tier: Optional[str]) -> HostBillingTier:
    """Lenient tier resolution for data coming from outside the process.

    Webhook metadata and stored documents may carry missing or stale tier ids; those
    fall back to the default tier instead of failing the delivery.
    """
    try:
        return HostBillingTier(tier)
    except ValueError:
        return DEFAULT_TIER


def compare_tiers(current: str, target: str) -> ChangeType:
    """Compare two tiers to determine change type."""
    current_rank = TierRank.from_tier(parse_tier(current))
    target_rank = TierRank.from_tier(parse_tier(target))

    if target_rank.value > current_rank.value:
        return ChangeType.UPGRADE
    elif target_rank.value < current_rank.value:
        return ChangeType.DOWNGRADE
    else:
        return ChangeType.SAME


def get_next_tier(tier: str) -> Optional[HostBillingTier]:
    """Tier one step above ``tier``, or None at the top of the table."""
    rank = TierRank.from_tier(parse_tier(tier))
    if rank.value + 1 >= len(TierRank):
        return None
    return HostBillingTier[TierRank(rank.value + 1).name]


def get_previous_tier(tier: str) -> Optional[HostBillingTier]:
    """Tier one step below ``tier``, or None at the bottom of the table."""
    rank = TierRank.from_tier(parse_tier(tier))
    if rank.value == 0:
        return None
    return HostBillingTier[TierRank(rank.value - 1).name]


def is_over_upgrade_threshold(tier: str, members_count: int) -> bool:
    """Whether a club has grown past its tier and a larger tier exists."""
    config = get_tier_config(tier)
    return get_next_tier(tier) is not None and members_count >= config.upgrade_members_threshold


def is_below_downgrade_threshold(tier: str, members_count: int) -> bool:
    """Whether a club is small enough to qualify for a downgrade."""
    return members_count < get_tier_config(tier).downgrade_members_threshold


def tier_for_price_id(
    price_id: Optional[str], price_ids: Mapping[HostBillingTier, Optional[str]]
) -> Optional[HostBillingTier]:
    """Reverse lookup of a tier from a Stripe price id."""
    if not price_id:
        return None
    for tier, configured in price_ids.items():
        if configured and configured == price_id:
            return tier
    return None


def compute_platform_host_split(
    amount_cents: int, transaction_fee_percent: Optional[float] = None
) -> dict:
    """Split a member payment between the platform and the host.

    The platform fee is rounded half up to whole cents and the host receives the remainder, so
    both parts always add up to ``amount_cents``.

    Args:
        amount_cents: Gross payment amount in cents.
        transaction_fee_percent: The club's fee, defaults to the platform default.

    Returns:
        Dict with ``platform_fee_percent``, ``platform_fee_amount`` and ``host_amount``.
    """
    fee_percent = (
        transaction_fee_percent
        if isinstance(transaction_fee_percent, (int, float))
        else DEFAULT_PLATFORM_FEE_PERCENT
    )
    platform_fee_amount = int(
        (Decimal(amount_cents) * Decimal(str(fee_percent)) / 100).quantize(
            Decimal(1), rounding=ROUND_HALF_UP
        )
    )
    return {
        "platform_fee_percent": fee_percent,
        "platform_fee_amount": platform_fee_amount,
        "host_amount": amount_cents - platform_fee_amount,
    }


def tier_billing_fields(tier: str) -> dict:
    """Club row fields and ``billing`` paths derived from a tier's configuration.

    Shared by activation, cancellation and club creation so the copied parameters always
    match the tier table.
    """
    config = get_tier_config(tier)
    return {
        "plan_type": config.tier.value,
        "billing_tier": config.tier.value,
        "max_members": config.included_paying_members,
        "billing": {
            "tier": config.tier.value,
            "transactionFeePercent": config.transaction_fee_percent,
            "softLimits": config.soft_limits.to_document(),
        },
    }

# flake8: noqa: F401
"""Schemas for the application."""

from .billing_event import BillingEvent, BillingEventCreate
from .club import Club, ClubCreate
from .club_membership import ClubMembership, ClubMembershipCreate, MembershipStatus
from .host_plan import HostPlanPhase, HostPlanTransition, HostPlanTransitionKind
from .onboarding import ClubDraftUpdate, HostClub, OnboardingState, SelectPlanResponse
from .payment import PaymentCreate
from .user import User, UserCreate
from .webhook import ProcessedWebhookEventCreate, WebhookClaimOutcome, WebhookClaimStatus

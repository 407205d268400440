"""CRUD operations for the application."""

from .crud_billing_event import billing_event
from .crud_club import club
from .crud_club_membership import club_membership
from .crud_payment import payment
from .crud_processed_webhook_event import processed_webhook_event
from .crud_user import user

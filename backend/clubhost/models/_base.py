"""Base models for the application."""

import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import DeclarativeBase

from clubhost.core.datetime_utils import utc_now_naive


def generate_id() -> str:
    """Generate an opaque string identifier for a new row."""
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    """Base class for all models.

    Identifiers are strings: user ids come from the identity provider, every other id is
    generated on insert.
    """

    id = Column(String(128), primary_key=True, default=generate_id, nullable=False)
    created_at = Column(DateTime, default=utc_now_naive, nullable=False)
    modified_at = Column(DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False)

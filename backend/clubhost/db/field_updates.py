"""Dotted-path updates for JSON document columns.

User and club rows keep their nested maps (``roles``, ``host_status``, ``onboarding``,
``billing``) in JSON columns. Writers describe changes as a flat mapping of dotted paths,
for example ``{"hostStatus.stripeSubscriptionId": DELETE_FIELD}``, and
``apply_field_updates`` produces the new document. Removing a key really removes it; a
deleted field is never stored as ``null``.
"""

import copy
from datetime import datetime
from typing import Any, Mapping, Optional

from clubhost.core.datetime_utils import to_iso, utc_now


class _FieldMarker:
    """Marker value understood by ``apply_field_updates``."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return self.name

    # Markers are compared by identity, so copies must be the same object
    def __copy__(self) -> "_FieldMarker":
        return self

    def __deepcopy__(self, memo: dict) -> "_FieldMarker":
        return self


DELETE_FIELD = _FieldMarker("DELETE_FIELD")
SERVER_TIMESTAMP = _FieldMarker("SERVER_TIMESTAMP")


def apply_field_updates(
    document: Optional[Mapping[str, Any]],
    updates: Mapping[str, Any],
    *,
    now: Optional[datetime] = None,
) -> dict:
    """Return a copy of ``document`` with the dotted-path ``updates`` applied.

    Args:
        document: The current JSON document, ``None`` is treated as empty.
        updates: Mapping of dotted path to new value. ``DELETE_FIELD`` removes the key,
            ``SERVER_TIMESTAMP`` stores the commit-time clock as an ISO string.
        now: Clock used for ``SERVER_TIMESTAMP``; defaults to the current UTC time.

    Returns:
        A new dict. The input document is never mutated, so the result can be assigned
        back to a JSON column and picked up by the ORM as a change.
    """
    result = copy.deepcopy(dict(document or {}))
    timestamp = to_iso(now or utc_now())

    for path, value in updates.items():
        keys = path.split(".")
        target: Optional[dict] = result
        for key in keys[:-1]:
            child = target.get(key)
            if not isinstance(child, dict):
                if value is DELETE_FIELD:
                    target = None
                    break
                child = {}
                target[key] = child
            target = child

        if target is None:
            continue

        leaf = keys[-1]
        if value is DELETE_FIELD:
            target.pop(leaf, None)
        elif value is SERVER_TIMESTAMP:
            target[leaf] = timestamp
        else:
            target[leaf] = _resolve_markers(copy.deepcopy(value), timestamp)

    return result


def _resolve_markers(value: Any, timestamp: str) -> Any:
    """Resolve markers nested inside a whole-map value."""
    if value is SERVER_TIMESTAMP:
        return timestamp
    if isinstance(value, dict):
        return {
            key: _resolve_markers(item, timestamp)
            for key, item in value.items()
            if item is not DELETE_FIELD
        }
    return value

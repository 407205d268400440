"""Club slug derivation."""

import re
import unicodedata
from typing import Awaitable, Callable, Optional

from clubhost.core.exceptions import SlugUnavailableError

MAX_SLUG_LENGTH = 60
MAX_SLUG_ATTEMPTS = 20
FALLBACK_SLUG = "club"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: Optional[str], fallback: str = FALLBACK_SLUG) -> str:
    """Turn a club name into a URL slug.

    Accents are stripped, runs of anything but ascii letters and digits become a single
    dash, and the result is cut to ``MAX_SLUG_LENGTH`` characters.
    """
    normalized = unicodedata.normalize("NFKD", value or "")
    ascii_only = normalized.encode("ascii", "ignore").decode("ascii").lower()
    slug = _NON_ALNUM.sub("-", ascii_only).strip("-")
    slug = slug[:MAX_SLUG_LENGTH].rstrip("-")
    return slug or fallback


def slug_candidates(base: str, attempts: int = MAX_SLUG_ATTEMPTS):
    """Yield ``base``, ``base-2``, ``base-3``... up to ``attempts`` candidates."""
    yield base
    for n in range(2, attempts + 1):
        suffix = f"-{n}"
        yield f"{base[: MAX_SLUG_LENGTH - len(suffix)].rstrip('-')}{suffix}"


async def find_available_slug(
    name: Optional[str],
    is_taken: Callable[[str], Awaitable[bool]],
    attempts: int = MAX_SLUG_ATTEMPTS,
) -> str:
    """First free slug for ``name``.

    ``is_taken`` runs inside the caller's transaction, so the check and the insert that
    follows it see the same snapshot; the unique index on ``club.slug`` catches the rest.

    Raises:
        SlugUnavailableError: If every candidate is taken.
    """
    base = slugify(name)
    for candidate in slug_candidates(base, attempts):
        if not await is_taken(candidate):
            return candidate
    raise SlugUnavailableError(base, attempts)

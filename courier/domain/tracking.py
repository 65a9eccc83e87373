"""Tracking number helpers."""
from __future__ import annotations

import re
import secrets
import string
from typing import Callable, Iterable

TRACKING_ALPHABET = string.ascii_uppercase + string.digits
TRACKING_LENGTH = 8
TRACKING_PATTERN = re.compile(r"[A-Z0-9]{8}")


def generate_tracking_number() -> str:
    """Draw TRACKING_LENGTH symbols uniformly from [A-Z0-9]."""
    return "".join(secrets.choice(TRACKING_ALPHABET) for _ in range(TRACKING_LENGTH))


def allocate_tracking_number(
    taken: Iterable[str],
    generate: Callable[[], str] = generate_tracking_number,
) -> str:
    """Generate until the candidate is not in ``taken``. There is no attempt cap."""
    existing = set(taken)
    candidate = generate()
    while candidate in existing:
        candidate = generate()
    return candidate


def normalize_tracking_number(value: str | None) -> str:
    """Callers look packages up case-insensitively by uppercasing first."""
    return (value or "").strip().upper()


def is_valid_tracking_number(value: str | None) -> bool:
    if not value:
        return False
    return bool(TRACKING_PATTERN.fullmatch(value))

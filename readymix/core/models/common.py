"""
Shared helpers for the domain models.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime

from readymix.core.errors import InvalidArgumentError

PROGRESS_MIN = 0
PROGRESS_MAX = 100


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def clamp_progress(value: float) -> int:
    """Clamp a progress percentage into [0, 100].

    Any number is accepted, infinities included; fractions are truncated.

    Raises:
        InvalidArgumentError: If ``value`` is not a number, or is NaN.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(f"Progress must be a number, got {value!r}")
    if math.isnan(value):
        raise InvalidArgumentError("Progress must not be NaN")
    return int(max(PROGRESS_MIN, min(PROGRESS_MAX, value)))

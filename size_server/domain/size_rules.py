"""Size, bounds and boon rules that are independent from HTTP and locking.

Rule of thumb:
- OK: comparisons, widening, boon evaluation, record retention.
- Not OK: datetime.now(), random draws, touching shared maps.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from size_server.errors import BoundsInverted
from size_server.models.schema_models import (
    Boon,
    BoonKind,
    BoonLength,
    Bounds,
    LastChecked,
)

DEFAULT_LOWER = 1
DEFAULT_UPPER = 100


def elapsed_seconds(since: datetime, now: datetime) -> int:
    """Whole seconds between two instants, truncated toward zero."""
    return int((now - since).total_seconds())


def within_window(since: datetime, window_seconds: int, now: datetime) -> bool:
    return elapsed_seconds(since, now) <= window_seconds


def boon_length_active(length: BoonLength, now: datetime) -> bool:
    return within_window(length.anchor, length.length_seconds, now)


def build_bounds(upper: Optional[int] = None, lower: Optional[int] = None) -> Bounds:
    """Build replacement bounds, each side defaulting independently.

    Raises:
        BoundsInverted: the resulting lower bound is above the upper bound
    """
    upper = DEFAULT_UPPER if upper is None else upper
    lower = DEFAULT_LOWER if lower is None else lower
    if lower > upper:
        raise BoundsInverted(lower, upper)
    return Bounds(lower=lower, upper=upper)


def widen_bounds(bounds: Bounds, drawn: int) -> Bounds:
    """Return the bounds after a draw of ``drawn``.

    A draw on the lower edge pushes lower down by one, a draw on the upper
    edge pushes upper up by one. With a single-value range both happen.
    """
    lower = bounds.lower - 1 if drawn == bounds.lower else bounds.lower
    upper = bounds.upper + 1 if drawn == bounds.upper else bounds.upper
    return Bounds(lower=lower, upper=upper)


def effective_value(boon: Boon, bounds: Bounds) -> int:
    """Value a boon forces, read against the bounds current at resolution."""
    if boon.fixed_value is not None:
        return boon.fixed_value
    if boon.kind == BoonKind.blessed:
        return bounds.upper
    return bounds.lower


# ==============================================================================
# ==== Boon evaluation =========================================================
# ==============================================================================


@dataclass(frozen=True)
class NoBoon:
    pass


@dataclass(frozen=True)
class OneShotConsumed:
    value: int


@dataclass(frozen=True)
class TimedActive:
    value: int


@dataclass(frozen=True)
class TimedExpired:
    pass


BoonOutcome = Union[NoBoon, OneShotConsumed, TimedActive, TimedExpired]


def evaluate_boon(boon: Optional[Boon], bounds: Bounds, now: datetime) -> BoonOutcome:
    """Decide what a boon does to one request without changing anything.

    The caller removes the boon from its slot for ``OneShotConsumed`` and
    ``TimedExpired``.
    """
    if boon is None:
        return NoBoon()
    if boon.duration is None:
        return OneShotConsumed(effective_value(boon, bounds))
    if boon_length_active(boon.duration, now):
        return TimedActive(effective_value(boon, bounds))
    return TimedExpired()


def outcome_removes_boon(outcome: BoonOutcome) -> bool:
    return isinstance(outcome, (OneShotConsumed, TimedExpired))


# ==============================================================================
# ==== Rate limit records ======================================================
# ==============================================================================


def record_is_fresh(record: LastChecked, limit_seconds: Optional[int], now: datetime) -> bool:
    """True when ``limit_seconds`` was given and the record is still inside it."""
    if limit_seconds is None:
        return False
    return within_window(record.timestamp, limit_seconds, now)


def record_worth_keeping(record: LastChecked, now: datetime) -> bool:
    """Only records that can still suppress a recomputation survive a sweep."""
    return record_is_fresh(record, record.limit_seconds, now)

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from size_server.domain import size_rules
from size_server.domain.size_rules import (
    NoBoon,
    OneShotConsumed,
    TimedActive,
    TimedExpired,
)
from size_server.errors import BoundsInverted
from size_server.models.schema_models import (
    Boon,
    BoonKind,
    BoonLength,
    Bounds,
    Identity,
    LastChecked,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
STREAMER = Identity(id="1", display_name="Streamer")


def test_identity_equality_ignores_display_name() -> None:
    a = Identity(id="42", display_name="Old")
    b = Identity(id="42", display_name="New")

    assert a == b
    assert hash(a) == hash(b)
    assert {a: 1}[b] == 1
    assert str(b) == "New"
    assert a != Identity(id="43", display_name="Old")


def test_elapsed_seconds_truncates() -> None:
    assert size_rules.elapsed_seconds(NOW, NOW + timedelta(seconds=60.9)) == 60
    assert size_rules.within_window(NOW, 60, NOW + timedelta(seconds=60.9))
    assert not size_rules.within_window(NOW, 60, NOW + timedelta(seconds=61))


def test_build_bounds_defaults_each_side_independently() -> None:
    assert size_rules.build_bounds() == Bounds(lower=1, upper=100)
    assert size_rules.build_bounds(upper=500) == Bounds(lower=1, upper=500)
    assert size_rules.build_bounds(lower=-5) == Bounds(lower=-5, upper=100)
    assert size_rules.build_bounds(upper=7, lower=7) == Bounds(lower=7, upper=7)


def test_build_bounds_rejects_inverted() -> None:
    with pytest.raises(BoundsInverted) as excinfo:
        size_rules.build_bounds(upper=10, lower=50)
    assert excinfo.value.lower == 50
    assert excinfo.value.upper == 10

    # a lone lower above the default upper is inverted too
    with pytest.raises(BoundsInverted):
        size_rules.build_bounds(lower=101)


@pytest.mark.parametrize(
    "drawn, expected",
    [
        (1, Bounds(lower=0, upper=100)),
        (100, Bounds(lower=1, upper=101)),
        (50, Bounds(lower=1, upper=100)),
    ],
)
def test_widen_bounds(drawn: int, expected: Bounds) -> None:
    assert size_rules.widen_bounds(Bounds(), drawn) == expected


def test_widen_degenerate_range_moves_both_ends() -> None:
    assert size_rules.widen_bounds(Bounds(lower=5, upper=5), 5) == Bounds(lower=4, upper=6)


def test_effective_value_uses_bounds_given_at_evaluation() -> None:
    blessed = Boon(kind=BoonKind.blessed)
    cursed = Boon(kind=BoonKind.cursed)
    fixed = Boon(kind=BoonKind.cursed, fixed_value=69)

    assert size_rules.effective_value(blessed, Bounds(lower=-3, upper=250)) == 250
    assert size_rules.effective_value(cursed, Bounds(lower=-3, upper=250)) == -3
    assert size_rules.effective_value(fixed, Bounds(lower=-3, upper=250)) == 69


def test_evaluate_boon_outcomes() -> None:
    bounds = Bounds(lower=1, upper=100)
    timed = Boon(
        kind=BoonKind.blessed,
        duration=BoonLength(anchor=NOW, length_seconds=30),
    )

    assert size_rules.evaluate_boon(None, bounds, NOW) == NoBoon()
    assert size_rules.evaluate_boon(Boon(kind=BoonKind.blessed), bounds, NOW) == OneShotConsumed(100)
    assert size_rules.evaluate_boon(timed, bounds, NOW + timedelta(seconds=30)) == TimedActive(100)
    assert size_rules.evaluate_boon(timed, bounds, NOW + timedelta(seconds=31)) == TimedExpired()


def test_evaluate_boon_negative_ttl_is_already_expired() -> None:
    boon = Boon(kind=BoonKind.cursed, duration=BoonLength(anchor=NOW, length_seconds=-1))

    assert size_rules.evaluate_boon(boon, Bounds(), NOW) == TimedExpired()


def test_outcome_removes_boon() -> None:
    assert size_rules.outcome_removes_boon(OneShotConsumed(1))
    assert size_rules.outcome_removes_boon(TimedExpired())
    assert not size_rules.outcome_removes_boon(TimedActive(1))
    assert not size_rules.outcome_removes_boon(NoBoon())


def test_record_freshness() -> None:
    record = LastChecked(streamer=STREAMER, timestamp=NOW, limit_seconds=60, cached_size=12)

    assert not size_rules.record_is_fresh(record, None, NOW)
    assert size_rules.record_is_fresh(record, 60, NOW + timedelta(seconds=60))
    assert not size_rules.record_is_fresh(record, 60, NOW + timedelta(seconds=61))

    assert size_rules.record_worth_keeping(record, NOW + timedelta(seconds=30))
    assert not size_rules.record_worth_keeping(record, NOW + timedelta(seconds=90))
    no_limit = LastChecked(streamer=STREAMER, timestamp=NOW, cached_size=12)
    assert not size_rules.record_worth_keeping(no_limit, NOW)

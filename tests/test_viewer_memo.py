from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from size_server.models.schema_models import Identity
from size_server.services.viewer_memo import MustRecompute, UseCached, ViewerMemoStore


def test_first_check_registers_record(clock, viewer, streamer) -> None:
    store = ViewerMemoStore(clock)

    decision = store.check_or_register(viewer, streamer, 60)

    assert isinstance(decision, MustRecompute)
    [(_, [record])] = store.snapshot()
    assert record.streamer == streamer
    assert record.cached_size == 0
    assert record.limit_seconds == 60
    assert record.timestamp == clock.now


def test_cached_within_limit(clock, viewer, streamer) -> None:
    store = ViewerMemoStore(clock)
    store.check_or_register(viewer, streamer, 60).store(33)
    registered_at = clock.now

    clock.advance(60)
    decision = store.check_or_register(viewer, streamer, 60)

    assert decision == UseCached(33)
    [(_, records)] = store.snapshot()
    assert records[0].timestamp == registered_at


def test_limit_elapsed_recomputes_and_updates_record(clock, viewer, streamer) -> None:
    store = ViewerMemoStore(clock)
    store.check_or_register(viewer, streamer, 60).store(33)

    clock.advance(61)
    decision = store.check_or_register(viewer, streamer, 60)

    assert isinstance(decision, MustRecompute)
    decision.store(12)
    [(_, records)] = store.snapshot()
    assert len(records) == 1
    assert records[0].timestamp == clock.now
    assert records[0].cached_size == 12


def test_no_limit_always_recomputes_and_clears_limit(clock, viewer, streamer) -> None:
    store = ViewerMemoStore(clock)
    store.check_or_register(viewer, streamer, 600).store(33)

    decision = store.check_or_register(viewer, streamer)

    assert isinstance(decision, MustRecompute)
    [(_, [record])] = store.snapshot()
    assert record.limit_seconds is None
    assert record.cached_size == 33


def test_later_limit_replaces_earlier(clock, viewer, streamer) -> None:
    store = ViewerMemoStore(clock)
    store.check_or_register(viewer, streamer, 5).store(1)

    clock.advance(10)
    store.check_or_register(viewer, streamer, 600).store(2)
    clock.advance(100)

    assert store.check_or_register(viewer, streamer, 600) == UseCached(2)


def test_records_are_per_streamer(clock, viewer, streamer, other_streamer) -> None:
    store = ViewerMemoStore(clock)
    store.check_or_register(viewer, streamer, 60).store(10)

    decision = store.check_or_register(viewer, other_streamer, 60)

    assert isinstance(decision, MustRecompute)
    [(_, records)] = store.snapshot()
    assert [r.streamer for r in records] == [streamer, other_streamer]


def test_sweep_rules(clock, streamer, other_streamer) -> None:
    store = ViewerMemoStore(clock)
    no_limit = Identity(id="1", display_name="NoLimit")
    live = Identity(id="2", display_name="Live")
    stale = Identity(id="3", display_name="Stale")
    mixed = Identity(id="4", display_name="Mixed")

    store.check_or_register(no_limit, streamer)
    store.check_or_register(stale, streamer, 60)
    store.check_or_register(mixed, streamer, 60)
    clock.advance(60)
    store.check_or_register(live, streamer, 60)
    store.check_or_register(mixed, other_streamer)
    clock.advance(30)

    removed = store.sweep()

    rows = dict(store.snapshot())
    assert removed == 3
    assert set(rows) == {live}
    assert rows[live][0].limit_seconds == 60


def test_sweep_keeps_live_record_of_mixed_viewer(clock, viewer, streamer, other_streamer) -> None:
    store = ViewerMemoStore(clock)
    store.check_or_register(viewer, streamer, 60)
    store.check_or_register(viewer, other_streamer)

    store.sweep()

    [(row_viewer, records)] = store.snapshot()
    assert row_viewer == viewer
    assert [r.streamer for r in records] == [streamer]


def test_swept_viewer_starts_fresh(clock, viewer, streamer) -> None:
    store = ViewerMemoStore(clock)
    store.check_or_register(viewer, streamer).store(5)
    store.sweep()

    decision = store.check_or_register(viewer, streamer, 60)

    assert isinstance(decision, MustRecompute)
    [(_, [record])] = store.snapshot()
    assert record.cached_size == 0


def test_decide_writes_nothing_until_stored(clock, viewer, streamer, other_streamer) -> None:
    store = ViewerMemoStore(clock)
    store.check_or_register(viewer, streamer, 60).store(33)
    registered_at = clock.now
    clock.advance(61)

    with store.row(viewer) as records:
        stale = store.decide(records, viewer, streamer, 60, clock.now)
        fresh = store.decide(records, viewer, other_streamer, 60, clock.now)

    assert isinstance(stale, MustRecompute)
    assert isinstance(fresh, MustRecompute)
    [(_, [record])] = store.snapshot()
    assert record.timestamp == registered_at
    assert record.cached_size == 33

    with store.row(viewer) as records:
        fresh.store(8)
    rows = dict(store.snapshot())
    assert [(r.streamer, r.cached_size) for r in rows[viewer]] == [(streamer, 33), (other_streamer, 8)]


def test_sweep_waits_on_one_row_only(clock, streamer) -> None:
    store = ViewerMemoStore(clock)
    held = Identity(id="1", display_name="Held")
    busy = Identity(id="2", display_name="Busy")
    idle = Identity(id="3", display_name="Idle")
    store.check_or_register(held, streamer, 60)
    store.check_or_register(busy, streamer, 60)
    store.check_or_register(idle, streamer)
    clock.advance(61)

    with ThreadPoolExecutor(max_workers=2) as pool:
        with store.row(held):
            sweeping = pool.submit(store.sweep)
            rolling = pool.submit(store.check_or_register, busy, streamer, 60)
            # another viewer's row is free while the sweep waits on this one
            assert isinstance(rolling.result(timeout=5), MustRecompute)
            assert not sweeping.done()
        removed = sweeping.result(timeout=5)

    assert removed == 2
    assert set(dict(store.snapshot())) == {busy}

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union

from size_server.domain.size_rules import record_is_fresh, record_worth_keeping
from size_server.keyed_locks import KeyedLockMap
from size_server.models.schema_models import Identity, LastChecked


@dataclass(frozen=True)
class UseCached:
    size: int


@dataclass(frozen=True)
class MustRecompute:
    """Pending check of one (viewer, streamer) pair.

    Nothing is written to the viewer's records until register() or store()
    is called, so a roll that fails leaves the previous record as it was.
    Both must be called with the viewer's row lock held.
    """

    records: List[LastChecked]
    streamer: Identity
    limit_seconds: Optional[int]
    now: datetime
    previous: Optional[LastChecked] = None

    def register(self) -> LastChecked:
        """Stamp the record with this check, appending it with size 0 if it is new"""
        record = self.previous
        if record is None:
            record = next((r for r in self.records if r.streamer == self.streamer), None)
        if record is None:
            record = LastChecked(
                streamer=self.streamer,
                timestamp=self.now,
                limit_seconds=self.limit_seconds,
                cached_size=0,
            )
            self.records.append(record)
        record.timestamp = self.now
        record.limit_seconds = self.limit_seconds
        return record

    def store(self, size: int) -> None:
        self.register().cached_size = size


Decision = Union[UseCached, MustRecompute]


class ViewerMemoStore:
    """Per viewer list of the last size rolled in each streamer's chat."""

    def __init__(self, clock: Callable[[], datetime]):
        self.clock = clock
        self.viewers: KeyedLockMap[Identity, List[LastChecked]] = KeyedLockMap(list)

    def row(self, viewer: Identity):
        """Lock and return the records of a viewer, see KeyedLockMap.locked"""
        return self.viewers.locked(viewer)

    @staticmethod
    def decide(
        records: List[LastChecked],
        viewer: Identity,
        streamer: Identity,
        limit_seconds: Optional[int],
        now: datetime,
    ) -> Decision:
        """Check the rate limit of one (viewer, streamer) pair

        Args:
            records (List[LastChecked]): Records of the viewer, the caller holds their lock
            viewer (Identity): Only used for logging
            streamer (Identity): Channel the size is being rolled in
            limit_seconds (Optional[int]): Rate limit requested by this call
            now (datetime): Current time

        Returns:
            Decision: UseCached when the previous size still stands, MustRecompute otherwise
        """
        record = next((r for r in records if r.streamer == streamer), None)
        if record is None:
            logging.debug(f"{streamer}: {viewer} is new, can get a new size in {limit_seconds}s")
            return MustRecompute(records, streamer, limit_seconds, now)

        if record_is_fresh(record, limit_seconds, now):
            logging.info(
                f"{streamer}: {viewer} should try again {limit_seconds}s after {record.timestamp}"
            )
            return UseCached(record.cached_size)

        if limit_seconds is not None:
            logging.debug(f"{streamer}: {viewer} time limit of {limit_seconds}s passed")
        return MustRecompute(records, streamer, limit_seconds, now, record)

    def check_or_register(
        self, viewer: Identity, streamer: Identity, limit_seconds: Optional[int] = None
    ) -> Decision:
        """Check the rate limit and register the check straight away

        A new record starts with size 0 until the returned handle is given one.
        """
        with self.row(viewer) as records:
            decision = self.decide(records, viewer, streamer, limit_seconds, self.clock())
            if isinstance(decision, MustRecompute):
                decision.register()
            return decision

    def sweep(self) -> int:
        """Drop records that can no longer suppress a recomputation

        Only one viewer row is locked at a time.

        Returns:
            int: Number of viewers removed because they had no records left
        """
        removed = 0
        for viewer in self.viewers.keys():
            with self.viewers.locked_if_present(viewer) as records:
                if records is None:
                    continue
                now = self.clock()
                records[:] = [r for r in records if record_worth_keeping(r, now)]
            if self.viewers.discard_if(viewer, lambda rs: not rs):
                removed += 1
        logging.info(f"viewers purged: {removed}")
        return removed

    def snapshot(self) -> List[Tuple[Identity, List[LastChecked]]]:
        """Copy every viewer row, locking one row at a time"""
        rows = []
        for viewer in self.viewers.keys():
            with self.viewers.locked_if_present(viewer) as records:
                if records is not None:
                    rows.append((viewer, [r.model_copy() for r in records]))
        return rows

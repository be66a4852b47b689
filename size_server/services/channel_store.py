import logging
from datetime import datetime
from typing import List, Optional, Tuple

from size_server.keyed_locks import KeyedLockMap
from size_server.models.schema_models import (
    Boon,
    BoonKind,
    BoonLength,
    ChannelStatus,
    Identity,
)


class ChannelStore:
    """Bounds and boons of every streamer seen so far.

    A ChannelStatus is created on first access and never dropped.
    """

    def __init__(self):
        self.channels: KeyedLockMap[Identity, ChannelStatus] = KeyedLockMap(ChannelStatus)

    def channel(self, streamer: Identity):
        """Lock and return the ChannelStatus of a streamer"""
        return self.channels.locked(streamer)

    @staticmethod
    def build_boon(
        kind: BoonKind,
        now: datetime,
        fixed_value: Optional[int] = None,
        ttl_seconds: Optional[int] = None,
    ) -> Boon:
        duration = None
        if ttl_seconds is not None:
            duration = BoonLength(anchor=now, length_seconds=ttl_seconds)
        return Boon(kind=kind, fixed_value=fixed_value, duration=duration)

    @staticmethod
    def install_boon(
        status: ChannelStatus, streamer: Identity, boon: Boon, viewer: Optional[Identity] = None
    ) -> None:
        """Put a boon in the viewer slot, or the channel slot when no viewer is given.

        Whatever occupied the slot before is replaced.
        """
        if viewer is not None:
            logging.info(f"{streamer}: {viewer} has been {boon.kind.value.lower()}! {boon}")
            status.viewer_boons[viewer] = boon
        else:
            logging.info(f"{streamer}: chat has been {boon.kind.value.lower()}! {boon}")
            status.active_boon = boon

    def snapshot(self) -> List[Tuple[Identity, ChannelStatus]]:
        rows = []
        for streamer in self.channels.keys():
            with self.channels.locked_if_present(streamer) as status:
                if status is not None:
                    rows.append((streamer, status.model_copy(deep=True)))
        return rows

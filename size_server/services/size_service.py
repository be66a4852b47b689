"""Size service layer.

- Routers should not touch the viewer or channel maps directly; they call this module.
- This layer owns lock boundaries: streamer lock first, then viewer lock.
- Identity lookups happen before any of these methods are called.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from size_server.converter import StatusConverter
from size_server.models.schema_models import BoonKind, Identity
from size_server.services.boon_resolver import BoonResolver
from size_server.services.channel_store import ChannelStore
from size_server.services.random_source import NumpyRandomSource, RandomSource
from size_server.services.size_generator import SizeGenerator
from size_server.services.viewer_memo import UseCached, ViewerMemoStore


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SizeService:
    """Owns every piece of game state for the lifetime of the process."""

    def __init__(
        self,
        random_source: Optional[RandomSource] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.clock = clock
        self.generator = SizeGenerator(random_source or NumpyRandomSource())
        self.resolver = BoonResolver(self.generator, clock)
        self.channels = ChannelStore()
        self.viewers = ViewerMemoStore(clock)
        self.converter = StatusConverter()

    def resolve_size(
        self, viewer: Identity, streamer: Identity, limit_seconds: Optional[int] = None
    ) -> int:
        """Roll a size for a viewer in a streamer's chat

        Args:
            viewer (Identity): Viewer rolling
            streamer (Identity): Channel the roll happens in
            limit_seconds (Optional[int]): Return the previous size if it is younger than this

        Returns:
            int: The size
        """
        with self.channels.channel(streamer) as status, self.viewers.row(viewer) as records:
            decision = self.viewers.decide(records, viewer, streamer, limit_seconds, self.clock())
            if isinstance(decision, UseCached):
                return decision.size

            size = self.resolver.resolve(status, streamer, viewer)
            decision.store(size)
        logging.info(f"{streamer}: {viewer} got size {size}")
        return size

    def reset_bounds(
        self, streamer: Identity, upper: Optional[int] = None, lower: Optional[int] = None
    ) -> None:
        """Overwrite the bounds of a channel

        Raises:
            BoundsInverted: lower would end up above upper, nothing is changed
        """
        with self.channels.channel(streamer) as status:
            self.generator.reset(status.bounds, upper=upper, lower=lower)
            logging.info(f"{streamer}: bounds reset to {status.bounds}")

    def apply_boon(
        self,
        streamer: Identity,
        kind: BoonKind,
        viewer: Optional[Identity] = None,
        fixed_value: Optional[int] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        """Bless or curse a viewer, or the whole chat when no viewer is given

        Args:
            streamer (Identity): Channel the boon applies in
            kind (BoonKind): Blessed or Cursed
            viewer (Optional[Identity]): Viewer to target, None for the channel slot
            fixed_value (Optional[int]): Size to force, None to use the current bound
            ttl_seconds (Optional[int]): Keep the boon for this long, None for a single use
        """
        boon = self.channels.build_boon(kind, self.clock(), fixed_value, ttl_seconds)
        with self.channels.channel(streamer) as status:
            self.channels.install_boon(status, streamer, boon, viewer)

    def sweep(self) -> None:
        self.viewers.sweep()

    def dump_status(self) -> str:
        return self.converter.convert_status_to_text(
            self.viewers.snapshot(), self.channels.snapshot()
        )

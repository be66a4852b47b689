import logging
from datetime import datetime
from typing import Callable, Optional, Tuple

from size_server.domain.size_rules import (
    BoonOutcome,
    NoBoon,
    OneShotConsumed,
    TimedActive,
    TimedExpired,
    evaluate_boon,
    outcome_removes_boon,
)
from size_server.models.schema_models import Boon, ChannelStatus, Identity
from size_server.services.size_generator import SizeGenerator


class BoonResolver:
    """Turns a channel's boons into a size for one request, or draws one."""

    def __init__(self, generator: SizeGenerator, clock: Callable[[], datetime]):
        self.generator = generator
        self.clock = clock

    @staticmethod
    def select_boon(status: ChannelStatus, viewer: Identity) -> Tuple[Optional[Boon], bool]:
        """Pick the boon that applies to a viewer

        Returns:
            tuple[Optional[Boon], bool]: The boon (if any) and whether it came from the viewer slot
        """
        if viewer in status.viewer_boons:
            return status.viewer_boons[viewer], True
        return status.active_boon, False

    @staticmethod
    def remove_boon(status: ChannelStatus, viewer: Identity, from_viewer_slot: bool) -> None:
        if from_viewer_slot:
            del status.viewer_boons[viewer]
        else:
            status.active_boon = None

    def evaluate(self, status: ChannelStatus, viewer: Identity) -> Tuple[BoonOutcome, bool]:
        boon, from_viewer_slot = self.select_boon(status, viewer)
        return evaluate_boon(boon, status.bounds, self.clock()), from_viewer_slot

    def resolve(self, status: ChannelStatus, streamer: Identity, viewer: Identity) -> int:
        """Work out the size of one roll

        Args:
            status (ChannelStatus): Channel of the streamer, the caller holds its lock
            streamer (Identity): Only used for logging
            viewer (Identity): Viewer rolling

        Returns:
            int: The boon value, or a fresh draw when no boon applies
        """
        outcome, from_viewer_slot = self.evaluate(status, viewer)
        if not isinstance(outcome, NoBoon):
            boon, _ = self.select_boon(status, viewer)
            who = f"{viewer}'s" if from_viewer_slot else "chat's"
            if isinstance(outcome, OneShotConsumed):
                logging.info(f"{streamer}: {who} {boon.kind.value} status has been consumed")
            elif isinstance(outcome, TimedActive):
                logging.info(f"{streamer}: {who} {boon.kind.value} status remains")
            elif isinstance(outcome, TimedExpired):
                logging.info(f"{streamer}: {who} {boon.kind.value} status is expired")

        if isinstance(outcome, (OneShotConsumed, TimedActive)):
            size = outcome.value
        else:
            size = self.generator.draw(status.bounds)

        # only once a size exists
        if outcome_removes_boon(outcome):
            self.remove_boon(status, viewer, from_viewer_slot)
        return size

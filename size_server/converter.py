from typing import List, Tuple

from size_server.models.schema_models import Bounds, ChannelStatus, Identity, LastChecked


class StatusConverter:
    """This class is used to render the in-memory state as readable text."""

    @staticmethod
    def convert_bounds_to_text(bounds: Bounds) -> str:
        return f"Bounds {{ upper: {bounds.upper}, lower: {bounds.lower} }}"

    def convert_viewers_to_text(self, viewers: List[Tuple[Identity, List[LastChecked]]]) -> str:
        """Render every viewer with the size last rolled in each chat

        Args:
            viewers (List[Tuple[Identity, List[LastChecked]]]): Snapshot of the viewer memo rows

        Returns:
            str: One line per viewer followed by one line per record
        """
        text = "users:\n"
        for viewer, records in viewers:
            text += f"\t{viewer}\n"
            for record in records:
                text += f"\t\t{record.streamer} => {record.cached_size}"
                if record.limit_seconds is not None:
                    text += f", refresh in {record.limit_seconds}s after {record.timestamp}"
                text += "\n"
        return text

    def convert_channels_to_text(self, channels: List[Tuple[Identity, ChannelStatus]]) -> str:
        """Render every channel with its bounds, channel boon and viewer boons

        Args:
            channels (List[Tuple[Identity, ChannelStatus]]): Snapshot of the channel statuses

        Returns:
            str: One line per channel followed by one line per viewer boon
        """
        text = "streamers:\n"
        for streamer, status in channels:
            text += f"\t{streamer} => {self.convert_bounds_to_text(status.bounds)}"
            boon = status.active_boon
            if boon is not None:
                if boon.duration is not None:
                    text += (
                        f" (users are {boon.kind.value} until "
                        f"{boon.duration.length_seconds}s after {boon.duration.anchor})"
                    )
                else:
                    text += f" (next user is {boon.kind.value})"
            text += "\n"
            for viewer, viewer_boon in status.viewer_boons.items():
                text += f"\t\t{viewer}: {viewer_boon.kind.value}\n"
        return text

    def convert_status_to_text(
        self,
        viewers: List[Tuple[Identity, List[LastChecked]]],
        channels: List[Tuple[Identity, ChannelStatus]],
    ) -> str:
        return self.convert_viewers_to_text(viewers) + self.convert_channels_to_text(channels) + "\n"

import logging
from typing import Optional

from size_server.domain.size_rules import build_bounds, widen_bounds
from size_server.models.schema_models import Bounds
from size_server.services.random_source import RandomSource


class SizeGenerator:
    """Draws sizes from a channel's bounds and widens them on edge hits."""

    def __init__(self, random_source: RandomSource):
        self.random_source = random_source

    def draw(self, bounds: Bounds) -> int:
        """Draw a size and widen bounds in place

        Args:
            bounds (Bounds): Bounds of the channel, the caller holds its lock

        Returns:
            int: A size in [bounds.lower, bounds.upper] as they were before the draw
        """
        size = self.random_source.randint(bounds.lower, bounds.upper)
        widened = widen_bounds(bounds, size)
        if widened.lower != bounds.lower:
            logging.debug(f"generated {size}, new lower bound")
        if widened.upper != bounds.upper:
            logging.debug(f"generated {size}, new upper bound")
        if widened == bounds:
            logging.debug(f"generated {size}")
        bounds.lower = widened.lower
        bounds.upper = widened.upper
        return size

    @staticmethod
    def reset(bounds: Bounds, upper: Optional[int] = None, lower: Optional[int] = None) -> None:
        """Overwrite bounds, leaving them untouched if the new values are inverted

        Raises:
            BoundsInverted: lower would end up above upper
        """
        replacement = build_bounds(upper=upper, lower=lower)
        bounds.lower = replacement.lower
        bounds.upper = replacement.upper

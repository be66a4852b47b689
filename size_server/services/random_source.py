import threading
from typing import Optional, Protocol

import numpy as np

INT64_MIN = int(np.iinfo(np.int64).min)
INT64_MAX = int(np.iinfo(np.int64).max)
WORD_BITS = 32


class RandomSource(Protocol):
    def randint(self, lower: int, upper: int) -> int:
        """Uniform integer in [lower, upper], both ends included."""
        ...


class NumpyRandomSource:
    """RandomSource backed by a numpy Generator.

    numpy generators are not thread safe, so draws are serialized.
    Bounds outside int64 are drawn as Python ints, 32 random bits at a time.
    """

    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)
        self._lock = threading.Lock()

    def randint(self, lower: int, upper: int) -> int:
        with self._lock:
            if INT64_MIN <= lower and upper <= INT64_MAX:
                return int(self._rng.integers(lower, upper, endpoint=True))
            return lower + self._below(upper - lower)

    def _below(self, span: int) -> int:
        """Uniform integer in [0, span] by rejection sampling"""
        bits = span.bit_length()
        words = -(-bits // WORD_BITS)
        mask = (1 << bits) - 1
        while True:
            chunks = self._rng.integers(0, 1 << WORD_BITS, size=words, dtype=np.uint64)
            value = 0
            for chunk in chunks:
                value = (value << WORD_BITS) | int(chunk)
            value &= mask
            if value <= span:
                return value

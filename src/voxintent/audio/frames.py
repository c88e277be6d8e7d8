"""Fixed-size frame assembly for int16 audio of arbitrary block sizes.

Microphone callbacks and network packets rarely deliver exactly one engine
frame. ``FrameChunker`` writes incoming blocks into a pre-allocated buffer
and hands out whole frames, carrying any remainder to the next block.
"""

from collections.abc import Iterator
from typing import Self

import numpy as np

from voxintent.core.constants import FRAME_LENGTH


class FrameChunker:
    """Re-chunks a sample stream into frames of ``frame_length`` samples."""

    __slots__ = ("_buffer", "_filled", "_total_written")

    def __init__(self, buffer: np.ndarray) -> None:
        self._buffer = buffer
        self._filled = 0
        self._total_written = 0

    @classmethod
    def create(cls, frame_length: int = FRAME_LENGTH) -> Self:
        return cls(np.zeros(frame_length, dtype=np.int16))

    @property
    def frame_length(self) -> int:
        return len(self._buffer)

    @property
    def pending(self) -> int:
        """Samples buffered towards the next frame."""
        return self._filled

    @property
    def total_samples_written(self) -> int:
        return self._total_written

    def push(self, block: np.ndarray) -> Iterator[np.ndarray]:
        """Buffer *block* and yield every completed frame as a copy."""
        block = np.asarray(block, dtype=np.int16).reshape(-1)
        self._total_written += block.size
        capacity = len(self._buffer)
        pos = 0
        while pos < block.size:
            take = min(capacity - self._filled, block.size - pos)
            self._buffer[self._filled : self._filled + take] = block[pos : pos + take]
            self._filled += take
            pos += take
            if self._filled == capacity:
                self._filled = 0
                yield self._buffer.copy()

    def reset(self) -> None:
        """Drop any partial frame."""
        self._filled = 0

"""Silence likelihood from WebRTC VAD.

Wraps any scoring provider and replaces its silence signal with the share
of 10/20/30 ms sub-frames that WebRTC VAD judges as non-speech. Engine
frames need not be a multiple of the VAD frame, so leftover samples are
carried into the next call.
"""

from collections.abc import Set
from dataclasses import dataclass

import numpy as np
import webrtcvad

from voxintent.core.constants import DEFAULT_VAD_FRAME_MS, DEFAULT_VAD_MODE, SAMPLE_RATE
from voxintent.core.protocols import FrameScores, ScoringProvider, validate_scores


@dataclass(frozen=True, slots=True)
class VadConfig:
    """Immutable VAD configuration."""

    frame_ms: int = DEFAULT_VAD_FRAME_MS
    mode: int = DEFAULT_VAD_MODE
    sample_rate: int = SAMPLE_RATE

    def __post_init__(self) -> None:
        if self.frame_ms not in (10, 20, 30):
            raise ValueError("frame_ms must be one of: 10, 20, 30")
        if not (0 <= self.mode <= 3):
            raise ValueError("mode must be between 0 and 3")
        if self.sample_rate not in (8000, 16000, 32000, 48000):
            raise ValueError("sample_rate must be 8, 16, 32 or 48 kHz")


class VadSilenceGate:
    """Scoring provider decorator that takes silence from WebRTC VAD."""

    __slots__ = ("_inner", "_vad", "_config", "_chunk", "_residual", "_last")

    def __init__(self, inner: ScoringProvider, config: VadConfig | None = None) -> None:
        self._inner = inner
        self._config = config or VadConfig()
        self._vad = webrtcvad.Vad(self._config.mode)
        self._chunk = int(self._config.sample_rate * self._config.frame_ms / 1000)
        self._residual = np.array([], dtype=np.int16)
        self._last = 1.0

    @property
    def chunk_samples(self) -> int:
        """Number of samples per VAD frame."""
        return self._chunk

    @property
    def pending(self) -> int:
        """Samples carried over to the next VAD frame."""
        return int(self._residual.size)

    def score(self, frame: np.ndarray, labels: Set[str]) -> FrameScores:
        scores = validate_scores(self._inner.score(frame, labels))

        residual = (
            frame.astype(np.int16)
            if self._residual.size == 0
            else np.concatenate([self._residual, frame.astype(np.int16)])
        )
        decisions = []
        while residual.size >= self._chunk:
            chunk = residual[: self._chunk]
            residual = residual[self._chunk :]
            decisions.append(
                self._vad.is_speech(chunk.tobytes(), self._config.sample_rate)
            )
        self._residual = residual
        if decisions:
            self._last = 1.0 - sum(decisions) / len(decisions)
        return FrameScores(labels=scores.labels, silence=self._last)

    def reset(self) -> None:
        """Clear carried samples for a new utterance."""
        self._inner.reset()
        self._residual = np.array([], dtype=np.int16)
        self._last = 1.0

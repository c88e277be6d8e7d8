"""Decoder: runs one audio frame through scoring, search, and endpointing.

A ``Decoder`` is single-threaded. Calls into one instance must be
serialized by the caller; nothing here takes a lock. The grammar it reads
is immutable and may be shared with decoders on other threads.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from voxintent.core.config import DecoderConfig
from voxintent.core.constants import FRAME_LENGTH, SAMPLE_RATE
from voxintent.core.endpoint import EndpointDetector, EndpointLimits
from voxintent.core.env import LOGGER
from voxintent.core.grammar import Grammar
from voxintent.core.protocols import FrameScores, ScoringProvider, validate_scores
from voxintent.core.result import acceptance_threshold, best_credible, extract
from voxintent.core.search import Frontier
from voxintent.core.types import Inference
from voxintent.errors import (
    InvalidArgumentError,
    InvalidStateError,
    OutOfMemoryError,
)


def validate_sensitivity(sensitivity: Any) -> float:
    """Return *sensitivity* as a float in [0, 1] or raise InvalidArgumentError."""
    if isinstance(sensitivity, bool) or not isinstance(sensitivity, (int, float)):
        raise InvalidArgumentError(f"sensitivity must be a number, got {sensitivity!r}")
    value = float(sensitivity)
    if not (0.0 <= value <= 1.0):
        raise InvalidArgumentError(f"sensitivity {value} is outside [0, 1]")
    return value


def validate_pcm(pcm: Any) -> np.ndarray:
    """Coerce a block of PCM audio of any length to 1-D int16 samples.

    Accepts an int16 array, any integer sequence within the int16 range,
    a single-channel ``(n, 1)`` array, or little-endian 16-bit bytes.
    Everything else raises ``InvalidArgumentError``.
    """
    if pcm is None:
        raise InvalidArgumentError("audio is None")
    if isinstance(pcm, (bytes, bytearray, memoryview)):
        raw = bytes(pcm)
        if len(raw) % 2:
            raise InvalidArgumentError(f"audio has an odd byte count ({len(raw)})")
        return np.frombuffer(raw, dtype="<i2").astype(np.int16)

    try:
        samples = np.asarray(pcm)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"audio is not PCM: {exc}") from exc
    if samples.ndim == 2 and samples.shape[1] == 1:
        samples = samples.reshape(-1)
    if samples.ndim != 1:
        raise InvalidArgumentError(f"audio must be mono, got shape {samples.shape}")
    if samples.dtype == np.int16:
        return samples
    if samples.size and samples.dtype.kind not in "iu":
        raise InvalidArgumentError(f"audio must hold 16-bit integers, got {samples.dtype}")
    if samples.size and (samples.min() < -32768 or samples.max() > 32767):
        raise InvalidArgumentError("audio samples exceed the 16-bit range")
    return samples.astype(np.int16)


def validate_frame(pcm: Any, frame_length: int = FRAME_LENGTH) -> np.ndarray:
    """Coerce exactly one frame of ``frame_length`` samples to int16."""
    frame = validate_pcm(pcm)
    if frame.shape[0] != frame_length:
        raise InvalidArgumentError(
            f"frame has {frame.shape[0]} samples, expected {frame_length}"
        )
    return frame


class Decoder:
    """Streaming grammar-constrained decoder for one utterance at a time."""

    __slots__ = (
        "_grammar",
        "_scorer",
        "_sensitivity",
        "_threshold",
        "_config",
        "_frame_length",
        "_frontier",
        "_endpoint",
        "_result",
    )

    def __init__(
        self,
        grammar: Grammar,
        scorer: ScoringProvider,
        sensitivity: float,
        config: DecoderConfig | None = None,
        frame_length: int = FRAME_LENGTH,
        sample_rate: int = SAMPLE_RATE,
    ) -> None:
        self._grammar = grammar
        self._scorer = scorer
        self._sensitivity = validate_sensitivity(sensitivity)
        self._threshold = acceptance_threshold(self._sensitivity)
        self._config = config or DecoderConfig()
        self._frame_length = frame_length
        self._frontier = Frontier.initial(grammar)
        self._endpoint = EndpointDetector(
            EndpointLimits.from_config(self._config, frame_length, sample_rate)
        )
        self._result: Inference | None = None

    @property
    def grammar(self) -> Grammar:
        return self._grammar

    @property
    def sensitivity(self) -> float:
        return self._sensitivity

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def frame_length(self) -> int:
        return self._frame_length

    @property
    def frontier(self) -> Frontier:
        return self._frontier

    @property
    def endpoint(self) -> EndpointDetector:
        return self._endpoint

    @property
    def finalized(self) -> bool:
        return self._endpoint.finalized

    def _score(self, frame: np.ndarray) -> FrameScores:
        try:
            scores = self._scorer.score(frame, self._frontier.active_labels())
        except InvalidArgumentError:
            raise
        except ValueError as exc:
            raise InvalidArgumentError(str(exc)) from exc
        except MemoryError as exc:
            raise OutOfMemoryError("out of memory while scoring a frame") from exc
        return validate_scores(scores)

    def process(self, pcm: Any) -> bool:
        """Consume one frame and return whether the utterance is finalized.

        Session state is only replaced after scoring and search succeed, so
        a rejected frame leaves the decoder exactly as it was.
        """
        if self._endpoint.finalized:
            raise InvalidStateError("utterance already finalized; call reset()")
        frame = validate_frame(pcm, self._frame_length)
        scores = self._score(frame)
        try:
            frontier = self._frontier.advance(
                scores, self._config.beam_width, self._config.prune_margin,
            )
        except MemoryError as exc:
            raise OutOfMemoryError("out of memory while extending hypotheses") from exc

        credible = best_credible(frontier, self._threshold) is not None
        finalized = self._endpoint.update(scores.silence, frontier.advanced, credible)
        self._frontier = frontier
        if finalized:
            LOGGER.debug(
                "Finalized (%s) after %d frames, %d hypotheses",
                self._endpoint.reason.value,
                self._endpoint.counters()["frames"],
                len(frontier),
            )
        return finalized

    def result(self) -> Inference:
        """Inference for the finalized utterance (understood or not)."""
        if not self._endpoint.finalized:
            raise InvalidStateError("utterance is not finalized")
        if self._result is None:
            try:
                self._result = extract(self._frontier, self._grammar, self._threshold)
            except MemoryError as exc:
                raise OutOfMemoryError("out of memory while extracting the intent") from exc
        return self._result

    def is_understood(self) -> bool:
        return self.result().is_understood

    def reset(self) -> None:
        """Discard the current utterance and return to listening."""
        self._scorer.reset()
        self._frontier = Frontier.initial(self._grammar)
        self._endpoint.reset()
        self._result = None

"""Endpoint detection: decides when an utterance is finalized.

Finalization depends on both trailing silence and grammar confidence.
A credible terminal match finalizes after a short silence; an utterance
without one is given a longer silence window before it is abandoned.
Input that never moves the search past the root, and overlong input,
are cut off so worst-case latency stays bounded.
"""

from dataclasses import dataclass
from enum import Enum

from voxintent.core.config import DecoderConfig, ms_to_frames
from voxintent.core.constants import FRAME_LENGTH, SAMPLE_RATE
from voxintent.errors import InvalidStateError


class EndpointState(str, Enum):
    LISTENING = "listening"
    FINALIZED = "finalized"


class FinalizeReason(str, Enum):
    """Which rule finalized the utterance."""

    MATCH = "match"
    SILENCE = "silence"
    NO_SPEECH = "no_speech"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class EndpointLimits:
    """Frame-count thresholds derived from a :class:`DecoderConfig`."""

    silence_threshold: float
    endpoint_silence_frames: int
    incomplete_silence_frames: int
    max_idle_frames: int
    max_utterance_frames: int

    @classmethod
    def from_config(
        cls,
        config: DecoderConfig,
        frame_length: int = FRAME_LENGTH,
        sample_rate: int = SAMPLE_RATE,
    ) -> "EndpointLimits":
        return cls(
            silence_threshold=config.silence_threshold,
            endpoint_silence_frames=ms_to_frames(
                config.endpoint_silence_ms, frame_length, sample_rate
            ),
            incomplete_silence_frames=ms_to_frames(
                config.incomplete_silence_ms, frame_length, sample_rate
            ),
            max_idle_frames=ms_to_frames(
                config.max_idle_ms, frame_length, sample_rate
            ),
            max_utterance_frames=ms_to_frames(
                config.max_utterance_ms, frame_length, sample_rate
            ),
        )


class EndpointDetector:
    """Two-state machine: LISTENING until one finalize rule fires."""

    __slots__ = (
        "_limits",
        "_state",
        "_reason",
        "_frames",
        "_silence_run",
        "_idle_frames",
        "_speech_detected",
    )

    def __init__(self, limits: EndpointLimits) -> None:
        self._limits = limits
        self._state = EndpointState.LISTENING
        self._reason: FinalizeReason | None = None
        self._frames = 0
        self._silence_run = 0
        self._idle_frames = 0
        self._speech_detected = False

    @property
    def state(self) -> EndpointState:
        return self._state

    @property
    def finalized(self) -> bool:
        return self._state is EndpointState.FINALIZED

    @property
    def reason(self) -> FinalizeReason:
        """Rule that finalized the utterance."""
        if self._reason is None:
            raise InvalidStateError("utterance is not finalized")
        return self._reason

    @property
    def limits(self) -> EndpointLimits:
        return self._limits

    def counters(self) -> dict[str, int | bool]:
        """Snapshot of the counters, for logging and tests."""
        return {
            "frames": self._frames,
            "silence_run": self._silence_run,
            "idle_frames": self._idle_frames,
            "speech_detected": self._speech_detected,
        }

    def update(self, silence: float, advanced: bool, credible: bool) -> bool:
        """Account for one frame, return True once finalized.

        Args:
            silence: Silence likelihood of the frame.
            advanced: Whether the best hypothesis has left the root.
            credible: Whether a terminal hypothesis clears the acceptance
                threshold.
        """
        if self.finalized:
            raise InvalidStateError("endpoint already finalized; reset first")

        limits = self._limits
        self._frames += 1
        if silence >= limits.silence_threshold:
            self._silence_run += 1
        else:
            self._silence_run = 0

        if advanced:
            self._speech_detected = True
            self._idle_frames = 0
        elif not self._speech_detected:
            self._idle_frames += 1

        if credible and self._silence_run >= limits.endpoint_silence_frames:
            self._finalize(FinalizeReason.MATCH)
        elif (
            self._speech_detected
            and self._silence_run >= limits.incomplete_silence_frames
        ):
            self._finalize(FinalizeReason.SILENCE)
        elif self._idle_frames >= limits.max_idle_frames:
            self._finalize(FinalizeReason.NO_SPEECH)
        elif self._frames >= limits.max_utterance_frames:
            self._finalize(FinalizeReason.TIMEOUT)
        return self.finalized

    def _finalize(self, reason: FinalizeReason) -> None:
        self._state = EndpointState.FINALIZED
        self._reason = reason

    def reset(self) -> None:
        """Clear state for a new utterance."""
        self._state = EndpointState.LISTENING
        self._reason = None
        self._frames = 0
        self._silence_run = 0
        self._idle_frames = 0
        self._speech_detected = False

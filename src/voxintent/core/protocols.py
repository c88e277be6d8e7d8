"""Structural type protocols for the acoustic scoring capability."""

import math
from collections.abc import Mapping, Set
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from voxintent.errors import InvalidArgumentError


@dataclass(frozen=True, slots=True)
class FrameScores:
    """Scoring update for one frame.

    Attributes:
        labels: Log-domain score per requested acoustic label. A label
            missing from the mapping cannot be matched in this frame.
        silence: Probability in [0, 1] that the frame is silence.
    """

    labels: Mapping[str, float]
    silence: float


def validate_scores(scores: FrameScores) -> FrameScores:
    """Reject a silence likelihood outside [0, 1] and NaN label scores."""
    if not math.isfinite(scores.silence) or not (0.0 <= scores.silence <= 1.0):
        raise InvalidArgumentError(
            f"scoring provider returned silence likelihood {scores.silence!r}"
        )
    for label, value in scores.labels.items():
        if math.isnan(value):
            raise InvalidArgumentError(f"scoring provider returned NaN for {label!r}")
    return scores


class ScoringProvider(Protocol):
    """Structural type for per-session acoustic scorers.

    Implementations may keep per-stream state, so each decoding session
    owns its own scorer. ``score`` raises ``InvalidArgumentError`` for a
    malformed frame instead of returning degraded scores.
    """

    def score(self, frame: np.ndarray, labels: Set[str]) -> FrameScores: ...

    def reset(self) -> None: ...

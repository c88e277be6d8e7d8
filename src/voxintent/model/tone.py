"""Reference acoustic model: one pure tone per lexicon word.

Each word is assigned an FFT bin centre. A frame's score for a word is the
log of the share of frame energy inside that word's band, and its silence
likelihood is a logistic function of RMS energy. The model is small and
deterministic, which makes it suitable for tests and demos of the decoder
without a trained network.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Set
from dataclasses import dataclass
from types import MappingProxyType

import numpy as np

from voxintent.core.constants import (
    DEFAULT_ENERGY_THRESHOLD,
    DEFAULT_TONE_BAND_BINS,
    DEFAULT_TONE_BIN_SPACING,
    DEFAULT_TONE_FIRST_BIN,
    FRAME_LENGTH,
    SAMPLE_RATE,
    SCORE_FLOOR,
)
from voxintent.core.protocols import FrameScores
from voxintent.errors import InvalidArgumentError


@dataclass(frozen=True, slots=True)
class ToneModel:
    """Immutable lexicon of word tones; shareable across sessions."""

    lexicon: Mapping[str, int]
    sample_rate: int = SAMPLE_RATE
    frame_length: int = FRAME_LENGTH
    band_bins: int = DEFAULT_TONE_BAND_BINS
    energy_threshold: float = DEFAULT_ENERGY_THRESHOLD

    def __post_init__(self) -> None:
        if self.energy_threshold <= 0:
            raise ValueError("energy_threshold must be positive")
        top = self.frame_length // 2 - self.band_bins
        for word, bin_index in self.lexicon.items():
            if not (self.band_bins <= bin_index < top):
                raise ValueError(f"tone bin {bin_index} for {word!r} is out of range")

    @classmethod
    def build(
        cls,
        words: Iterable[str],
        *,
        sample_rate: int = SAMPLE_RATE,
        frame_length: int = FRAME_LENGTH,
        first_bin: int = DEFAULT_TONE_FIRST_BIN,
        spacing: int = DEFAULT_TONE_BIN_SPACING,
        band_bins: int = DEFAULT_TONE_BAND_BINS,
        energy_threshold: float = DEFAULT_ENERGY_THRESHOLD,
    ) -> ToneModel:
        """Assign evenly spaced, non-overlapping tone bins to *words*."""
        if spacing <= 2 * band_bins:
            raise InvalidArgumentError("tone spacing must exceed the band width")
        vocabulary = sorted({w.lower() for w in words})
        capacity = (frame_length // 2 - band_bins - first_bin) // spacing
        if len(vocabulary) > capacity:
            raise InvalidArgumentError(
                f"{len(vocabulary)} words exceed the tone model capacity of {capacity}"
            )
        lexicon = {word: first_bin + i * spacing for i, word in enumerate(vocabulary)}
        return cls(
            lexicon=MappingProxyType(lexicon),
            sample_rate=sample_rate,
            frame_length=frame_length,
            band_bins=band_bins,
            energy_threshold=energy_threshold,
        )

    @property
    def labels(self) -> frozenset[str]:
        return frozenset(self.lexicon)

    def frequency(self, word: str) -> float:
        """Tone frequency in Hz for *word*."""
        return self.lexicon[word] * self.sample_rate / self.frame_length

    def scorer(self) -> ToneScorer:
        return ToneScorer(self)


class ToneScorer:
    """Per-session scoring provider over a :class:`ToneModel`."""

    __slots__ = ("_model", "_window", "_log_floor")

    def __init__(self, model: ToneModel) -> None:
        self._model = model
        self._window = np.hanning(model.frame_length)
        self._log_floor = math.log(SCORE_FLOOR)

    @property
    def model(self) -> ToneModel:
        return self._model

    def silence_likelihood(self, samples: np.ndarray) -> float:
        """Logistic gate on RMS energy: ~1 well below the threshold."""
        threshold = self._model.energy_threshold
        rms = float(np.sqrt(np.mean(samples * samples)))
        exponent = min(max((rms - threshold) / (0.25 * threshold), -50.0), 50.0)
        return 1.0 / (1.0 + math.exp(exponent))

    def score(self, frame: np.ndarray, labels: Set[str]) -> FrameScores:
        model = self._model
        if frame.ndim != 1 or frame.shape[0] != model.frame_length:
            raise InvalidArgumentError(
                f"tone model expects {model.frame_length} samples, got {frame.shape}"
            )
        samples = frame.astype(np.float64)
        spectrum = np.abs(np.fft.rfft(samples * self._window)) ** 2
        total = float(spectrum.sum()) + 1e-9

        width = model.band_bins
        scores: dict[str, float] = {}
        for label in labels:
            bin_index = model.lexicon.get(label)
            if bin_index is None:
                continue
            band = float(spectrum[bin_index - width : bin_index + width + 1].sum())
            share = band / total
            scores[label] = math.log(share) if share > SCORE_FLOOR else self._log_floor
        return FrameScores(labels=scores, silence=self.silence_likelihood(samples))

    def reset(self) -> None:
        """Stateless; nothing to clear."""

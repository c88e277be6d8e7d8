"""Render word sequences as PCM under a :class:`ToneModel`.

Each word becomes a whole number of frames of its tone, so frame
boundaries line up with word boundaries when the stream is fed to the
engine from its first sample.
"""

from collections.abc import Sequence

import numpy as np

from voxintent.core.constants import DEFAULT_TONE_AMPLITUDE, DEFAULT_WORD_FRAMES
from voxintent.errors import InvalidArgumentError
from voxintent.model.tone import ToneModel


def tone(model: ToneModel, word: str, frames: int, amplitude: int) -> np.ndarray:
    """*frames* frames of the tone for *word*."""
    if word not in model.lexicon:
        raise InvalidArgumentError(f"{word!r} is not in the model lexicon")
    n = frames * model.frame_length
    t = np.arange(n) / model.sample_rate
    wave = amplitude * np.sin(2.0 * np.pi * model.frequency(word) * t)
    return wave.astype(np.int16)


def synthesize(
    words: Sequence[str] | str,
    model: ToneModel,
    *,
    word_frames: int = DEFAULT_WORD_FRAMES,
    lead_frames: int = 4,
    trail_frames: int = 0,
    amplitude: int = DEFAULT_TONE_AMPLITUDE,
) -> np.ndarray:
    """Int16 stream: leading silence, one tone per word, trailing silence."""
    if isinstance(words, str):
        words = words.lower().split()
    silence = np.zeros(model.frame_length, dtype=np.int16)
    parts = [silence] * lead_frames
    parts.extend(tone(model, w, word_frames, amplitude) for w in words)
    parts.extend([silence] * trail_frames)
    if not parts:
        return np.zeros(0, dtype=np.int16)
    return np.concatenate(parts)

"""Shared test fixtures: deterministic scorers, no audio hardware needed."""

from __future__ import annotations

import json
import math
from collections.abc import Sequence, Set
from pathlib import Path
from typing import Any

import numpy as np
import pytest

from voxintent.core.constants import CONTEXT_FORMAT_VERSION, FRAME_LENGTH, SCORE_FLOOR
from voxintent.core.context import ContextDefinition
from voxintent.core.grammar import Grammar, compile_context
from voxintent.core.protocols import FrameScores

LIGHTS_CONTEXT: dict[str, Any] = {
    "expressions": {
        "turnLightOn": ["turn on the $location:location light"],
        "turnLightOff": ["turn off the $location:location light"],
    },
    "slots": {"location": ["kitchen", "bedroom"]},
}


class WordFrameScorer:
    """Scores frames whose first sample is a 1-based index into *vocabulary*.

    Index 0 marks a silent frame. The frame's word scores 0.0 (certain),
    every other requested label scores the floor.
    """

    def __init__(self, vocabulary: Sequence[str]) -> None:
        self.vocabulary = list(vocabulary)
        self.calls = 0
        self.resets = 0
        self.fail_next: Exception | None = None

    def score(self, frame: np.ndarray, labels: Set[str]) -> FrameScores:
        if self.fail_next is not None:
            exc, self.fail_next = self.fail_next, None
            raise exc
        self.calls += 1
        index = int(frame[0])
        word = self.vocabulary[index - 1] if index > 0 else None
        floor = math.log(SCORE_FLOOR)
        return FrameScores(
            labels={label: 0.0 if label == word else floor for label in labels},
            silence=1.0 if word is None else 0.0,
        )

    def reset(self) -> None:
        self.resets += 1


def word_frame(index: int) -> np.ndarray:
    frame = np.zeros(FRAME_LENGTH, dtype=np.int16)
    frame[0] = index
    return frame


def frames_for(
    words: str | Sequence[str],
    vocabulary: Sequence[str],
    *,
    word_frames: int = 3,
    lead: int = 2,
    trail: int = 0,
) -> list[np.ndarray]:
    """Frame sequence for *words* under a :class:`WordFrameScorer`."""
    if isinstance(words, str):
        words = words.split()
    frames = [word_frame(0) for _ in range(lead)]
    for word in words:
        frames.extend(word_frame(vocabulary.index(word) + 1) for _ in range(word_frames))
    frames.extend(word_frame(0) for _ in range(trail))
    return frames


def write_context(path: Path, context: dict[str, Any]) -> Path:
    payload = {"format_version": CONTEXT_FORMAT_VERSION, "context": context}
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def lights_definition() -> ContextDefinition:
    return ContextDefinition.from_dict(LIGHTS_CONTEXT)


@pytest.fixture
def lights_grammar(lights_definition: ContextDefinition) -> Grammar:
    return compile_context(lights_definition)


@pytest.fixture
def vocabulary(lights_grammar: Grammar) -> list[str]:
    return sorted(lights_grammar.labels | {"garage"})


@pytest.fixture
def word_scorer(vocabulary: list[str]) -> WordFrameScorer:
    return WordFrameScorer(vocabulary)


@pytest.fixture
def context_file(tmp_path: Path) -> Path:
    return write_context(tmp_path / "lights.json", LIGHTS_CONTEXT)


@pytest.fixture
def model_file(tmp_path: Path, vocabulary: list[str]) -> Path:
    from voxintent.model import ToneModel, save_model

    path = tmp_path / "tones.npz"
    save_model(ToneModel.build(vocabulary), path)
    return path


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep tests away from the user's real config file."""
    config_dir = tmp_path / "config"
    monkeypatch.setenv("VOXINTENT_CONFIG_DIR", str(config_dir))
    return config_dir

"""Frozen decoder configuration and JSON config loading.

Timing values are kept in milliseconds so they survive a change of frame
length; the decoder converts them to whole frames once at construction.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from voxintent.core.constants import (
    DEFAULT_BEAM_WIDTH,
    DEFAULT_CONFIG_FILE,
    DEFAULT_ENDPOINT_SILENCE_MS,
    DEFAULT_INCOMPLETE_SILENCE_MS,
    DEFAULT_MAX_IDLE_MS,
    DEFAULT_MAX_UTTERANCE_MS,
    DEFAULT_PRUNE_MARGIN,
    DEFAULT_SILENCE_THRESHOLD,
    FRAME_LENGTH,
    SAMPLE_RATE,
)
from voxintent.core.env import LOGGER, config_dir


@dataclass(frozen=True, slots=True)
class DecoderConfig:
    """Search and endpointing parameters of one decoding session."""

    beam_width: int = DEFAULT_BEAM_WIDTH
    prune_margin: float = DEFAULT_PRUNE_MARGIN
    silence_threshold: float = DEFAULT_SILENCE_THRESHOLD
    endpoint_silence_ms: int = DEFAULT_ENDPOINT_SILENCE_MS
    incomplete_silence_ms: int = DEFAULT_INCOMPLETE_SILENCE_MS
    max_idle_ms: int = DEFAULT_MAX_IDLE_MS
    max_utterance_ms: int = DEFAULT_MAX_UTTERANCE_MS

    def __post_init__(self) -> None:
        if self.beam_width < 1:
            raise ValueError("beam_width must be at least 1")
        if self.prune_margin <= 0:
            raise ValueError("prune_margin must be positive")
        if not (0.0 < self.silence_threshold < 1.0):
            raise ValueError("silence_threshold must be between 0 and 1")
        if self.endpoint_silence_ms <= 0:
            raise ValueError("endpoint_silence_ms must be positive")
        if self.incomplete_silence_ms < self.endpoint_silence_ms:
            raise ValueError(
                "incomplete_silence_ms must not be shorter than endpoint_silence_ms"
            )
        if self.max_idle_ms <= 0 or self.max_utterance_ms <= 0:
            raise ValueError("listening windows must be positive")


def ms_to_frames(
    ms: int, frame_length: int = FRAME_LENGTH, sample_rate: int = SAMPLE_RATE,
) -> int:
    """Round a duration up to whole frames (at least one)."""
    frame_ms = 1000.0 * frame_length / sample_rate
    return max(1, int(math.ceil(ms / frame_ms)))


def _filter_fields(cls: type, raw: dict[str, Any]) -> dict[str, Any]:
    """Keep only keys that match dataclass fields."""
    valid = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - valid)
    if unknown:
        LOGGER.debug("Ignoring unknown decoder config keys: %s", unknown)
    return {k: v for k, v in raw.items() if k in valid}


def make_decoder_config(raw: dict[str, Any]) -> DecoderConfig:
    """Factory: build a validated config from a plain dict."""
    return DecoderConfig(**_filter_fields(DecoderConfig, raw))


def load_config(path: str | None = None) -> DecoderConfig:
    """Load decoder configuration from a JSON file.

    Reads ``~/.config/voxintent/config.json`` (or *path*). The
    ``VOXINTENT_CONFIG_DIR`` environment variable overrides the config
    directory. Settings live under a ``decoder`` key::

        {"decoder": {"beam_width": 32, "endpoint_silence_ms": 640}}

    Returns a default config if the file does not exist or is not a JSON
    object.
    """
    config_path = (
        Path(path).expanduser() if path else config_dir() / DEFAULT_CONFIG_FILE
    )
    if not config_path.exists():
        return DecoderConfig()

    with open(config_path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        return DecoderConfig()

    decoder_raw = data.get("decoder", {})
    if not isinstance(decoder_raw, dict):
        return DecoderConfig()
    return make_decoder_config(decoder_raw)

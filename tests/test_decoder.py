"""Tests for voxintent.core.decoder: per-frame orchestration."""

from __future__ import annotations

import numpy as np
import pytest

from voxintent.core.config import DecoderConfig
from voxintent.core.constants import FRAME_LENGTH
from voxintent.core.decoder import Decoder, validate_frame, validate_pcm, validate_sensitivity
from voxintent.core.endpoint import FinalizeReason
from voxintent.core.grammar import Grammar
from voxintent.errors import InvalidArgumentError, InvalidStateError, OutOfMemoryError

from conftest import WordFrameScorer, frames_for, word_frame


def _decode(decoder: Decoder, frames: list[np.ndarray]) -> int:
    """Process frames until finalized; return the number consumed."""
    for i, frame in enumerate(frames, start=1):
        if decoder.process(frame):
            return i
    return len(frames)


@pytest.fixture
def decoder(lights_grammar: Grammar, word_scorer: WordFrameScorer) -> Decoder:
    return Decoder(lights_grammar, word_scorer, 0.5)


class TestValidateSensitivity:
    @pytest.mark.parametrize("value", [0, 0.0, 0.25, 1, 1.0])
    def test_accepts(self, value: float) -> None:
        assert validate_sensitivity(value) == float(value)

    @pytest.mark.parametrize("value", [-0.01, 1.01, float("nan"), None, "0.5", True])
    def test_rejects(self, value: object) -> None:
        with pytest.raises(InvalidArgumentError):
            validate_sensitivity(value)


class TestValidateFrame:
    def test_int16_array_passes_through(self) -> None:
        frame = np.zeros(FRAME_LENGTH, dtype=np.int16)
        assert validate_frame(frame) is frame

    def test_bytes(self) -> None:
        frame = np.arange(FRAME_LENGTH, dtype="<i2")
        out = validate_frame(frame.tobytes())
        assert out.dtype == np.int16
        np.testing.assert_array_equal(out, frame)

    def test_int_list(self) -> None:
        out = validate_frame([1] * FRAME_LENGTH)
        assert out.dtype == np.int16

    @pytest.mark.parametrize(
        "pcm",
        [
            None,
            np.zeros(FRAME_LENGTH - 1, dtype=np.int16),
            np.zeros((2, FRAME_LENGTH), dtype=np.int16),
            np.zeros(FRAME_LENGTH, dtype=np.float32),
            np.full(FRAME_LENGTH, 40_000, dtype=np.int32),
            b"\x00" * FRAME_LENGTH,
            "not audio",
        ],
    )
    def test_rejects(self, pcm: object) -> None:
        with pytest.raises(InvalidArgumentError):
            validate_frame(pcm)


class TestValidatePcm:
    def test_any_length(self) -> None:
        out = validate_pcm(np.arange(7, dtype=np.int64))
        assert out.dtype == np.int16
        assert out.shape == (7,)

    def test_empty_block(self) -> None:
        assert validate_pcm([]).size == 0

    def test_single_channel_column(self) -> None:
        out = validate_pcm(np.ones((5, 1), dtype=np.int16))
        assert out.shape == (5,)

    @pytest.mark.parametrize(
        "pcm",
        [
            None,
            b"\x00\x01\x02",
            np.array([32768], dtype=np.int32),
            np.array([-32769], dtype=np.int64),
            np.zeros(4, dtype=np.float64),
            np.zeros((3, 2), dtype=np.int16),
        ],
    )
    def test_rejects(self, pcm: object) -> None:
        with pytest.raises(InvalidArgumentError):
            validate_pcm(pcm)


class TestDecoder:
    def test_kitchen_light(self, decoder: Decoder, vocabulary: list[str]) -> None:
        frames = frames_for("turn on the kitchen light", vocabulary, trail=30)
        consumed = _decode(decoder, frames)
        assert decoder.finalized
        assert decoder.endpoint.reason is FinalizeReason.MATCH
        assert consumed == 2 + 15 + 15
        assert decoder.is_understood()
        result = decoder.result()
        assert result.intent == "turnLightOn"
        assert dict(result.slots) == {"location": "kitchen"}
        assert result.confidence == pytest.approx(1.0)

    def test_bedroom_off(self, decoder: Decoder, vocabulary: list[str]) -> None:
        _decode(decoder, frames_for("turn off the bedroom light", vocabulary, trail=30))
        result = decoder.result()
        assert result.intent == "turnLightOff"
        assert dict(result.slots) == {"location": "bedroom"}

    def test_garage_not_understood(self, decoder: Decoder, vocabulary: list[str]) -> None:
        frames = frames_for("turn on the garage light", vocabulary, trail=60)
        _decode(decoder, frames)
        assert decoder.endpoint.reason is FinalizeReason.SILENCE
        assert not decoder.is_understood()
        assert decoder.result().intent is None

    def test_silence_only(self, decoder: Decoder) -> None:
        consumed = _decode(decoder, [word_frame(0)] * 200)
        assert consumed == 125
        assert decoder.endpoint.reason is FinalizeReason.NO_SPEECH
        assert not decoder.is_understood()

    def test_result_before_finalize(self, decoder: Decoder) -> None:
        with pytest.raises(InvalidStateError):
            decoder.is_understood()
        decoder.process(word_frame(0))
        with pytest.raises(InvalidStateError):
            decoder.result()

    def test_process_after_finalize(self, decoder: Decoder) -> None:
        _decode(decoder, [word_frame(0)] * 200)
        with pytest.raises(InvalidStateError):
            decoder.process(word_frame(0))

    def test_bad_frame_leaves_state_unchanged(
        self, decoder: Decoder, vocabulary: list[str],
    ) -> None:
        for frame in frames_for("turn on", vocabulary):
            decoder.process(frame)
        frontier = decoder.frontier
        counters = decoder.endpoint.counters()
        for bad in (None, np.zeros(3, dtype=np.int16), np.zeros(FRAME_LENGTH, dtype=float)):
            with pytest.raises(InvalidArgumentError):
                decoder.process(bad)
        assert decoder.frontier is frontier
        assert decoder.endpoint.counters() == counters

    def test_scorer_failure_leaves_state_unchanged(
        self, decoder: Decoder, word_scorer: WordFrameScorer, vocabulary: list[str],
    ) -> None:
        for frame in frames_for("turn", vocabulary):
            decoder.process(frame)
        frontier = decoder.frontier
        counters = decoder.endpoint.counters()

        word_scorer.fail_next = ValueError("bad features")
        with pytest.raises(InvalidArgumentError):
            decoder.process(word_frame(1))
        word_scorer.fail_next = MemoryError()
        with pytest.raises(OutOfMemoryError):
            decoder.process(word_frame(1))

        assert decoder.frontier is frontier
        assert decoder.endpoint.counters() == counters

    def test_retry_after_bad_frame_matches_clean_run(
        self, lights_grammar: Grammar, vocabulary: list[str],
    ) -> None:
        frames = frames_for("turn on the kitchen light", vocabulary, trail=30)
        clean = Decoder(lights_grammar, WordFrameScorer(vocabulary), 0.5)
        _decode(clean, frames)

        noisy = Decoder(lights_grammar, WordFrameScorer(vocabulary), 0.5)
        for frame in frames:
            with pytest.raises(InvalidArgumentError):
                noisy.process(frame[:-1])
            if noisy.process(frame):
                break
        assert noisy.result() == clean.result()

    def test_reset_matches_fresh_session(
        self, decoder: Decoder, lights_grammar: Grammar,
        word_scorer: WordFrameScorer, vocabulary: list[str],
    ) -> None:
        fresh = Decoder(lights_grammar, WordFrameScorer(vocabulary), 0.5)
        _decode(decoder, frames_for("turn on the kitchen light", vocabulary, trail=30))
        decoder.reset()
        assert word_scorer.resets == 1
        assert not decoder.finalized
        assert len(decoder.frontier) == 1
        assert decoder.frontier.best == fresh.frontier.best
        assert decoder.endpoint.counters() == fresh.endpoint.counters()
        with pytest.raises(InvalidStateError):
            decoder.result()

    def test_reset_mid_utterance(self, decoder: Decoder, vocabulary: list[str]) -> None:
        for frame in frames_for("turn on the", vocabulary):
            decoder.process(frame)
        decoder.reset()
        _decode(decoder, frames_for("turn off the kitchen light", vocabulary, trail=30))
        assert decoder.result().intent == "turnLightOff"

    @pytest.mark.parametrize("sensitivity", [0.0, 0.3, 0.5, 0.7, 0.76, 0.9, 1.0])
    def test_sensitivity_monotonic(
        self, lights_grammar: Grammar, vocabulary: list[str], sensitivity: float,
    ) -> None:
        """Borderline audio, once accepted, stays accepted at higher sensitivity."""
        frames = frames_for("turn on the garage light", vocabulary, trail=60)

        def understood(value: float) -> bool:
            decoder = Decoder(lights_grammar, WordFrameScorer(vocabulary), value)
            _decode(decoder, frames)
            return decoder.is_understood()

        if understood(sensitivity):
            assert understood(min(1.0, sensitivity + 0.1))

    def test_borderline_accepted_at_high_sensitivity(
        self, lights_grammar: Grammar, vocabulary: list[str],
    ) -> None:
        frames = frames_for("turn on the garage light", vocabulary, trail=60)
        decoder = Decoder(lights_grammar, WordFrameScorer(vocabulary), 0.9)
        _decode(decoder, frames)
        assert decoder.is_understood()
        assert dict(decoder.result().slots) in ({"location": "kitchen"}, {"location": "bedroom"})

    def test_custom_config(self, lights_grammar: Grammar, vocabulary: list[str]) -> None:
        config = DecoderConfig(endpoint_silence_ms=64, incomplete_silence_ms=64)
        decoder = Decoder(lights_grammar, WordFrameScorer(vocabulary), 0.5, config)
        consumed = _decode(decoder, frames_for("turn on the kitchen light", vocabulary, trail=30))
        assert consumed == 2 + 15 + 2

    def test_minimum_beam_understands(
        self, lights_grammar: Grammar, vocabulary: list[str],
    ) -> None:
        decoder = Decoder(
            lights_grammar, WordFrameScorer(vocabulary), 0.5, DecoderConfig(beam_width=1),
        )
        _decode(decoder, frames_for("turn on the kitchen light", vocabulary, trail=30))
        assert decoder.endpoint.reason is FinalizeReason.MATCH
        assert decoder.is_understood()
        result = decoder.result()
        assert result.intent == "turnLightOn"
        assert dict(result.slots) == {"location": "kitchen"}

    def test_invalid_sensitivity(
        self, lights_grammar: Grammar, word_scorer: WordFrameScorer,
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            Decoder(lights_grammar, word_scorer, 1.5)

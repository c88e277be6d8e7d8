"""Public API for streaming speech-to-intent inference.

Typical usage::

    from voxintent.api import create

    with create("model.npz", "lights.json", sensitivity=0.5) as engine:
        for frame in frames:          # each frame: engine.frame_length samples
            if engine.process(frame):
                break
        if engine.is_understood():
            result = engine.get_intent()
            print(result.intent, dict(result.slots))
            engine.release_result(result)

A session is single-threaded: serialize calls into one ``SpeechToIntent``
yourself. To run several sessions on one context concurrently, compile the
grammar once with :func:`load_grammar` and build each session with
:meth:`SpeechToIntent.from_grammar`.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from types import MappingProxyType, TracebackType
from typing import TYPE_CHECKING, Any, Self

from voxintent import __version__
from voxintent.core.config import DecoderConfig
from voxintent.core.constants import DEFAULT_SENSITIVITY, FRAME_LENGTH, SAMPLE_RATE
from voxintent.core.context import load_context_file
from voxintent.core.decoder import Decoder, validate_pcm, validate_sensitivity
from voxintent.core.env import LOGGER
from voxintent.core.grammar import Grammar, compile_context
from voxintent.core.protocols import ScoringProvider
from voxintent.core.types import Inference
from voxintent.errors import (
    EngineIOError,
    InvalidArgumentError,
    InvalidStateError,
    OutOfMemoryError,
)

if TYPE_CHECKING:
    from voxintent.audio.frames import FrameChunker
    from voxintent.audio.vad import VadConfig


def version() -> str:
    """Semantic version of the engine."""
    return __version__


def frame_length() -> int:
    """Number of samples the engine consumes per frame."""
    return FRAME_LENGTH


def sample_rate() -> int:
    """Required audio sample rate in Hz (16-bit, mono)."""
    return SAMPLE_RATE


def load_grammar(context_path: str | Path, lexicon: Any = None) -> Grammar:
    """Read and compile a context file into a shareable :class:`Grammar`.

    Args:
        context_path: Path to a versioned context file.
        lexicon: Optional set of words the acoustic model can score; words
            outside it are rejected at compile time.
    """
    definition = load_context_file(context_path)
    return compile_context(definition, lexicon)


class SpeechToIntent:
    """One speech-to-intent session bound to a grammar and a scorer.

    Use :func:`create` or :meth:`from_grammar` to build instances.
    """

    __slots__ = ("_decoder", "_chunker", "_outstanding", "_deleted")

    def __init__(self, decoder: Decoder) -> None:
        self._decoder = decoder
        self._chunker: FrameChunker | None = None
        self._outstanding: dict[int, Inference] = {}
        self._deleted = False

    @classmethod
    def from_grammar(
        cls,
        grammar: Grammar,
        scorer: ScoringProvider,
        sensitivity: float = DEFAULT_SENSITIVITY,
        config: DecoderConfig | None = None,
    ) -> Self:
        """Build a session over an already compiled grammar."""
        return cls(Decoder(grammar, scorer, sensitivity, config))

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.delete()

    def _live(self) -> Decoder:
        if self._deleted:
            raise InvalidArgumentError("session has been deleted")
        return self._decoder

    @property
    def frame_length(self) -> int:
        return self._live().frame_length

    @property
    def sample_rate(self) -> int:
        return SAMPLE_RATE

    @property
    def version(self) -> str:
        return __version__

    @property
    def sensitivity(self) -> float:
        return self._live().sensitivity

    @property
    def decoder(self) -> Decoder:
        return self._live()

    @property
    def context_info(self) -> str:
        """Human-readable description of the compiled context."""
        return self._live().grammar.describe()

    @property
    def finalized(self) -> bool:
        return self._live().finalized

    def process(self, pcm: Any) -> bool:
        """Process one frame; return True once intent extraction is finalized."""
        return self._live().process(pcm)

    def feed(self, block: Any) -> bool:
        """Process a block of any length, frame by frame.

        Stops at the first finalizing frame; samples after it are dropped.
        A trailing partial frame is kept for the next call.
        """
        decoder = self._live()
        if self._chunker is None:
            from voxintent.audio.frames import FrameChunker

            self._chunker = FrameChunker.create(decoder.frame_length)
        for frame in self._chunker.push(validate_pcm(block)):
            if decoder.process(frame):
                self._chunker.reset()
                return True
        return False

    def is_understood(self) -> bool:
        """Whether the finalized utterance matched the context."""
        return self._live().is_understood()

    def get_intent(self) -> Inference:
        """Intent and slots of a finalized, understood utterance.

        The returned object stays registered with the session until passed
        to :meth:`release_result` or the session is deleted.
        """
        decoder = self._live()
        result = decoder.result()
        if not result.is_understood:
            raise InvalidStateError("utterance was not understood")
        try:
            copy = dataclasses.replace(
                result, slots=MappingProxyType(dict(result.slots)),
            )
        except MemoryError as exc:
            raise OutOfMemoryError("out of memory while copying the intent") from exc
        self._outstanding[id(copy)] = copy
        return copy

    def release_result(self, result: Inference) -> None:
        """Release a result obtained from :meth:`get_intent`."""
        self._live()
        if self._outstanding.get(id(result)) is not result:
            raise InvalidArgumentError("result was not issued by this session")
        del self._outstanding[id(result)]

    @property
    def outstanding_results(self) -> int:
        return len(self._outstanding)

    def reset(self) -> None:
        """Abandon the current utterance and start listening again."""
        self._live().reset()
        if self._chunker is not None:
            self._chunker.reset()

    def delete(self) -> None:
        """Release the session and every result it still owns."""
        if self._deleted:
            return
        self._outstanding.clear()
        self._deleted = True


def create(
    model_path: str | Path,
    context_path: str | Path,
    sensitivity: float = DEFAULT_SENSITIVITY,
    *,
    config: DecoderConfig | None = None,
    vad: VadConfig | None = None,
) -> SpeechToIntent:
    """Load a model and a context, and open a session.

    Args:
        model_path: Path to the acoustic model file.
        context_path: Path to the context file.
        sensitivity: Value in [0, 1]; higher accepts more borderline matches.
        config: Search and endpointing parameters.
        vad: Optional :class:`~voxintent.audio.vad.VadConfig`; when given,
            silence likelihood comes from WebRTC VAD.

    Raises:
        InvalidArgumentError: Missing paths, bad sensitivity, or a context
            the model cannot score.
        EngineIOError: Unreadable or unsupported model or context file.
        OutOfMemoryError: Allocation failure while loading.
    """
    if model_path is None or context_path is None:
        raise InvalidArgumentError("model and context paths are required")
    sensitivity = validate_sensitivity(sensitivity)

    from voxintent.model.loader import load_model

    try:
        model = load_model(model_path)
        if model.frame_length != FRAME_LENGTH or model.sample_rate != SAMPLE_RATE:
            raise EngineIOError(
                f"model expects {model.frame_length} samples at {model.sample_rate} Hz; "
                f"engine uses {FRAME_LENGTH} at {SAMPLE_RATE} Hz"
            )
        grammar = load_grammar(context_path, model.labels)
    except MemoryError as exc:
        raise OutOfMemoryError("out of memory while loading the engine") from exc

    scorer: ScoringProvider = model.scorer()
    if vad is not None:
        from voxintent.audio.vad import VadSilenceGate

        scorer = VadSilenceGate(scorer, vad)

    LOGGER.info(
        "Loaded context %s (%d intents) with sensitivity %.2f",
        Path(context_path).name, len(grammar.intents), sensitivity,
    )
    return SpeechToIntent.from_grammar(grammar, scorer, sensitivity, config)

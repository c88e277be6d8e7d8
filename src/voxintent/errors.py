"""Exception taxonomy for the speech-to-intent engine.

Every error carries the :class:`Status` code that a status-returning
binding would report for it.
"""

from enum import Enum


class Status(str, Enum):
    """Outcome codes of public engine operations."""

    SUCCESS = "SUCCESS"
    OUT_OF_MEMORY = "OUT_OF_MEMORY"
    IO_ERROR = "IO_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INVALID_STATE = "INVALID_STATE"


class VoxIntentError(Exception):
    """Base class for engine errors."""

    status: Status = Status.INVALID_ARGUMENT


class InvalidArgumentError(VoxIntentError, ValueError):
    """
    Raised for malformed input: wrong-length or non-PCM frames, a
    sensitivity outside [0, 1], a malformed context definition, or a
    session that has already been deleted.
    """

    status = Status.INVALID_ARGUMENT


class InvalidStateError(VoxIntentError, RuntimeError):
    """
    Raised when an operation is called out of lifecycle order, e.g.
    reading the intent before the utterance is finalized.
    """

    status = Status.INVALID_STATE


class EngineIOError(VoxIntentError, OSError):
    """Raised when a model or context file cannot be read or is unsupported."""

    status = Status.IO_ERROR


class OutOfMemoryError(VoxIntentError, MemoryError):
    """Raised when allocation fails during construction or result extraction."""

    status = Status.OUT_OF_MEMORY

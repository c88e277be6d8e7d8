"""Core data types shared across voxintent modules."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True, slots=True)
class Inference:
    """Immutable result of intent extraction for one utterance.

    Attributes:
        is_understood: Whether the utterance matched an expression of the
            context with enough confidence.
        intent: Intent name, or ``None`` when not understood.
        slots: Slot name to value, in the order the bindings were made.
        confidence: Per-frame geometric-mean likelihood of the winning path.
    """

    is_understood: bool
    intent: str | None = None
    slots: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    confidence: float = 0.0

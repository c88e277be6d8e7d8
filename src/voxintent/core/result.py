"""Result extraction: project the winning terminal path into an Inference."""

from types import MappingProxyType

from voxintent.core.grammar import Grammar
from voxintent.core.search import Frontier, Hypothesis
from voxintent.core.types import Inference

NOT_UNDERSTOOD = Inference(is_understood=False)


def acceptance_threshold(sensitivity: float) -> float:
    """Minimum confidence for a match; falls as sensitivity rises."""
    return 1.0 - sensitivity


def best_credible(frontier: Frontier, threshold: float) -> Hypothesis | None:
    """Highest-scoring terminal hypothesis whose confidence clears *threshold*."""
    for hyp in frontier.terminals():
        if hyp.utterance_frames and hyp.confidence >= threshold:
            return hyp
    return None


def project(hypothesis: Hypothesis, grammar: Grammar) -> Inference:
    """Build the result for an accepted hypothesis.

    Slots keep the order in which they were first bound; a slot bound more
    than once along the path keeps its last value.
    """
    slots: dict[str, str] = {}
    for name, value in hypothesis.bindings:
        slots[name] = value
    return Inference(
        is_understood=True,
        intent=grammar.intent_of(hypothesis.node),
        slots=MappingProxyType(slots),
        confidence=hypothesis.confidence,
    )


def extract(frontier: Frontier, grammar: Grammar, threshold: float) -> Inference:
    """Result of a finalized utterance; ``NOT_UNDERSTOOD`` if nothing qualifies."""
    hypothesis = best_credible(frontier, threshold)
    if hypothesis is None:
        return NOT_UNDERSTOOD
    return project(hypothesis, grammar)

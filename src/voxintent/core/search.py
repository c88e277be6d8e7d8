"""Hypothesis set: frame-synchronous beam search over a compiled grammar.

A search position is ``(node, edge)``. ``edge == GAP`` means the
hypothesis sits between words at ``node``; otherwise it is inside the word
of that edge and ``node`` is the edge's source. Per frame every hypothesis
moves to each successor position and consumes the frame there:

- ``gap(n)``     -> ``gap(n)`` or ``inside(e)`` for every edge ``e`` out of ``n``
- ``inside(e)``  -> ``inside(e)``, ``gap(e.target)``, or ``inside(e2)`` for
  every edge ``e2`` out of ``e.target``

Leaving an edge that completes a slot value records the binding. At each
position only the best-scoring hypothesis survives, which bounds the work
per frame by the beam width times the grammar fan-out.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Final, TypeAlias

from voxintent.core.constants import SCORE_FLOOR
from voxintent.core.grammar import START_NODE, Grammar
from voxintent.core.protocols import FrameScores

GAP: Final = -1
ROOT: Final = (START_NODE, GAP)

Position: TypeAlias = tuple[int, int]
Binding: TypeAlias = tuple[str, str]


@dataclass(frozen=True, slots=True)
class Hypothesis:
    """One partial path through the grammar.

    ``score`` is the log-domain total over every consumed frame and drives
    merging and pruning. ``utterance_score`` and ``utterance_frames`` only
    cover frames after the path left the root and before it settled at a
    terminal node, and feed the acceptance confidence.
    """

    node: int
    edge: int = GAP
    score: float = 0.0
    utterance_score: float = 0.0
    utterance_frames: int = 0
    bindings: tuple[Binding, ...] = ()

    @property
    def position(self) -> Position:
        return (self.node, self.edge)

    @property
    def confidence(self) -> float:
        """Geometric-mean per-frame likelihood over the utterance, in [0, 1]."""
        if self.utterance_frames == 0:
            return 0.0
        return min(1.0, math.exp(self.utterance_score / self.utterance_frames))


class Frontier:
    """Immutable set of surviving hypotheses, keyed by position.

    ``advance`` returns a new frontier and never mutates the current one,
    so a frame that fails part-way leaves the session's search untouched.
    """

    __slots__ = ("_grammar", "_hypotheses", "_best")

    def __init__(self, grammar: Grammar, hypotheses: dict[Position, Hypothesis]) -> None:
        self._grammar = grammar
        self._hypotheses = hypotheses
        self._best = max(
            hypotheses.values(), key=lambda h: (h.score, h.position == ROOT),
        )

    @classmethod
    def initial(cls, grammar: Grammar) -> Frontier:
        return cls(grammar, {ROOT: Hypothesis(START_NODE)})

    def __len__(self) -> int:
        return len(self._hypotheses)

    def __iter__(self) -> Iterator[Hypothesis]:
        return iter(self._hypotheses.values())

    def __contains__(self, position: object) -> bool:
        return position in self._hypotheses

    @property
    def best(self) -> Hypothesis:
        return self._best

    @property
    def advanced(self) -> bool:
        """Whether the best hypothesis has moved past the root."""
        return self._best.position != ROOT

    def get(self, position: Position) -> Hypothesis | None:
        return self._hypotheses.get(position)

    def terminals(self) -> list[Hypothesis]:
        """Hypotheses resting at a terminal node, best first."""
        found = [
            h for h in self._hypotheses.values()
            if h.edge == GAP and self._grammar.is_terminal(h.node)
        ]
        found.sort(key=lambda h: h.score, reverse=True)
        return found

    def active_labels(self) -> frozenset[str]:
        """Labels any successor position may consume in the next frame."""
        grammar = self._grammar
        labels: set[str] = set()
        for hyp in self._hypotheses.values():
            if hyp.edge == GAP:
                nxt = grammar.outgoing(hyp.node)
            elif 0 <= hyp.edge < len(grammar.edges):
                edge = grammar.edges[hyp.edge]
                labels.add(edge.label)
                nxt = grammar.outgoing(edge.target)
            else:
                continue
            labels.update(grammar.edges[e].label for e in nxt)
        return frozenset(labels)

    def _successors(
        self, hyp: Hypothesis,
    ) -> Iterator[tuple[int, int, Binding | None]]:
        grammar = self._grammar
        if hyp.edge == GAP:
            yield hyp.node, GAP, None
            for edge_id in grammar.outgoing(hyp.node):
                yield hyp.node, edge_id, None
            return
        if not 0 <= hyp.edge < len(grammar.edges):
            return
        edge = grammar.edges[hyp.edge]
        yield hyp.node, hyp.edge, None
        binding = (edge.slot, edge.value) if edge.slot and edge.value else None
        yield edge.target, GAP, binding
        for edge_id in grammar.outgoing(edge.target):
            yield edge.target, edge_id, binding

    def advance(
        self, scores: FrameScores, beam_width: int, prune_margin: float,
    ) -> Frontier:
        """Consume one frame and return the pruned successor frontier.

        Up to ``beam_width`` hypotheses survive besides the root gap
        hypothesis. The root is always kept, so audio that never matches
        leaves the search at the root instead of emptying it.
        """
        grammar = self._grammar
        silence_score = math.log(max(min(scores.silence, 1.0), SCORE_FLOOR))
        candidates: dict[Position, Hypothesis] = {}

        for hyp in self._hypotheses.values():
            for node, edge_id, binding in self._successors(hyp):
                if edge_id == GAP:
                    emission = silence_score
                    counted = node != START_NODE and not grammar.is_terminal(node)
                else:
                    emission = scores.labels.get(grammar.edges[edge_id].label)
                    if emission is None:
                        continue
                    counted = True
                score = hyp.score + emission
                current = candidates.get((node, edge_id))
                if current is not None and current.score >= score:
                    continue
                candidates[(node, edge_id)] = Hypothesis(
                    node=node,
                    edge=edge_id,
                    score=score,
                    utterance_score=hyp.utterance_score + (emission if counted else 0.0),
                    utterance_frames=hyp.utterance_frames + int(counted),
                    bindings=hyp.bindings + (binding,) if binding else hyp.bindings,
                )

        best_score = max(h.score for h in candidates.values())
        floor = best_score - prune_margin
        ranked = sorted(
            (h for pos, h in candidates.items() if pos != ROOT and h.score >= floor),
            key=lambda h: (-h.score, h.position),
        )
        survivors = {ROOT: candidates[ROOT]}
        for hyp in ranked[:beam_width]:
            survivors[hyp.position] = hyp
        return Frontier(grammar, survivors)

"""Compiled grammar: an immutable arena of nodes and word edges.

Nodes are integer ids; node 0 is the start node. Expressions are inserted
as a prefix trie, so expressions sharing a prefix share edges. Every slot
reference gets a join node that all of the slot's values lead into, which
lets the search merge hypotheses that differ only in the bound value.

A compiled ``Grammar`` holds only tuples and read-only mappings and may be
shared by any number of concurrently running sessions.
"""

from __future__ import annotations

from collections.abc import Mapping, Set
from dataclasses import dataclass
from typing import TypeAlias
from types import MappingProxyType

from voxintent.core.context import ContextDefinition, Literal, SlotRef, parse_template
from voxintent.core.env import LOGGER
from voxintent.errors import InvalidArgumentError

START_NODE = 0

_EdgeKey: TypeAlias = tuple[str, str | None, str | None, int | None]


@dataclass(frozen=True, slots=True)
class Edge:
    """One expected word between two grammar nodes.

    Attributes:
        source: Node the edge leaves.
        target: Node the edge enters.
        label: Acoustic label (a single word) expected on this edge.
        slot: Slot name when the word belongs to a slot value.
        value: Complete slot value; set only on the last word of the value,
            where the binding is made.
        closes: Intent name when *target* is a terminal node.
    """

    source: int
    target: int
    label: str
    slot: str | None = None
    value: str | None = None
    closes: str | None = None


class Grammar:
    """Read-only transition network compiled from a context."""

    __slots__ = ("definition", "edges", "labels", "_outgoing", "_intents")

    def __init__(
        self,
        definition: ContextDefinition,
        edges: tuple[Edge, ...],
        outgoing: tuple[tuple[int, ...], ...],
        intents: Mapping[int, str],
    ) -> None:
        self.definition = definition
        self.edges = edges
        self.labels = frozenset(e.label for e in edges)
        self._outgoing = outgoing
        self._intents = MappingProxyType(dict(intents))

    @property
    def start(self) -> int:
        return START_NODE

    @property
    def num_nodes(self) -> int:
        return len(self._outgoing)

    @property
    def intents(self) -> tuple[str, ...]:
        return tuple(self.definition.expressions)

    def outgoing(self, node: int) -> tuple[int, ...]:
        """Edge ids leaving *node*; empty for unknown nodes."""
        if 0 <= node < len(self._outgoing):
            return self._outgoing[node]
        return ()

    def intent_of(self, node: int) -> str | None:
        """Owning intent of a terminal node, ``None`` elsewhere."""
        return self._intents.get(node)

    def is_terminal(self, node: int) -> bool:
        return node in self._intents

    def describe(self) -> str:
        """Human-readable listing of expressions and slot values."""
        lines = ["context:", "  expressions:"]
        for intent, templates in self.definition.expressions.items():
            lines.append(f"    {intent}:")
            lines.extend(f'      - "{t}"' for t in templates)
        lines.append("  slots:")
        for slot_type, values in self.definition.slots.items():
            lines.append(f"    {slot_type}:")
            lines.extend(f'      - "{v}"' for v in values)
        return "\n".join(lines)


class _Builder:
    """Mutable trie used only during compilation."""

    def __init__(self) -> None:
        self.edges: list[Edge] = []
        self.children: list[dict[_EdgeKey, int]] = [{}]
        self.joins: dict[tuple[int, str, str], int] = {}
        self.intents: dict[int, str] = {}

    def _new_node(self) -> int:
        self.children.append({})
        return len(self.children) - 1

    def child(self, node: int, key: _EdgeKey, target: int | None = None) -> int:
        existing = self.children[node].get(key)
        if existing is not None:
            return existing
        if target is None:
            target = self._new_node()
        label, slot, value, _ = key
        self.children[node][key] = target
        self.edges.append(Edge(node, target, label, slot, value))
        return target

    def literal(self, node: int, word: str) -> int:
        return self.child(node, (word, None, None, None))

    def slot(self, node: int, ref: SlotRef, values: tuple[str, ...]) -> int:
        join_key = (node, ref.slot_type, ref.name)
        join = self.joins.get(join_key)
        if join is not None:
            return join
        join = self._new_node()
        self.joins[join_key] = join
        for value in values:
            words = value.split()
            cursor = node
            for word in words[:-1]:
                cursor = self.child(cursor, (word, ref.name, None, None))
            self.child(cursor, (words[-1], ref.name, value, join), target=join)
        return join

    def mark_terminal(self, node: int, intent: str) -> None:
        owner = self.intents.setdefault(node, intent)
        if owner != intent:
            raise InvalidArgumentError(
                f"intents {owner!r} and {intent!r} share an expression"
            )

    def freeze(self, definition: ContextDefinition) -> Grammar:
        edges = tuple(
            Edge(
                e.source, e.target, e.label, e.slot, e.value,
                closes=self.intents.get(e.target),
            )
            for e in self.edges
        )
        outgoing: list[list[int]] = [[] for _ in self.children]
        for edge_id, edge in enumerate(edges):
            outgoing[edge.source].append(edge_id)
        return Grammar(
            definition,
            edges,
            tuple(tuple(ids) for ids in outgoing),
            self.intents,
        )


def compile_context(
    definition: ContextDefinition, lexicon: Set[str] | None = None,
) -> Grammar:
    """Compile a context definition into a :class:`Grammar`.

    When *lexicon* is given, every word the grammar expects must be in it.
    Raises ``InvalidArgumentError`` for unknown slot types, shared
    expressions between intents, or words missing from the lexicon.
    """
    builder = _Builder()
    for intent, templates in definition.expressions.items():
        for template in templates:
            for units in parse_template(template):
                frontier = {START_NODE}
                for unit in units:
                    if isinstance(unit, Literal):
                        frontier = {builder.literal(n, unit.word) for n in frontier}
                    else:
                        values = definition.slot_values(unit.slot_type)
                        frontier = {builder.slot(n, unit, values) for n in frontier}
                for node in frontier:
                    builder.mark_terminal(node, intent)

    grammar = builder.freeze(definition)
    if lexicon is not None:
        missing = sorted(grammar.labels - set(lexicon))
        if missing:
            raise InvalidArgumentError(
                f"words not in the acoustic model lexicon: {', '.join(missing)}"
            )
    LOGGER.debug(
        "Compiled grammar: %d intents, %d nodes, %d edges",
        len(definition.expressions), grammar.num_nodes, len(grammar.edges),
    )
    return grammar

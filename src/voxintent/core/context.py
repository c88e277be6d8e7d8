"""Context definitions: intents, slot types, and expression templates.

A context file is versioned JSON::

    {
      "format_version": 1,
      "context": {
        "expressions": {
          "turnLightOn": ["turn on the $location:location light"]
        },
        "slots": {"location": ["kitchen", "bedroom"]}
      }
    }

Template tokens are literal words, ``$slotType:slotName`` references,
``[a, b]`` choices (exactly one), and ``(a)`` optionals.
"""

from __future__ import annotations

import itertools
import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Final, TypeAlias

from voxintent.core.constants import CONTEXT_FORMAT_VERSION
from voxintent.errors import EngineIOError, InvalidArgumentError

BUILTIN_SLOTS: Final = MappingProxyType(
    {
        "builtin.Digit": (
            "zero", "one", "two", "three", "four",
            "five", "six", "seven", "eight", "nine",
        ),
    }
)
MAX_EXPANSIONS: Final = 4096

_WORD = r"[a-z0-9][a-z0-9'\-]*"
_TOKEN_RE: Final = re.compile(
    rf"(?P<slot>\$(?P<type>[A-Za-z_][\w.]*):(?P<name>[A-Za-z_]\w*))"
    r"|(?P<choice>\[[^\[\]()]*\])"
    r"|(?P<optional>\([^\[\]()]*\))"
    r"|(?P<word>[A-Za-z0-9][A-Za-z0-9'\-]*)"
    r"|(?P<bad>\S)"
)
_WORD_RE: Final = re.compile(rf"^{_WORD}$")


@dataclass(frozen=True, slots=True)
class Literal:
    """A literal word of an expression."""

    word: str


@dataclass(frozen=True, slots=True)
class SlotRef:
    """A reference binding *name* to a value of *slot_type*."""

    slot_type: str
    name: str


Unit: TypeAlias = Literal | SlotRef


@dataclass(frozen=True, slots=True)
class ContextDefinition:
    """Uncompiled context: expressions per intent and values per slot type."""

    expressions: Mapping[str, tuple[str, ...]]
    slots: Mapping[str, tuple[str, ...]]

    @classmethod
    def from_dict(cls, raw: Any) -> ContextDefinition:
        """Validate the ``context`` object of a context file."""
        if not isinstance(raw, dict):
            raise InvalidArgumentError("context must be a JSON object")
        expressions_raw = raw.get("expressions")
        if not isinstance(expressions_raw, dict) or not expressions_raw:
            raise InvalidArgumentError("context defines no expressions")
        slots_raw = raw.get("slots", {})
        if not isinstance(slots_raw, dict):
            raise InvalidArgumentError("context slots must be a JSON object")

        expressions: dict[str, tuple[str, ...]] = {}
        for intent, templates in expressions_raw.items():
            if not isinstance(templates, list) or not templates:
                raise InvalidArgumentError(f"intent {intent!r} has no expressions")
            expressions[str(intent)] = tuple(str(t) for t in templates)

        slots: dict[str, tuple[str, ...]] = {}
        for slot_type, values in slots_raw.items():
            if not isinstance(values, list) or not values:
                raise InvalidArgumentError(f"slot {slot_type!r} has no values")
            slots[str(slot_type)] = tuple(
                _normalize_phrase(str(v), f"slot {slot_type!r}") for v in values
            )

        return cls(
            expressions=MappingProxyType(expressions),
            slots=MappingProxyType(slots),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "expressions": {k: list(v) for k, v in self.expressions.items()},
            "slots": {k: list(v) for k, v in self.slots.items()},
        }

    def slot_values(self, slot_type: str) -> tuple[str, ...]:
        """Values of a declared or built-in slot type."""
        if slot_type in self.slots:
            return self.slots[slot_type]
        if slot_type in BUILTIN_SLOTS:
            return BUILTIN_SLOTS[slot_type]
        raise InvalidArgumentError(f"unknown slot type {slot_type!r}")


def _normalize_phrase(text: str, where: str) -> str:
    words = text.lower().split()
    if not words:
        raise InvalidArgumentError(f"empty phrase in {where}")
    for word in words:
        if not _WORD_RE.match(word):
            raise InvalidArgumentError(f"invalid word {word!r} in {where}")
    return " ".join(words)


def _phrase_options(body: str, template: str) -> list[tuple[Unit, ...]]:
    """Split a choice/optional body on commas into literal sequences."""
    options = []
    for part in body.split(","):
        phrase = _normalize_phrase(part, repr(template))
        options.append(tuple(Literal(w) for w in phrase.split()))
    return options


def parse_template(template: str) -> list[tuple[Unit, ...]]:
    """Expand one expression template into its unit sequences.

    Choices multiply the number of sequences; optionals add a sequence
    without the optional part. Raises ``InvalidArgumentError`` for
    malformed templates or when expansion exceeds ``MAX_EXPANSIONS``.
    """
    alternatives: list[list[tuple[Unit, ...]]] = []
    for match in _TOKEN_RE.finditer(template):
        kind = match.lastgroup
        if kind == "bad" or kind is None:
            raise InvalidArgumentError(
                f"unexpected {match.group()!r} in expression {template!r}"
            )
        if kind == "slot":
            alternatives.append(
                [(SlotRef(match.group("type"), match.group("name")),)]
            )
        elif kind == "choice":
            alternatives.append(_phrase_options(match.group()[1:-1], template))
        elif kind == "optional":
            alternatives.append(
                [(), *_phrase_options(match.group()[1:-1], template)]
            )
        else:
            alternatives.append([(Literal(match.group().lower()),)])

    count = 1
    for options in alternatives:
        count *= len(options)
    if count > MAX_EXPANSIONS:
        raise InvalidArgumentError(f"expression {template!r} expands too far")

    sequences = []
    for combo in itertools.product(*alternatives):
        units = tuple(unit for part in combo for unit in part)
        if units:
            sequences.append(units)
    if not sequences:
        raise InvalidArgumentError(f"expression {template!r} is empty")
    return sequences


def load_context_file(path: str | Path) -> ContextDefinition:
    """Read and validate a versioned context file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise EngineIOError(f"cannot read context file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise EngineIOError(f"context file {path} is not a JSON object")
    version = data.get("format_version")
    if version != CONTEXT_FORMAT_VERSION:
        raise EngineIOError(
            f"unsupported context format version {version!r} in {path}"
        )
    return ContextDefinition.from_dict(data.get("context"))


def save_context_file(definition: ContextDefinition, path: str | Path) -> None:
    """Write *definition* as a versioned context file."""
    payload = {
        "format_version": CONTEXT_FORMAT_VERSION,
        "context": definition.to_dict(),
    }
    Path(path).write_text(json.dumps(payload, indent=2), encoding="utf-8")

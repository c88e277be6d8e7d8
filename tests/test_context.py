"""Tests for voxintent.core.context: templates and context files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from voxintent.core.context import (
    BUILTIN_SLOTS,
    MAX_EXPANSIONS,
    ContextDefinition,
    Literal,
    SlotRef,
    load_context_file,
    parse_template,
    save_context_file,
)
from voxintent.errors import EngineIOError, InvalidArgumentError

from conftest import LIGHTS_CONTEXT, write_context


class TestParseTemplate:
    def test_literals_and_slot(self) -> None:
        (units,) = parse_template("Turn on the $location:room light")
        assert units == (
            Literal("turn"),
            Literal("on"),
            Literal("the"),
            SlotRef("location", "room"),
            Literal("light"),
        )

    def test_choice_expands_each_option(self) -> None:
        sequences = parse_template("[switch, turn] on")
        assert sequences == [
            (Literal("switch"), Literal("on")),
            (Literal("turn"), Literal("on")),
        ]

    def test_optional_adds_shorter_form(self) -> None:
        sequences = parse_template("turn on (the) light")
        assert len(sequences) == 2
        assert (Literal("turn"), Literal("on"), Literal("light")) in sequences

    def test_multiword_choice(self) -> None:
        sequences = parse_template("[living room, hall]")
        assert (Literal("living"), Literal("room")) in sequences

    def test_builtin_slot_type(self) -> None:
        (units,) = parse_template("$builtin.Digit:count")
        assert units == (SlotRef("builtin.Digit", "count"),)

    @pytest.mark.parametrize("template", ["turn on!", "turn [on", "$location", ""])
    def test_malformed_raises(self, template: str) -> None:
        with pytest.raises(InvalidArgumentError):
            parse_template(template)

    def test_lone_optional_drops_empty_form(self) -> None:
        assert parse_template("(please)") == [(Literal("please"),)]

    def test_expansion_limit(self) -> None:
        template = " ".join(["[a, b]"] * 13)
        assert 2**13 > MAX_EXPANSIONS
        with pytest.raises(InvalidArgumentError):
            parse_template(template)


class TestContextDefinition:
    def test_from_dict(self) -> None:
        definition = ContextDefinition.from_dict(LIGHTS_CONTEXT)
        assert list(definition.expressions) == ["turnLightOn", "turnLightOff"]
        assert definition.slots["location"] == ("kitchen", "bedroom")

    def test_slot_values_are_normalized(self) -> None:
        definition = ContextDefinition.from_dict(
            {"expressions": {"go": ["go $place:place"]}, "slots": {"place": ["Living  Room"]}}
        )
        assert definition.slot_values("place") == ("living room",)

    def test_builtin_values(self) -> None:
        definition = ContextDefinition.from_dict(LIGHTS_CONTEXT)
        assert definition.slot_values("builtin.Digit") == BUILTIN_SLOTS["builtin.Digit"]

    def test_unknown_slot_type(self) -> None:
        definition = ContextDefinition.from_dict(LIGHTS_CONTEXT)
        with pytest.raises(InvalidArgumentError):
            definition.slot_values("colour")

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            [],
            {"expressions": {}},
            {"expressions": {"a": []}},
            {"expressions": {"a": ["go"]}, "slots": []},
            {"expressions": {"a": ["go"]}, "slots": {"s": []}},
            {"expressions": {"a": ["go"]}, "slots": {"s": ["café!"]}},
        ],
    )
    def test_invalid_raises(self, raw: object) -> None:
        with pytest.raises(InvalidArgumentError):
            ContextDefinition.from_dict(raw)

    def test_frozen(self) -> None:
        definition = ContextDefinition.from_dict(LIGHTS_CONTEXT)
        with pytest.raises(AttributeError):
            definition.slots = {}


class TestContextFile:
    def test_load(self, context_file: Path) -> None:
        definition = load_context_file(context_file)
        assert definition.to_dict() == LIGHTS_CONTEXT

    def test_save_then_load(self, tmp_path: Path) -> None:
        definition = ContextDefinition.from_dict(LIGHTS_CONTEXT)
        path = tmp_path / "saved.json"
        save_context_file(definition, path)
        assert load_context_file(path).to_dict() == definition.to_dict()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(EngineIOError):
            load_context_file(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(EngineIOError):
            load_context_file(path)

    def test_wrong_version(self, tmp_path: Path) -> None:
        path = tmp_path / "future.json"
        path.write_text(
            json.dumps({"format_version": 99, "context": LIGHTS_CONTEXT}),
            encoding="utf-8",
        )
        with pytest.raises(EngineIOError):
            load_context_file(path)

    def test_bad_context_is_invalid_argument(self, tmp_path: Path) -> None:
        path = write_context(tmp_path / "empty.json", {"expressions": {}})
        with pytest.raises(InvalidArgumentError):
            load_context_file(path)

    def test_io_error_is_oserror(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            load_context_file(tmp_path / "absent.json")

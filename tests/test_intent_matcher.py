from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from convo_core.services.intent_matcher import IntentMatcher, channels_for, parse_examples


def intent_row(id, name, examples, priority=100, language=None, channel="whatsapp", response=None):
    return SimpleNamespace(
        id=id,
        tenant_id="t1",
        channel=channel,
        name=name,
        examples=examples,
        response=response or f"resp {name}",
        language=language,
        priority=priority,
        active=True,
    )


def matcher_with(rows, threshold=0.55):
    db = Mock()
    db.query.return_value.filter.return_value.order_by.return_value.all.return_value = rows
    return IntentMatcher(db, threshold=threshold), db


class TestParseExamples:
    def test_list(self):
        assert parse_examples(["hola", "buenas"]) == ["hola", "buenas"]

    def test_postgres_array_literal(self):
        assert parse_examples('{hola,"buenos dias","a, b"}') == ["hola", "buenos dias", "a, b"]

    def test_empty(self):
        assert parse_examples("{}") == []
        assert parse_examples(None) == []
        assert parse_examples(42) == []


class TestChannels:
    def test_meta_expands(self):
        assert channels_for("meta") == ["meta", "facebook", "instagram"]

    def test_plain_channel(self):
        assert channels_for("WhatsApp") == ["whatsapp"]
        assert channels_for(None) == ["whatsapp"]


class TestMatch:
    def test_best_row_wins(self):
        rows = [
            intent_row(1, "horario", ["a que hora abren", "horario"]),
            intent_row(2, "precios", ["cuanto cuesta", "precios"]),
        ]
        matcher, _ = matcher_with(rows)

        match = matcher.match("t1", "whatsapp", "¿Cuánto cuesta?")

        assert match["intent"] == "precios"
        assert match["id"] == 2
        assert match["score"] == 1.0
        assert match["matched_pattern"] == "cuanto cuesta"
        assert match["response"] == "resp precios"

    def test_repeated_letters_are_squashed(self):
        matcher, _ = matcher_with([intent_row(1, "precios", ["precios"])])
        assert matcher.match("t1", "whatsapp", "preciiiooos")["intent"] == "precios"

    def test_tie_goes_to_first_row(self):
        rows = [
            intent_row(1, "high_priority", ["hola"], priority=1),
            intent_row(2, "low_priority", ["hola"], priority=5),
        ]
        matcher, _ = matcher_with(rows)
        assert matcher.match("t1", "whatsapp", "hola")["intent"] == "high_priority"

    def test_below_threshold_returns_none(self):
        matcher, _ = matcher_with([intent_row(1, "horario", ["horario de atencion sabados"])])
        assert matcher.match("t1", "whatsapp", "quiero el horario") is None

    def test_threshold_override(self):
        matcher, _ = matcher_with([intent_row(1, "horario", ["horario de atencion sabados"])])
        assert matcher.match("t1", "whatsapp", "quiero el horario", threshold=0.3)["intent"] == "horario"

    def test_language_filter_keeps_untagged_rows(self):
        rows = [
            intent_row(1, "hello_en", ["hello"], language="en"),
            intent_row(2, "hello_any", ["hello"]),
        ]
        matcher, _ = matcher_with(rows)
        assert matcher.match("t1", "whatsapp", "hello", detected_lang="es")["intent"] == "hello_any"
        assert matcher.match("t1", "whatsapp", "hello", detected_lang="EN")["intent"] == "hello_en"

    def test_examples_from_array_literal(self):
        matcher, _ = matcher_with([intent_row(1, "saludo", '{hola,"buenos dias"}')])
        assert matcher.match("t1", "whatsapp", "Buenos días!")["matched_pattern"] == "buenos dias"

    @pytest.mark.parametrize("text", ["", "   ", "?!"])
    def test_empty_message(self, text):
        matcher, db = matcher_with([intent_row(1, "x", ["hola"])])
        assert matcher.match("t1", "whatsapp", text) is None
        db.query.assert_not_called()

"""Tests for inclusion conditions (blueprint_engine.registry.conditions).

Covers:
- Text grammar: comparisons, membership, exists(), boolean operators
- Mapping form and its equivalence with the text form
- Evaluation semantics, including bool/int separation
- Undefined references are reported before evaluation
- Syntax errors
"""

from __future__ import annotations

import pytest

from blueprint_engine.registry.conditions import (
    ALWAYS,
    And,
    ConditionSyntaxError,
    Const,
    Eq,
    Exists,
    In,
    Not,
    Or,
    UnresolvedReference,
    parse_condition,
)

pytestmark = pytest.mark.unit


VARS = {
    "architecture": "clean",
    "database.driver": "postgres",
    "auth.type": "",
    "with_tests": True,
    "replicas": 3,
}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseText:
    def test_equality(self):
        assert parse_condition('architecture == "clean"') == Eq("architecture", "clean")

    def test_inequality_is_negated_equality(self):
        assert parse_condition('database.driver != ""') == Not(Eq("database.driver", ""))

    def test_membership(self):
        cond = parse_condition('auth.type in ["jwt", "session"]')
        assert cond == In("auth.type", ("jwt", "session"))

    def test_not_in(self):
        cond = parse_condition("architecture not in ['ddd', 'hexagonal']")
        assert cond == Not(In("architecture", ("ddd", "hexagonal")))

    def test_bare_identifier_means_true(self):
        assert parse_condition("with_tests") == Eq("with_tests", True)

    def test_exists(self):
        assert parse_condition("exists(database.driver)") == Exists("database.driver")

    def test_literals(self):
        assert parse_condition("replicas == 3") == Eq("replicas", 3)
        assert parse_condition("with_tests == false") == Eq("with_tests", False)
        assert parse_condition("true") == Const(True)

    def test_precedence_and_binds_tighter_than_or(self):
        cond = parse_condition("a or b and c")
        assert cond == Or((Eq("a", True), And((Eq("b", True), Eq("c", True)))))

    def test_parentheses(self):
        cond = parse_condition("(a or b) and not c")
        assert cond == And((Or((Eq("a", True), Eq("b", True))), Not(Eq("c", True))))

    def test_empty_text_is_always(self):
        assert parse_condition("   ") is ALWAYS

    def test_none_and_bools(self):
        assert parse_condition(None) is ALWAYS
        assert parse_condition(False) == Const(False)

    def test_condition_passes_through(self):
        node = Exists("x")
        assert parse_condition(node) is node


class TestParseMapping:
    def test_equivalent_to_text(self):
        text = parse_condition('architecture == "clean" and exists(database.driver)')
        mapping = parse_condition(
            {"and": [{"eq": ["architecture", "clean"]}, {"exists": "database.driver"}]}
        )
        assert text == mapping

    def test_ne_and_not_in(self):
        assert parse_condition({"ne": ["auth.type", ""]}) == Not(Eq("auth.type", ""))
        assert parse_condition({"not_in": ["x", ["a"]]}) == Not(In("x", ("a",)))

    def test_not_nested(self):
        assert parse_condition({"not": "with_tests"}) == Not(Eq("with_tests", True))

    @pytest.mark.parametrize(
        "raw",
        [
            {"eq": ["x", "a"], "ne": ["y", "b"]},
            {"xor": ["a", "b"]},
            {"eq": "x"},
            {"in": ["x", "not-a-list"]},
            {"and": []},
            {"exists": 3},
            {"eq": ["x", 1.5]},
        ],
    )
    def test_malformed_mappings(self, raw):
        with pytest.raises(ConditionSyntaxError):
            parse_condition(raw)

    def test_unsupported_type(self):
        with pytest.raises(ConditionSyntaxError):
            parse_condition(42)


class TestSyntaxErrors:
    @pytest.mark.parametrize(
        "text",
        [
            'architecture ==',
            'architecture == "clean" and',
            "(a or b",
            "a b",
            "exists(x",
            'x in "a"',
            "x == y",
            "a & b",
        ],
    )
    def test_rejected(self, text):
        with pytest.raises(ConditionSyntaxError):
            parse_condition(text)

    @pytest.mark.parametrize(
        "text, offset",
        [("a b", 2), ("with_tests  exists", 12), ('(x == "y") true', 11)],
    )
    def test_offset_of_trailing_token(self, text, offset):
        with pytest.raises(ConditionSyntaxError, match=f"at offset {offset} "):
            parse_condition(text)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


class TestEvaluate:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ('architecture == "clean"', True),
            ('architecture == "ddd"', False),
            ('database.driver != ""', True),
            ('auth.type in ["jwt", "session"]', False),
            ('architecture in ["clean", "ddd"]', True),
            ("with_tests", True),
            ("not with_tests", False),
            ("replicas == 3", True),
            ("exists(database.driver)", True),
            ("exists(auth.type)", False),
            ('architecture == "clean" and not exists(auth.type)', True),
            ('architecture == "ddd" or replicas == 3', True),
        ],
    )
    def test_truth_table(self, text, expected):
        assert parse_condition(text).evaluate(VARS) is expected

    def test_exists_is_false_for_absent_and_none(self):
        assert Exists("missing").evaluate({}) is False
        assert Exists("x").evaluate({"x": None}) is False
        assert Exists("x").evaluate({"x": False}) is True

    def test_bool_and_int_never_match(self):
        assert Eq("flag", True).evaluate({"flag": 1}) is False
        assert Eq("count", 1).evaluate({"count": True}) is False
        assert In("count", (1, 2)).evaluate({"count": True}) is False

    def test_always(self):
        assert ALWAYS.evaluate({}) is True


class TestUnresolvedReferences:
    def test_missing_name_raises(self):
        with pytest.raises(UnresolvedReference) as exc_info:
            parse_condition('framework == "gin"').evaluate(VARS)
        assert exc_info.value.names == ["framework"]

    def test_checked_before_short_circuit(self):
        # The left operand is already false; the right still must resolve.
        cond = parse_condition('architecture == "ddd" and framework == "gin"')
        with pytest.raises(UnresolvedReference):
            cond.evaluate(VARS)

    def test_exists_does_not_require_presence(self):
        assert parse_condition("exists(framework)").references() == frozenset()

    def test_references_are_collected(self):
        cond = parse_condition('a == "x" or (b and not c in [1])')
        assert cond.references() == frozenset({"a", "b", "c"})

    def test_mentions_include_exists_operands(self):
        cond = parse_condition('not exists(auth.type) or (a in [1] and exists(database.driver))')
        assert cond.references() == frozenset({"a"})
        assert cond.mentions() == frozenset({"a", "auth.type", "database.driver"})


class TestRendering:
    def test_str_round_trips_through_parser(self):
        cond = parse_condition('architecture == "clean" and (auth.type in ["jwt"] or not with_tests)')
        assert parse_condition(str(cond)) == cond

    def test_to_dict_round_trips_through_parser(self):
        cond = parse_condition('exists(database.driver) or replicas == 2')
        assert parse_condition(cond.to_dict()) == cond

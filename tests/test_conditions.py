"""
Tests for condition evaluation and skip/end navigation decisions.

Pure functions over a response map; no session state involved.
"""

import math
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from questionflow.logic.conditions import as_text, evaluate, matching_rules, strict_equals, to_number
from questionflow.logic.navigation import should_end_survey, skip_target
from questionflow.schemas import ConditionalRule, RuleAction, RuleOperator


def _rule(operator, value, source=1, action=RuleAction.SHOW, target=2, rule_id=None):
    return ConditionalRule(
        id=rule_id or f"{action.value}_{RuleOperator(operator).value}",
        source_question_id=source,
        operator=RuleOperator(operator),
        comparison_value=value,
        action=action,
        target_question_id=target,
    )


# ═══════════════════════════════════════════════════════════════
# EQUALITY AND COERCION
# ═══════════════════════════════════════════════════════════════

class TestStrictEquals:

    def test_same_string(self):
        assert strict_equals("yes", "yes")

    def test_bool_is_not_number(self):
        assert not strict_equals(True, 1)
        assert not strict_equals(0, False)

    def test_int_equals_float(self):
        assert strict_equals(1, 1.0)

    def test_number_is_not_numeric_string(self):
        assert not strict_equals(5, "5")

    def test_lists_compare_by_value(self):
        assert strict_equals(["a", "b"], ["a", "b"])
        assert not strict_equals(["a", "b"], ["b", "a"])


class TestToNumber:

    @pytest.mark.parametrize("value,expected", [
        (True, 1.0),
        (False, 0.0),
        (7, 7.0),
        ("12", 12.0),
        (" 3.5 ", 3.5),
        ("", 0.0),
        (["4"], 4.0),
        ([], 0.0),
    ])
    def test_numeric_values(self, value, expected):
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", ["abc", "12px", ["1", "2"]])
    def test_non_numeric_is_nan(self, value):
        assert math.isnan(to_number(value))


class TestAsText:

    def test_boolean(self):
        assert as_text(True) == "true"

    def test_integral_float_drops_fraction(self):
        assert as_text(5.0) == "5"
        assert as_text(2.5) == "2.5"

    def test_list_joined_with_commas(self):
        assert as_text(["a", "b"]) == "a,b"


# ═══════════════════════════════════════════════════════════════
# OPERATORS
# ═══════════════════════════════════════════════════════════════

class TestEvaluate:

    def test_absent_response_never_matches(self):
        for operator in RuleOperator:
            assert not evaluate(_rule(operator, ["x"]), {})

    def test_equals(self):
        rule = _rule("equals", True)
        assert evaluate(rule, {1: True})
        assert not evaluate(rule, {1: 1})

    def test_not_equals(self):
        rule = _rule("not_equals", "No")
        assert evaluate(rule, {1: "Yes"})
        assert not evaluate(rule, {1: "No"})

    def test_contains_list_membership(self):
        rule = _rule("contains", "sleep")
        assert evaluate(rule, {1: ["work", "sleep"]})
        assert not evaluate(rule, {1: ["sleeping"]})

    def test_contains_text_is_case_insensitive(self):
        rule = _rule("contains", "PANIC")
        assert evaluate(rule, {1: "I had a panic attack"})

    def test_contains_numeric_text(self):
        assert evaluate(_rule("contains", 5), {1: "rated 5 today"})

    def test_greater_than_coerces_strings(self):
        rule = _rule("greater_than", 10)
        assert evaluate(rule, {1: "15"})
        assert not evaluate(rule, {1: 10})

    def test_less_than(self):
        assert evaluate(_rule("less_than", 3), {1: 2})

    def test_nan_comparisons_are_false(self):
        assert not evaluate(_rule("greater_than", 1), {1: "lots"})
        assert not evaluate(_rule("less_than", 1), {1: "lots"})

    def test_in(self):
        rule = _rule("in", ["Several days", "Nearly every day"])
        assert evaluate(rule, {1: "Nearly every day"})
        assert not evaluate(rule, {1: "Not at all"})

    def test_in_with_scalar_value_is_false(self):
        assert not evaluate(_rule("in", "Several days"), {1: "Several days"})

    def test_not_in(self):
        rule = _rule("not_in", ["a", "b"])
        assert evaluate(rule, {1: "c"})
        assert not evaluate(rule, {1: "a"})

    def test_not_in_with_scalar_value_always_matches(self):
        rule = _rule("not_in", "x")
        assert evaluate(rule, {1: "x"})
        assert evaluate(rule, {1: "y"})

    def test_matching_rules_keeps_order(self):
        rules = [
            _rule("equals", "a", rule_id="first"),
            _rule("equals", "b", rule_id="second"),
            _rule("not_equals", "b", rule_id="third"),
        ]
        assert [r.id for r in matching_rules(rules, {1: "a"})] == ["first", "third"]


# ═══════════════════════════════════════════════════════════════
# NAVIGATION DECISIONS
# ═══════════════════════════════════════════════════════════════

class TestNavigation:

    def test_first_matching_skip_rule_wins(self):
        rules = [
            _rule("equals", "no", action=RuleAction.SKIP_TO, target=5),
            _rule("not_equals", "maybe", action=RuleAction.SKIP_TO, target=9),
        ]
        assert skip_target(rules, {1: "no"}) == 5
        assert skip_target(rules, {1: "yes"}) == 9
        assert skip_target(rules, {1: "maybe"}) is None

    def test_skip_target_ignores_other_actions(self):
        rules = [_rule("equals", "no", action=RuleAction.SHOW, target=5)]
        assert skip_target(rules, {1: "no"}) is None

    def test_should_end_survey(self):
        rules = [_rule("equals", "Not at all", action=RuleAction.END_SURVEY, target=None)]
        assert should_end_survey(rules, {1: "Not at all"})
        assert not should_end_survey(rules, {1: "Several days"})
        assert not should_end_survey(rules, {})

"""
Tests for the condition tree (rules and rule groups).

These tests verify:
    - Node construction and defaults
    - Structural helpers (has_rules, iter_rules, depth, references)
    - Immutability
"""

import dataclasses

import pytest
from qstudio.rules import (
    NULL_CHECK_OPERATORS,
    AnswerRule,
    ConditionOperator,
    MatchType,
    Rule,
    RuleGroup,
    count_rules,
    group_depth,
    has_rules,
    iter_rules,
    referenced_question_ids,
)


def nested_group() -> RuleGroup:
    # (q1 == a1) AND ((q2 == a2) OR (q1 != a3))
    inner = RuleGroup(
        id="g-inner",
        match_type=MatchType.OR,
        children=(
            Rule(id="r2", question_id="q2", value="a2"),
            Rule(id="r3", question_id="q1", operator=ConditionOperator.NOT_EQUALS, value="a3"),
        ),
    )
    return RuleGroup(
        id="g-outer",
        children=(Rule(id="r1", question_id="q1", value="a1"), inner),
    )


class TestRule:
    """Test Rule leaves."""

    def test_defaults(self):
        """Should default to an equals rule with empty references."""
        rule = Rule(id="r1")
        assert rule.operator == ConditionOperator.EQUALS
        assert rule.question_id == ""
        assert rule.value == ""
        assert rule.node_type == "rule"

    def test_is_immutable(self):
        """Should reject attribute assignment."""
        rule = Rule(id="r1", question_id="q1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            rule.question_id = "q2"

    def test_null_check_operators(self):
        """Only is_null and is_not_null skip the comparison value."""
        assert NULL_CHECK_OPERATORS == {ConditionOperator.IS_NULL, ConditionOperator.IS_NOT_NULL}
        assert ConditionOperator.EQUALS not in NULL_CHECK_OPERATORS


class TestAnswerRule:
    """Test AnswerRule leaves."""

    def test_create_answer_rule(self):
        """Should store the previous-answer reference and the selected set."""
        rule = AnswerRule(
            id="ar1",
            previous_question_id="q1",
            previous_answer_set_id="as1",
            previous_answer_id="a1",
            selected_answer_set_id="as2",
        )
        assert rule.node_type == "answerRule"
        assert rule.selected_answer_set_id == "as2"


class TestRuleGroup:
    """Test RuleGroup helpers."""

    def test_default_match_type_is_and(self):
        """Should default to AND with no children."""
        group = RuleGroup(id="g1")
        assert group.match_type == MatchType.AND
        assert group.children == ()
        assert group.node_type == "group"

    def test_has_rules(self):
        """Should require at least one immediate child."""
        assert has_rules(None) is False
        assert has_rules(RuleGroup(id="g1")) is False
        assert has_rules(RuleGroup(id="g1", children=(Rule(id="r1"),))) is True

    def test_has_rules_counts_empty_nested_group(self):
        """An empty nested group still counts as a child."""
        group = RuleGroup(id="g1", children=(RuleGroup(id="g2"),))
        assert has_rules(group) is True
        assert count_rules(group) == 0

    def test_iter_rules_pre_order(self):
        """Should yield leaves depth-first in array order."""
        assert [r.id for r in iter_rules(nested_group())] == ["r1", "r2", "r3"]

    def test_count_rules(self):
        """Should count leaves at every depth."""
        assert count_rules(nested_group()) == 3
        assert count_rules(None) == 0

    def test_group_depth(self):
        """Should measure group nesting."""
        assert group_depth(None) == 0
        assert group_depth(RuleGroup(id="g1")) == 1
        assert group_depth(nested_group()) == 2

    def test_referenced_question_ids(self):
        """Should list referenced questions once, in first-seen order."""
        assert referenced_question_ids(nested_group()) == ["q1", "q2"]

    def test_referenced_question_ids_skips_blank_and_reads_answer_rules(self):
        """Blank references are skipped; answer rules contribute their previous question."""
        group = RuleGroup(
            id="g1",
            children=(
                Rule(id="r1"),
                AnswerRule(id="ar1", previous_question_id="q9"),
            ),
        )
        assert referenced_question_ids(group) == ["q9"]

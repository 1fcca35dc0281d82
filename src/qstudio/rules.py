"""
Condition Rule Model

Every activation or visibility condition in a questionnaire is a tree:
groups combine their children with AND/OR, leaves compare a previous
question's answer with a value. Conditions are never stored as strings.

This ensures:
    - Language independence
    - Lossless serialization
    - Structural analysis without evaluation

ARCHITECTURAL RULE:
    This module describes condition STRUCTURE only.
    Evaluating a condition against end-user answers belongs to the
    runtime that executes a published questionnaire, not here.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterator, List, Set, Tuple


class ConditionNode(ABC):
    """
    Base class for every node of a condition tree.

    ``node_type`` is the wire discriminant ("rule", "answerRule", "group").
    Traversal code dispatches on the concrete class, never on field shape.
    """

    node_type: ClassVar[str] = ""


class MatchType(Enum):
    """How a group combines its children."""

    AND = "AND"
    OR = "OR"


class ConditionOperator(Enum):
    """
    Comparison operators available to rules.

    Answer-level rules use every operator except the null checks.
    """

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"


# Operators that don't need a comparison value
NULL_CHECK_OPERATORS = frozenset({ConditionOperator.IS_NULL, ConditionOperator.IS_NOT_NULL})


@dataclass(frozen=True)
class Rule(ConditionNode):
    """
    A leaf condition on a previous question's answer.

    Example:
        "show this branch when q-1 equals a-yes"

    Becomes:
        Rule(id="r-1", question_id="q-1", operator=ConditionOperator.EQUALS,
             value="a-yes")

    Properties:
        question_id: Id of the referenced Question (lookup only, not owned)
        operator: ConditionOperator
        value: Compared value, usually the id of an Answer
        answer_set_id: Answer set the value was picked from (optional)

    IMPORTANT:
        question_id is NOT checked against the questionnaire.
        A rule pointing to a deleted question is tolerated everywhere.
    """

    node_type: ClassVar[str] = "rule"

    id: str
    question_id: str = ""
    operator: ConditionOperator = ConditionOperator.EQUALS
    value: str = ""
    answer_set_id: str = ""


@dataclass(frozen=True)
class AnswerRule(ConditionNode):
    """
    A leaf condition used by answer-level rule groups.

    When it matches, the question swaps to ``selected_answer_set_id``.
    """

    node_type: ClassVar[str] = "answerRule"

    id: str
    previous_question_id: str = ""
    previous_answer_set_id: str = ""
    operator: ConditionOperator = ConditionOperator.EQUALS
    previous_answer_id: str = ""
    selected_answer_set_id: str = ""


@dataclass(frozen=True)
class RuleGroup(ConditionNode):
    """
    A boolean group of rules and nested groups.

    Recursive with unbounded depth. An empty group is structurally valid
    here; whether it is acceptable for publishing is the validator's call.

    Properties:
        match_type: MatchType.AND or MatchType.OR
        children: Ordered tuple of Rule | AnswerRule | RuleGroup
    """

    node_type: ClassVar[str] = "group"

    id: str
    match_type: MatchType = MatchType.AND
    children: Tuple[ConditionNode, ...] = ()


def has_rules(group: RuleGroup | None) -> bool:
    """True when ``group`` exists and has at least one immediate child."""
    return group is not None and len(group.children) > 0


def iter_rules(group: RuleGroup | None) -> Iterator[ConditionNode]:
    """Yield every leaf (Rule or AnswerRule) in pre-order."""
    if group is None:
        return
    for child in group.children:
        if isinstance(child, RuleGroup):
            yield from iter_rules(child)
        else:
            yield child


def count_rules(group: RuleGroup | None) -> int:
    return sum(1 for _ in iter_rules(group))


def group_depth(group: RuleGroup | None) -> int:
    """Nesting depth: 0 for no group, 1 for a flat group."""
    if group is None:
        return 0
    nested = [group_depth(c) for c in group.children if isinstance(c, RuleGroup)]
    return 1 + max(nested, default=0)


def referenced_question_ids(group: RuleGroup | None) -> List[str]:
    """
    Question ids referenced by the leaves of ``group``, in first-seen order.

    Empty references (a rule still being authored) are skipped.
    """
    seen: Set[str] = set()
    ordered: List[str] = []
    for leaf in iter_rules(group):
        if isinstance(leaf, Rule):
            qid = leaf.question_id
        elif isinstance(leaf, AnswerRule):
            qid = leaf.previous_question_id
        else:
            continue
        if qid and qid not in seen:
            seen.add(qid)
            ordered.append(qid)
    return ordered

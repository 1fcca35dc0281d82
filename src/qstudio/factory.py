"""
Entity factory.

Creates new entities with fresh ids and authoring defaults. Everything
that builds a node at authoring time goes through here so defaults stay
consistent between the mutator, the examples and the tests.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Union

from .ids import EntityId
from .model import (
    ActionRecord,
    Answer,
    AnswerLevelRuleGroup,
    AnswerSet,
    ConditionalBranch,
    Page,
    Question,
    Questionnaire,
    QuestionnaireStatus,
    QuestionType,
    RatingConfig,
    Section,
)
from .rules import MatchType, RuleGroup

DEFAULT_QUESTIONNAIRE_VERSION = "1.0"
DEFAULT_BRANCH_NAME = "Conditional Branch"
DEFAULT_ANSWER_SET_NAME = "Default Answer Set"


def create_action_record() -> ActionRecord:
    return ActionRecord()


def create_answer(label: str = "", value: str = "", active: bool = True) -> Answer:
    return Answer(id=EntityId.answer(), label=label, value=value, active=active)


def create_answer_set(name: str = "", is_default: bool = False) -> AnswerSet:
    """A new answer set holding one empty answer."""
    return AnswerSet(
        id=EntityId.answer_set(),
        name=name,
        is_default=is_default,
        answers=(create_answer(),),
    )


def create_default_answer_set(question_type: Union[QuestionType, str] = QuestionType.CHOICE) -> AnswerSet:
    """
    The answer set a new question starts with.

    Boolean questions get Yes/No answers; every other type gets a single
    empty answer.
    """
    base = create_answer_set(name=DEFAULT_ANSWER_SET_NAME, is_default=True)
    if question_type == QuestionType.BOOLEAN:
        return replace(
            base,
            name="Yes/No",
            answers=(create_answer("Yes", "true"), create_answer("No", "false")),
        )
    if question_type == QuestionType.RATING:
        return replace(base, name="Rating")
    return base


def create_condition_group() -> RuleGroup:
    """An empty AND group."""
    return RuleGroup(id=EntityId.rule_group(), match_type=MatchType.AND, children=())


def create_answer_level_rule_group(inline_answer_set: Optional[AnswerSet] = None) -> AnswerLevelRuleGroup:
    return AnswerLevelRuleGroup(
        id=EntityId.rule_group(),
        match_type=MatchType.AND,
        children=(),
        inline_answer_set=inline_answer_set,
    )


def create_question(
    text: str = "",
    question_type: Union[QuestionType, str] = QuestionType.CHOICE,
    order: int = 1,
    required: bool = False,
) -> Question:
    rating_config = RatingConfig() if question_type == QuestionType.RATING else None
    return Question(
        id=EntityId.question(),
        text=text,
        question_type=question_type,
        required=required,
        order=order,
        answer_sets=(create_default_answer_set(question_type),),
        condition_group=create_condition_group(),
        answer_level_rule_groups=(),
        rating_config=rating_config,
        read_only=False,
        hidden=False,
    )


def create_branch(name: str = DEFAULT_BRANCH_NAME) -> ConditionalBranch:
    return ConditionalBranch(
        id=EntityId.branch(),
        name=name,
        condition_group=create_condition_group(),
        questions=(),
        child_branches=(),
    )


def create_section(name: str = "", description: str = "") -> Section:
    return Section(id=EntityId.section(), name=name, description=description)


def create_page(name: str = "New Page", description: str = "") -> Page:
    return Page(id=EntityId.page(), name=name, description=description)


def create_questionnaire(name: str = "", description: str = "") -> Questionnaire:
    """A new Draft questionnaire with a single empty "Page 1"."""
    return Questionnaire(
        name=name,
        description=description,
        status=QuestionnaireStatus.DRAFT.value,
        version=DEFAULT_QUESTIONNAIRE_VERSION,
        service_catalog="",
        pages=(create_page("Page 1"),),
    )

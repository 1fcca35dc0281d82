"""
Core Questionnaire Model Objects

Defines the entities of an authored questionnaire:
    - Answers and answer sets (selectable values)
    - Questions (what the respondent is asked)
    - Conditional branches (recursive, conditionally activated subtrees)
    - Sections and pages (layout containers)
    - Questionnaire (root container)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about rendering or storage
        - Are immutable (frozen); edits build a new tree
        - Are fully serializable
        - Own their children exclusively; no parent back-references

Keys found on the wire that this model does not name are kept in each
entity's ``extra`` mapping so imported documents round-trip unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .rules import RuleGroup


class QuestionType(str, Enum):
    """Known question types. Unknown type strings are kept as plain str."""

    CHOICE = "Choice"
    DROPDOWN = "Dropdown"
    TEXT = "Text"
    TEXT_AREA = "TextArea"
    NUMBER = "Number"
    DECIMAL = "Decimal"
    DATE = "Date"
    MULTI_SELECT = "MultiSelect"
    RATING = "Rating"
    BOOLEAN = "Boolean"
    RADIO_BUTTON = "RadioButton"
    DOCUMENT = "Document"
    DOWNLOADABLE_DOCUMENT = "DownloadableDocument"


class QuestionnaireStatus(str, Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ARCHIVED = "Archived"


CHOICE_BASED_TYPES = frozenset({
    QuestionType.CHOICE,
    QuestionType.DROPDOWN,
    QuestionType.MULTI_SELECT,
    QuestionType.RADIO_BUTTON,
})


@dataclass(frozen=True)
class ActionRecord:
    """
    Opaque reference to the service-management action an answer triggers.

    The core only cares whether one is present (it is counted as an
    "action" by the statistics walk).
    """

    operation_category_tier1: str = ""
    operation_category_tier2: str = ""
    operation_category_tier3: str = ""
    product_category_tier1: str = ""
    product_category_tier2: str = ""
    product_category_tier3: str = ""
    impact: str = ""
    urgency: str = ""


@dataclass(frozen=True)
class NumberConfig:
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    default_value: Optional[float] = None


@dataclass(frozen=True)
class RatingConfig:
    min_value: int = 1
    max_value: int = 5
    min_label: Optional[str] = None
    max_label: Optional[str] = None
    default_value: Optional[int] = None


@dataclass(frozen=True)
class Answer:
    """
    One selectable answer.

    Properties:
        label: Text shown to the respondent
        value: Stored value
        active: Inactive answers stay in the set but are not offered
        action_record: Optional action triggered by picking this answer
    """

    id: str
    label: str = ""
    value: str = ""
    active: bool = True
    action_record: Optional[ActionRecord] = None
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class AnswerSet:
    """
    A named, taggable collection of answers attached to a question.

    ``is_default`` marks the set shown when no answer-level rule matches.
    Having exactly one default per question is a convention, not enforced.
    """

    id: str
    name: str = ""
    tag: str = ""
    is_default: bool = False
    answers: Tuple[Answer, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class AnswerLevelRuleGroup(RuleGroup):
    """
    A rule group scoped to one answer choice.

    When its rules match, the question offers ``inline_answer_set``
    (or the answer set picked by its AnswerRule leaves) instead of the
    default set. Publishing requires at least one child.
    Groups nested inside it are AnswerLevelRuleGroups too.
    """

    inline_answer_set: Optional[AnswerSet] = None


@dataclass(frozen=True)
class Question:
    """
    A single question.

    Properties:
        text: Question text
        question_type: QuestionType, or the raw string for unknown types
        required: Whether an answer is mandatory
        order: Display order hint
        answer_sets: Answer sets owned by this question
        condition_group:
            Visibility condition. None only for legacy documents that
            carry neither ``conditionGroup`` nor ``questionLevelRuleGroup``.
        answer_level_rule_groups:
            Rules that swap the offered answer set
        number_config / rating_config: Type-specific input settings
        action_record: Action attached to the question itself
        read_only / hidden: Presentation flags, None when absent

    ARCHITECTURAL RULE:
        condition_group is about SHOWING the question.
        answer_level_rule_groups are about WHICH ANSWERS are offered.
        These are separate concerns.
    """

    id: str
    text: str = ""
    question_type: Union[QuestionType, str] = QuestionType.CHOICE
    required: bool = False
    order: int = 1
    answer_sets: Tuple[AnswerSet, ...] = ()
    condition_group: Optional[RuleGroup] = None
    answer_level_rule_groups: Tuple[AnswerLevelRuleGroup, ...] = ()
    number_config: Optional[NumberConfig] = None
    rating_config: Optional[RatingConfig] = None
    action_record: Optional[ActionRecord] = None
    read_only: Optional[bool] = None
    hidden: Optional[bool] = None
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class ConditionalBranch:
    """
    A conditionally activated subtree of questions and further branches.

    Recursive: a branch owns its questions and its child branches to
    unbounded depth. Children never point back to their parent; an
    ancestor path is recomputed top-down (see stats.find_branch_path).

    Properties:
        name: Author-facing label
        condition_group:
            Activation condition. The legacy wire name ``ruleGroup`` is
            folded into this field when a document is read.
        questions: Questions shown when the branch is active
        child_branches: Nested branches, evaluated only inside this one
    """

    id: str
    name: str = ""
    condition_group: Optional[RuleGroup] = None
    questions: Tuple[Question, ...] = ()
    child_branches: Tuple["ConditionalBranch", ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)

    def get_child_branch(self, branch_id: str) -> Optional[ConditionalBranch]:
        """Retrieve a direct child branch by id, or None."""
        for child in self.child_branches:
            if child.id == branch_id:
                return child
        return None


@dataclass(frozen=True)
class Section:
    """A group of questions and top-level branches on a page."""

    id: str
    name: str = ""
    description: Optional[str] = None
    questions: Tuple[Question, ...] = ()
    branches: Tuple[ConditionalBranch, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)

    def get_question(self, question_id: str) -> Optional[Question]:
        """Retrieve a direct (section-level) question by id, or None."""
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


@dataclass(frozen=True)
class Page:
    id: str
    name: str = ""
    description: Optional[str] = None
    sections: Tuple[Section, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)

    def get_section(self, section_id: str) -> Optional[Section]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None


@dataclass(frozen=True)
class Questionnaire:
    """
    Root container for an authored questionnaire.

    This is THE primary artifact. The export envelope, the flat published
    record and every statistic are derived from this object alone.

    Properties:
        name / description: Author-facing metadata
        status: "Draft", "Active", ... (free string on the wire)
        version: Author-managed version string
        service_catalog: Catalog entry the questionnaire belongs to
        pages: Ordered pages

    INVARIANTS:
        - Ids are unique across the tree
        - Every collection is owned by exactly one parent
        - Rules may reference question ids that no longer exist
    """

    name: str = ""
    description: str = ""
    status: str = QuestionnaireStatus.DRAFT.value
    version: str = "1.0"
    service_catalog: str = ""
    pages: Tuple[Page, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)

    def get_page(self, page_id: str) -> Optional[Page]:
        """
        Retrieve a page by id.

        Args:
            page_id: Page identifier

        Returns:
            Page object or None if not found
        """
        for page in self.pages:
            if page.id == page_id:
                return page
        return None

    def get_section(self, section_id: str) -> Optional[Section]:
        """Retrieve a section by id from any page, or None."""
        for page in self.pages:
            section = page.get_section(section_id)
            if section is not None:
                return section
        return None

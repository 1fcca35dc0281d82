"""
Tree Mutator: pure editing operations on the questionnaire tree.

Every function takes a tree and returns a NEW tree; nothing is modified
in place. Targets are found by id anywhere in the branch recursion.

Guarantees:
    - Siblings and ancestors keep their values unchanged
    - An id that is not in the tree is a no-op (an equal tree comes back)
    - Nothing here raises for a missing target

Partial updates use explicit patch objects (QuestionPatch, BranchPatch,
...). A field left as None is not touched. Patches check their own field
types when built, so a bad patch fails where it is written, not deep in
a recursion.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Callable, Optional, Tuple, Union

from .errors import PatchError
from .factory import create_branch, create_question
from .model import (
    ActionRecord,
    AnswerLevelRuleGroup,
    AnswerSet,
    ConditionalBranch,
    NumberConfig,
    Page,
    Question,
    QuestionType,
    Questionnaire,
    RatingConfig,
    Section,
)
from .rules import RuleGroup


# =============================================================================
# PATCH TYPES
# =============================================================================

def _check_type(owner: str, name: str, value, expected) -> None:
    if value is not None and not isinstance(value, expected):
        raise PatchError(
            f"{owner}.{name} expects {getattr(expected, '__name__', expected)}, "
            f"got {type(value).__name__}"
        )


def _check_items(owner: str, name: str, value, item_type):
    """Accept a list or tuple of ``item_type`` and return it as a tuple."""
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise PatchError(f"{owner}.{name} expects a sequence, got {type(value).__name__}")
    for item in value:
        if not isinstance(item, item_type):
            raise PatchError(
                f"{owner}.{name} expects {item_type.__name__} items, got {type(item).__name__}"
            )
    return tuple(value)


class _Patch:
    """Shared merge logic for the patch dataclasses."""

    _sequences: Tuple[Tuple[str, type], ...] = ()

    def _coerce_sequences(self) -> None:
        for name, item_type in self._sequences:
            value = _check_items(type(self).__name__, name, getattr(self, name), item_type)
            object.__setattr__(self, name, value)

    def changes(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "clear" and getattr(self, f.name) is not None
        }

    def apply(self, target):
        merged = replace(target, **self.changes())
        cleared = getattr(self, "clear", ())
        if cleared:
            merged = replace(merged, **{name: None for name in cleared})
        return merged


@dataclass(frozen=True)
class QuestionPatch(_Patch):
    """
    Partial update for a Question.

    ``clear`` names optional fields to reset to None (number_config,
    rating_config, action_record, read_only, hidden).
    """

    text: Optional[str] = None
    question_type: Optional[Union[QuestionType, str]] = None
    required: Optional[bool] = None
    order: Optional[int] = None
    answer_sets: Optional[Tuple[AnswerSet, ...]] = None
    condition_group: Optional[RuleGroup] = None
    answer_level_rule_groups: Optional[Tuple[AnswerLevelRuleGroup, ...]] = None
    number_config: Optional[NumberConfig] = None
    rating_config: Optional[RatingConfig] = None
    action_record: Optional[ActionRecord] = None
    read_only: Optional[bool] = None
    hidden: Optional[bool] = None
    clear: Tuple[str, ...] = ()

    _sequences = (("answer_sets", AnswerSet), ("answer_level_rule_groups", AnswerLevelRuleGroup))
    _clearable = frozenset({"number_config", "rating_config", "action_record", "read_only", "hidden"})

    def __post_init__(self):
        owner = "QuestionPatch"
        _check_type(owner, "text", self.text, str)
        _check_type(owner, "question_type", self.question_type, str)
        _check_type(owner, "required", self.required, bool)
        if isinstance(self.order, bool):
            raise PatchError("QuestionPatch.order expects int, got bool")
        _check_type(owner, "order", self.order, int)
        _check_type(owner, "condition_group", self.condition_group, RuleGroup)
        _check_type(owner, "number_config", self.number_config, NumberConfig)
        _check_type(owner, "rating_config", self.rating_config, RatingConfig)
        _check_type(owner, "action_record", self.action_record, ActionRecord)
        _check_type(owner, "read_only", self.read_only, bool)
        _check_type(owner, "hidden", self.hidden, bool)
        self._coerce_sequences()
        unknown = set(self.clear) - self._clearable
        if unknown:
            raise PatchError(f"QuestionPatch.clear cannot reset {sorted(unknown)}")
        object.__setattr__(self, "clear", tuple(self.clear))


@dataclass(frozen=True)
class BranchPatch(_Patch):
    name: Optional[str] = None
    condition_group: Optional[RuleGroup] = None
    questions: Optional[Tuple[Question, ...]] = None
    child_branches: Optional[Tuple[ConditionalBranch, ...]] = None

    _sequences = (("questions", Question), ("child_branches", ConditionalBranch))

    def __post_init__(self):
        _check_type("BranchPatch", "name", self.name, str)
        _check_type("BranchPatch", "condition_group", self.condition_group, RuleGroup)
        self._coerce_sequences()


@dataclass(frozen=True)
class SectionPatch(_Patch):
    name: Optional[str] = None
    description: Optional[str] = None
    questions: Optional[Tuple[Question, ...]] = None
    branches: Optional[Tuple[ConditionalBranch, ...]] = None

    _sequences = (("questions", Question), ("branches", ConditionalBranch))

    def __post_init__(self):
        _check_type("SectionPatch", "name", self.name, str)
        _check_type("SectionPatch", "description", self.description, str)
        self._coerce_sequences()


@dataclass(frozen=True)
class PagePatch(_Patch):
    name: Optional[str] = None
    description: Optional[str] = None
    sections: Optional[Tuple[Section, ...]] = None

    _sequences = (("sections", Section),)

    def __post_init__(self):
        _check_type("PagePatch", "name", self.name, str)
        _check_type("PagePatch", "description", self.description, str)
        self._coerce_sequences()


@dataclass(frozen=True)
class QuestionnairePatch(_Patch):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    version: Optional[str] = None
    service_catalog: Optional[str] = None
    pages: Optional[Tuple[Page, ...]] = None

    _sequences = (("pages", Page),)

    def __post_init__(self):
        for name in ("name", "description", "status", "version", "service_catalog"):
            _check_type("QuestionnairePatch", name, getattr(self, name), str)
        self._coerce_sequences()


# =============================================================================
# SECTION-SCOPED OPERATIONS (branch recursion)
# =============================================================================

def _append_question(branches, branch_id, question):
    result = []
    for branch in branches:
        if branch.id == branch_id:
            new_question = question or create_question(order=len(branch.questions) + 1)
            branch = replace(branch, questions=branch.questions + (new_question,))
        else:
            branch = replace(
                branch,
                child_branches=_append_question(branch.child_branches, branch_id, question),
            )
        result.append(branch)
    return tuple(result)


def add_question(
    section: Section,
    branch_id: Optional[str] = None,
    question: Optional[Question] = None,
) -> Section:
    """
    Append a question to the section root, or to branch ``branch_id`` at any depth.

    When ``question`` is None a fresh one is built: new id, one default
    answer set holding one empty answer, an empty AND condition group and
    no answer-level rule groups.
    """
    if branch_id is None:
        new_question = question or create_question(order=len(section.questions) + 1)
        return replace(section, questions=section.questions + (new_question,))
    return replace(section, branches=_append_question(section.branches, branch_id, question))


def _append_branch(branches, parent_id, new_branch):
    result = []
    for branch in branches:
        if branch.id == parent_id:
            branch = replace(branch, child_branches=branch.child_branches + (new_branch,))
        else:
            branch = replace(
                branch,
                child_branches=_append_branch(branch.child_branches, parent_id, new_branch),
            )
        result.append(branch)
    return tuple(result)


def add_branch(
    section: Section,
    parent_branch_id: Optional[str] = None,
    branch: Optional[ConditionalBranch] = None,
) -> Section:
    """
    Append a branch to the section root, or as a child of ``parent_branch_id``.

    A fresh branch is named "Conditional Branch" and has an empty AND
    condition group, no questions and no child branches.
    """
    new_branch = branch or create_branch()
    if parent_branch_id is None:
        return replace(section, branches=section.branches + (new_branch,))
    return replace(section, branches=_append_branch(section.branches, parent_branch_id, new_branch))


def _update_branches(branches, branch_id, patch):
    result = []
    for branch in branches:
        if branch.id == branch_id:
            branch = patch.apply(branch)
        # Keep descending: the patched branch's children stay reachable
        branch = replace(
            branch,
            child_branches=_update_branches(branch.child_branches, branch_id, patch),
        )
        result.append(branch)
    return tuple(result)


def update_branch(section: Section, branch_id: str, patch: BranchPatch) -> Section:
    """Merge ``patch`` into branch ``branch_id`` wherever it sits."""
    return replace(section, branches=_update_branches(section.branches, branch_id, patch))


def _delete_branches(branches, branch_id):
    return tuple(
        replace(branch, child_branches=_delete_branches(branch.child_branches, branch_id))
        for branch in branches
        if branch.id != branch_id
    )


def delete_branch(section: Section, branch_id: str) -> Section:
    """Remove a branch and its whole subtree."""
    return replace(section, branches=_delete_branches(section.branches, branch_id))


def _patch_questions(questions, question_id, patch):
    return tuple(patch.apply(q) if q.id == question_id else q for q in questions)


def _update_question_in_branches(branches, question_id, patch):
    return tuple(
        replace(
            branch,
            questions=_patch_questions(branch.questions, question_id, patch),
            child_branches=_update_question_in_branches(branch.child_branches, question_id, patch),
        )
        for branch in branches
    )


def update_question(section: Section, question_id: str, patch: QuestionPatch) -> Section:
    """Merge ``patch`` into question ``question_id`` at section level or any branch depth."""
    return replace(
        section,
        questions=_patch_questions(section.questions, question_id, patch),
        branches=_update_question_in_branches(section.branches, question_id, patch),
    )


def _delete_question_in_branches(branches, question_id):
    return tuple(
        replace(
            branch,
            questions=tuple(q for q in branch.questions if q.id != question_id),
            child_branches=_delete_question_in_branches(branch.child_branches, question_id),
        )
        for branch in branches
    )


def delete_question(section: Section, question_id: str) -> Section:
    """
    Remove a question wherever it sits.

    Rules elsewhere that reference ``question_id`` are left as they are.
    """
    return replace(
        section,
        questions=tuple(q for q in section.questions if q.id != question_id),
        branches=_delete_question_in_branches(section.branches, question_id),
    )


# =============================================================================
# QUESTIONNAIRE-SCOPED OPERATIONS
# =============================================================================

def apply_to_section(
    questionnaire: Questionnaire,
    section_id: str,
    operation: Callable[[Section], Section],
) -> Questionnaire:
    """
    Lift a section-scoped operation to the whole questionnaire.

    Example:
        apply_to_section(q, "section-1", lambda s: add_branch(s, "branch-2"))
    """
    pages = []
    for page in questionnaire.pages:
        sections = tuple(
            operation(section) if section.id == section_id else section
            for section in page.sections
        )
        pages.append(replace(page, sections=sections))
    return replace(questionnaire, pages=tuple(pages))


def update_questionnaire(questionnaire: Questionnaire, patch: QuestionnairePatch) -> Questionnaire:
    return patch.apply(questionnaire)


def add_page(questionnaire: Questionnaire, page: Page) -> Questionnaire:
    return replace(questionnaire, pages=questionnaire.pages + (page,))


def update_page(questionnaire: Questionnaire, page_id: str, patch: PagePatch) -> Questionnaire:
    pages = tuple(patch.apply(p) if p.id == page_id else p for p in questionnaire.pages)
    return replace(questionnaire, pages=pages)


def delete_page(questionnaire: Questionnaire, page_id: str) -> Questionnaire:
    """Remove a page with all its sections, questions and branches."""
    return replace(questionnaire, pages=tuple(p for p in questionnaire.pages if p.id != page_id))


def add_section(questionnaire: Questionnaire, page_id: str, section: Section) -> Questionnaire:
    pages = tuple(
        replace(p, sections=p.sections + (section,)) if p.id == page_id else p
        for p in questionnaire.pages
    )
    return replace(questionnaire, pages=pages)


def update_section(questionnaire: Questionnaire, section_id: str, patch: SectionPatch) -> Questionnaire:
    return apply_to_section(questionnaire, section_id, patch.apply)


def delete_section(questionnaire: Questionnaire, section_id: str) -> Questionnaire:
    pages = tuple(
        replace(p, sections=tuple(s for s in p.sections if s.id != section_id))
        for p in questionnaire.pages
    )
    return replace(questionnaire, pages=pages)

"""
Questionnaire Aggregator: counts, flattened lists and lookups.

This module walks a Questionnaire and produces:
    - Structure counts (pages, sections, questions, branches)
    - Content counts (answer sets, actions, required questions)
    - The flattened, order-stable question list that rules reference
    - Lookups by id and top-down ancestor paths

IMPORTANT: This is a read-only layer. It never modifies the tree.

Document order used everywhere below:
    for each page, for each section:
        the section's own questions, then
        for each top-level branch: its questions, then its child
        branches recursively (pre-order, array order)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterator, List, Optional

from .model import AnswerSet, ConditionalBranch, Page, Question, Questionnaire


@dataclass(frozen=True)
class StructureStats:
    """The four structure counts shown next to drafts."""

    page_count: int = 0
    section_count: int = 0
    question_count: int = 0
    branch_count: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "pageCount": self.page_count,
            "sectionCount": self.section_count,
            "questionCount": self.question_count,
            "branchCount": self.branch_count,
        }


@dataclass(frozen=True)
class QuestionnaireStats:
    """Structure counts plus content counts, stored with published records."""

    page_count: int = 0
    section_count: int = 0
    question_count: int = 0
    branch_count: int = 0
    answer_set_count: int = 0
    action_count: int = 0
    required_question_count: int = 0

    def as_dict(self) -> Dict[str, int]:
        names = {
            "page_count": "pageCount",
            "section_count": "sectionCount",
            "question_count": "questionCount",
            "branch_count": "branchCount",
            "answer_set_count": "answerSetCount",
            "action_count": "actionCount",
            "required_question_count": "requiredQuestionCount",
        }
        return {names[k]: v for k, v in asdict(self).items()}


# =============================================================================
# BRANCH RECURSION
# =============================================================================

def count_questions_in_branch(branch: ConditionalBranch) -> int:
    """Own questions plus every question in nested child branches."""
    count = len(branch.questions)
    for child in branch.child_branches:
        count += count_questions_in_branch(child)
    return count


def count_branches_in_branch(branch: ConditionalBranch) -> int:
    """1 (the branch itself) plus every nested child branch."""
    count = 1
    for child in branch.child_branches:
        count += count_branches_in_branch(child)
    return count


def collect_branch_questions(branch: ConditionalBranch) -> List[Question]:
    questions = list(branch.questions)
    for child in branch.child_branches:
        questions.extend(collect_branch_questions(child))
    return questions


def iter_branches(branch: ConditionalBranch) -> Iterator[ConditionalBranch]:
    """Yield ``branch`` and all its descendants in pre-order."""
    yield branch
    for child in branch.child_branches:
        yield from iter_branches(child)


# =============================================================================
# QUESTIONNAIRE WALKS
# =============================================================================

def iter_questions(questionnaire: Questionnaire) -> Iterator[Question]:
    """Yield every question in document order."""
    for page in questionnaire.pages:
        yield from collect_page_questions(page)


def collect_page_questions(page: Page) -> List[Question]:
    questions: List[Question] = []
    for section in page.sections:
        questions.extend(section.questions)
        for branch in section.branches:
            questions.extend(collect_branch_questions(branch))
    return questions


def get_all_questions(questionnaire: Questionnaire) -> List[Question]:
    """
    Flatten the tree into the question list rules may reference.

    Order is stable: same tree, same list.
    """
    return list(iter_questions(questionnaire))


def collect_all_answer_sets(questionnaire: Questionnaire) -> List[AnswerSet]:
    """Every answer set, including inline sets carried by answer-level rule groups."""
    answer_sets: List[AnswerSet] = []
    for question in iter_questions(questionnaire):
        answer_sets.extend(question.answer_sets)
        for group in question.answer_level_rule_groups:
            if group.inline_answer_set is not None:
                answer_sets.append(group.inline_answer_set)
    return answer_sets


def get_questionnaire_stats(questionnaire: Questionnaire) -> StructureStats:
    section_count = 0
    question_count = 0
    branch_count = 0

    for page in questionnaire.pages:
        section_count += len(page.sections)
        for section in page.sections:
            question_count += len(section.questions)
            for branch in section.branches:
                question_count += count_questions_in_branch(branch)
                branch_count += count_branches_in_branch(branch)

    return StructureStats(
        page_count=len(questionnaire.pages),
        section_count=section_count,
        question_count=question_count,
        branch_count=branch_count,
    )


def _count_actions(answer_set: AnswerSet) -> int:
    return sum(1 for answer in answer_set.answers if answer.action_record is not None)


def calculate_questionnaire_stats(questionnaire: Questionnaire) -> QuestionnaireStats:
    """
    Structure counts plus answer-set, action and required-question counts.

    An answer-level rule group carrying an inline answer set counts as one
    more answer set, and the actions on its answers are counted too.
    A question's own action record counts as one action.
    """
    structure = get_questionnaire_stats(questionnaire)

    answer_set_count = 0
    action_count = 0
    required_count = 0

    for question in iter_questions(questionnaire):
        if question.required:
            required_count += 1
        answer_set_count += len(question.answer_sets)
        for answer_set in question.answer_sets:
            action_count += _count_actions(answer_set)
        for group in question.answer_level_rule_groups:
            if group.inline_answer_set is not None:
                answer_set_count += 1
                action_count += _count_actions(group.inline_answer_set)
        if question.action_record is not None:
            action_count += 1

    return QuestionnaireStats(
        page_count=structure.page_count,
        section_count=structure.section_count,
        question_count=structure.question_count,
        branch_count=structure.branch_count,
        answer_set_count=answer_set_count,
        action_count=action_count,
        required_question_count=required_count,
    )


# =============================================================================
# LOOKUPS
# =============================================================================

def find_question_by_id(questionnaire: Questionnaire, question_id: str) -> Optional[Question]:
    for question in iter_questions(questionnaire):
        if question.id == question_id:
            return question
    return None


def find_branch_by_id(questionnaire: Questionnaire, branch_id: str) -> Optional[ConditionalBranch]:
    for page in questionnaire.pages:
        for section in page.sections:
            for top in section.branches:
                for branch in iter_branches(top):
                    if branch.id == branch_id:
                        return branch
    return None


def _path_in(branch: ConditionalBranch, branch_id: str) -> Optional[List[str]]:
    if branch.id == branch_id:
        return [branch.id]
    for child in branch.child_branches:
        found = _path_in(child, branch_id)
        if found is not None:
            return [branch.id] + found
    return None


def find_branch_path(questionnaire: Questionnaire, branch_id: str) -> Optional[List[str]]:
    """
    Ids of the branches from the top-level branch down to ``branch_id``.

    Branches hold no parent pointers; the path is recomputed top-down.
    Returns None when the branch is not in the tree.
    """
    for page in questionnaire.pages:
        for section in page.sections:
            for top in section.branches:
                path = _path_in(top, branch_id)
                if path is not None:
                    return path
    return None


def get_preceding_questions(questionnaire: Questionnaire, question_id: str) -> List[Question]:
    """
    Questions before ``question_id`` in document order.

    These are the questions a rule on ``question_id`` can sensibly refer to.
    An unknown id yields every question.
    """
    preceding: List[Question] = []
    for question in iter_questions(questionnaire):
        if question.id == question_id:
            break
        preceding.append(question)
    return preceding

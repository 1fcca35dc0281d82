"""
Pre-publish Validator: structural integrity of a questionnaire.

Produces a ValidationReport with four buckets of author-facing messages:
    - pages:     a page with no question or branch in any section
    - sections:  a section with no direct question and no direct branch
    - branches:  a branch (any depth) with no content or no conditions
    - questions: an answer-level rule group without rules

The walk never stops at the first defect; every violation is collected
in document order, without deduplication.

Note the two content checks look at DIRECT children only. A section
whose only content is a branch is not empty, even if that branch holds
no questions; the branch check reports that case instead.

IMPORTANT: This is a read-only layer. Defects are returned as data and
never raised. Rules that reference missing questions are not reported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .model import ConditionalBranch, Question, Questionnaire
from .rules import has_rules

UNTITLED_PAGE = "Untitled Page"
UNTITLED_SECTION = "Untitled Section"
UNTITLED_BRANCH = "Untitled Branch"
UNTITLED_QUESTION = "Untitled Question"


@dataclass
class ValidationReport:
    """Categorized defects found before publishing."""

    pages: List[str] = field(default_factory=list)
    sections: List[str] = field(default_factory=list)
    branches: List[str] = field(default_factory=list)
    questions: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.pages or self.sections or self.branches or self.questions)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        return len(self.pages) + len(self.sections) + len(self.branches) + len(self.questions)

    def as_dict(self) -> Dict[str, List[str]]:
        return {
            "pages": list(self.pages),
            "sections": list(self.sections),
            "branches": list(self.branches),
            "questions": list(self.questions),
        }

    def messages(self) -> List[str]:
        """All messages, bucket by bucket."""
        return self.pages + self.sections + self.branches + self.questions


def _check_answer_level_rules(question: Question, report: ValidationReport) -> None:
    question_text = question.text or UNTITLED_QUESTION
    for index, group in enumerate(question.answer_level_rule_groups, start=1):
        if not has_rules(group):
            report.questions.append(f'Answer Set {index} in "{question_text}" is missing rules')


def _check_branch(branch: ConditionalBranch, report: ValidationReport) -> None:
    branch_name = branch.name or UNTITLED_BRANCH

    if not branch.questions and not branch.child_branches:
        report.branches.append(f'"{branch_name}" has no questions')

    if not has_rules(branch.condition_group):
        report.branches.append(f'"{branch_name}" is missing conditions')

    for question in branch.questions:
        _check_answer_level_rules(question, report)

    for child in branch.child_branches:
        _check_branch(child, report)


def validate_questionnaire(questionnaire: Questionnaire) -> ValidationReport:
    """
    Run every publish check over the whole tree.

    Checks, in walk order:
    1. Page content (direct section content only)
    2. Section emptiness (direct questions and branches only)
    3. Answer-level rule groups of section questions
    4. Branches recursively: content, conditions, their questions' rule groups

    Returns a ValidationReport; publishing may proceed only when
    ``report.is_valid``.
    """
    report = ValidationReport()

    for page in questionnaire.pages:
        page_name = page.name or UNTITLED_PAGE

        page_has_content = any(s.questions or s.branches for s in page.sections)
        if not page_has_content:
            report.pages.append(f'"{page_name}" is missing content')

        for section in page.sections:
            section_name = section.name or UNTITLED_SECTION

            if not section.questions and not section.branches:
                report.sections.append(f'"{section_name}" in "{page_name}" is empty')

            for question in section.questions:
                _check_answer_level_rules(question, report)

            for branch in section.branches:
                _check_branch(branch, report)

    return report

"""
Tests for the pre-publish Validator.

Tests verify that the validator:
    - Reports empty pages and sections
    - Reports branches without content or conditions, at any depth
    - Reports answer-level rule groups without rules
    - Collects every defect instead of stopping at the first
"""

from qstudio.examples import build_example_it_request
from qstudio.model import (
    AnswerLevelRuleGroup,
    ConditionalBranch,
    Page,
    Question,
    Questionnaire,
    Section,
)
from qstudio.mutations import add_branch, apply_to_section
from qstudio.rules import Rule, RuleGroup
from qstudio.validator import validate_questionnaire


def conditions() -> RuleGroup:
    return RuleGroup(id="g1", children=(Rule(id="r1", question_id="q1", value="a1"),))


def single_section(section: Section, page_name: str = "Page 1") -> Questionnaire:
    return Questionnaire(pages=(Page(id="p1", name=page_name, sections=(section,)),))


def test_example_is_valid():
    report = validate_questionnaire(build_example_it_request())
    assert report.is_valid
    assert report.error_count == 0
    assert report.as_dict() == {"pages": [], "sections": [], "branches": [], "questions": []}


def test_single_empty_section():
    report = validate_questionnaire(single_section(Section(id="s1", name="Intro")))
    assert report.sections == ['"Intro" in "Page 1" is empty']
    assert report.pages == ['"Page 1" is missing content']
    assert report.branches == []
    assert report.questions == []


def test_page_without_sections_is_missing_content():
    questionnaire = Questionnaire(pages=(Page(id="p1", name=""),))
    report = validate_questionnaire(questionnaire)
    assert report.pages == ['"Untitled Page" is missing content']
    assert report.sections == []


def test_section_with_only_empty_branch_is_not_empty():
    section = Section(id="s1", name="S", branches=(ConditionalBranch(id="b1", name="B", condition_group=conditions()),))
    report = validate_questionnaire(single_section(section))
    assert report.sections == []
    assert report.pages == []
    assert report.branches == ['"B" has no questions']


def test_new_branch_reports_both_defects():
    questionnaire = single_section(Section(id="s1", name="S", questions=(Question(id="q1", text="Q"),)))
    questionnaire = apply_to_section(questionnaire, "s1", add_branch)
    report = validate_questionnaire(questionnaire)
    assert report.branches == [
        '"Conditional Branch" has no questions',
        '"Conditional Branch" is missing conditions',
    ]


def test_branch_with_child_branch_only_has_content():
    child = ConditionalBranch(id="b2", name="Child", condition_group=conditions(), questions=(Question(id="q2"),))
    parent = ConditionalBranch(id="b1", name="Parent", condition_group=conditions(), child_branches=(child,))
    report = validate_questionnaire(single_section(Section(id="s1", branches=(parent,))))
    assert report.is_valid


def test_nested_branch_defects_use_fallback_name():
    child = ConditionalBranch(id="b2", name="", questions=(Question(id="q2"),))
    parent = ConditionalBranch(id="b1", name="Parent", condition_group=conditions(), child_branches=(child,))
    report = validate_questionnaire(single_section(Section(id="s1", branches=(parent,))))
    assert report.branches == ['"Untitled Branch" is missing conditions']


def test_missing_condition_group_is_missing_conditions():
    branch = ConditionalBranch(id="b1", name="Legacy", condition_group=None, questions=(Question(id="q1"),))
    report = validate_questionnaire(single_section(Section(id="s1", branches=(branch,))))
    assert report.branches == ['"Legacy" is missing conditions']


def test_answer_level_groups_numbered_from_one():
    question = Question(
        id="q1",
        text="Pick one",
        answer_level_rule_groups=(
            AnswerLevelRuleGroup(id="g1", children=(Rule(id="r1"),)),
            AnswerLevelRuleGroup(id="g2"),
        ),
    )
    report = validate_questionnaire(single_section(Section(id="s1", questions=(question,))))
    assert report.questions == ['Answer Set 2 in "Pick one" is missing rules']


def test_answer_level_groups_checked_inside_branches():
    question = Question(id="q2", text="", answer_level_rule_groups=(AnswerLevelRuleGroup(id="g1"),))
    branch = ConditionalBranch(id="b1", name="B", condition_group=conditions(), questions=(question,))
    report = validate_questionnaire(single_section(Section(id="s1", branches=(branch,))))
    assert report.questions == ['Answer Set 1 in "Untitled Question" is missing rules']


def test_collects_all_defects():
    questionnaire = Questionnaire(
        pages=(
            Page(id="p1", name="A", sections=(Section(id="s1", name="X"), Section(id="s2", name="Y"))),
            Page(id="p2", name="B"),
        )
    )
    report = validate_questionnaire(questionnaire)
    assert report.pages == ['"A" is missing content', '"B" is missing content']
    assert report.sections == ['"X" in "A" is empty', '"Y" in "A" is empty']
    assert report.error_count == 4
    assert report.messages() == report.pages + report.sections


def test_dangling_rule_reference_is_not_a_defect():
    group = RuleGroup(id="g1", children=(Rule(id="r1", question_id="deleted-question", value="a1"),))
    branch = ConditionalBranch(id="b1", name="B", condition_group=group, questions=(Question(id="q1"),))
    assert validate_questionnaire(single_section(Section(id="s1", branches=(branch,)))).is_valid

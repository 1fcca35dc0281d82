"""
Test the example IT request questionnaire.

Validates that the example builder creates the expected pages, nested
branches, rule references and answer-level rules.
"""

from qstudio.examples import build_example_it_request
from qstudio.rules import referenced_question_ids
from qstudio.stats import find_branch_by_id, find_question_by_id, get_questionnaire_stats


def test_example_structure():
    questionnaire = build_example_it_request()

    stats = get_questionnaire_stats(questionnaire)
    assert stats.as_dict() == {"pageCount": 2, "sectionCount": 2, "questionCount": 6, "branchCount": 3}

    section = questionnaire.get_section("section-requester")
    assert [b.id for b in section.branches] == ["branch-hardware", "branch-access"]
    assert [c.id for c in section.branches[0].child_branches] == ["branch-laptop"]


def test_example_rules_reference_earlier_questions():
    questionnaire = build_example_it_request()
    laptop = find_branch_by_id(questionnaire, "branch-laptop")
    assert referenced_question_ids(laptop.condition_group) == ["q-device"]

    system = find_question_by_id(questionnaire, "q-system")
    group = system.answer_level_rule_groups[0]
    assert referenced_question_ids(group) == ["q-urgent"]
    assert group.inline_answer_set.id == "as-system-urgent"


def test_example_name_override():
    assert build_example_it_request(name="Other").name == "Other"

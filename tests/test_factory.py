"""
Tests for the entity factory and id generation.
"""

from qstudio.factory import (
    DEFAULT_BRANCH_NAME,
    create_answer_level_rule_group,
    create_answer_set,
    create_branch,
    create_condition_group,
    create_default_answer_set,
    create_page,
    create_question,
    create_questionnaire,
    create_section,
)
from qstudio.ids import EntityId, new_id
from qstudio.model import AnswerSet, QuestionType, RatingConfig
from qstudio.rules import MatchType


def test_new_id_prefix_and_uniqueness():
    first = new_id("q")
    second = new_id("q")
    assert first.startswith("q-")
    assert first != second


def test_entity_id_prefixes():
    assert EntityId.page().startswith("page-")
    assert EntityId.branch().startswith("branch-")
    assert EntityId.answer_set().startswith("as-")
    assert EntityId.draft().startswith("draft-")


def test_create_answer_set_has_one_empty_answer():
    answer_set = create_answer_set()
    assert len(answer_set.answers) == 1
    assert answer_set.answers[0].label == ""
    assert answer_set.answers[0].active is True


def test_default_answer_set_for_boolean():
    answer_set = create_default_answer_set(QuestionType.BOOLEAN)
    assert answer_set.is_default is True
    assert [(a.label, a.value) for a in answer_set.answers] == [("Yes", "true"), ("No", "false")]


def test_default_answer_set_for_rating():
    answer_set = create_default_answer_set(QuestionType.RATING)
    assert answer_set.name == "Rating"
    assert len(answer_set.answers) == 1


def test_create_condition_group_is_empty_and():
    group = create_condition_group()
    assert group.match_type == MatchType.AND
    assert group.children == ()


def test_create_question_defaults():
    question = create_question()
    assert question.id.startswith("q-")
    assert len(question.answer_sets) == 1
    assert len(question.answer_sets[0].answers) == 1
    assert question.condition_group is not None
    assert question.condition_group.children == ()
    assert question.answer_level_rule_groups == ()
    assert question.read_only is False
    assert question.hidden is False


def test_create_rating_question_has_rating_config():
    question = create_question("How was it?", QuestionType.RATING)
    assert question.rating_config == RatingConfig(min_value=1, max_value=5)


def test_create_branch_defaults():
    branch = create_branch()
    assert branch.name == DEFAULT_BRANCH_NAME == "Conditional Branch"
    assert branch.questions == ()
    assert branch.child_branches == ()
    assert branch.condition_group.children == ()


def test_create_answer_level_rule_group_with_inline_set():
    inline = AnswerSet(id="as-inline")
    group = create_answer_level_rule_group(inline)
    assert group.inline_answer_set is inline
    assert group.children == ()


def test_create_questionnaire_has_one_page():
    questionnaire = create_questionnaire("Onboarding")
    assert questionnaire.name == "Onboarding"
    assert questionnaire.status == "Draft"
    assert questionnaire.version == "1.0"
    assert [p.name for p in questionnaire.pages] == ["Page 1"]
    assert questionnaire.pages[0].sections == ()


def test_create_section_and_page():
    section = create_section("Details")
    page = create_page()
    assert section.id.startswith("section-")
    assert section.name == "Details"
    assert page.name == "New Page"

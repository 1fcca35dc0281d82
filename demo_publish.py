"""
Demo: Build the example IT request, inspect it, then publish it offline.
"""

from qstudio.examples import build_example_it_request
from qstudio.mutations import add_branch, apply_to_section
from qstudio.publishing import InMemoryRecordClient, publish_questionnaire
from qstudio.stats import calculate_questionnaire_stats, get_all_questions
from qstudio.storage import DraftService, InMemoryStore, PublishedService
from qstudio.validator import validate_questionnaire


def print_stats(questionnaire):
    stats = calculate_questionnaire_stats(questionnaire)
    print()
    print("=" * 70)
    print(f"QUESTIONNAIRE: {questionnaire.name}")
    print("=" * 70)
    print()
    print("📊 STRUCTURE")
    print(f"  Pages:                 {stats.page_count}")
    print(f"  Sections:              {stats.section_count}")
    print(f"  Questions:             {stats.question_count}")
    print(f"  Branches:              {stats.branch_count}")
    print()
    print("🧾 CONTENT")
    print(f"  Answer Sets:           {stats.answer_set_count}")
    print(f"  Actions:               {stats.action_count}")
    print(f"  Required Questions:    {stats.required_question_count}")
    print()
    print("🔗 QUESTION ORDER")
    for i, question in enumerate(get_all_questions(questionnaire), 1):
        print(f"  {i}. {question.text}")
    print()


def print_report(report):
    if report.is_valid:
        print("✨ NO ISSUES - ready to publish!")
        print()
        return
    print(f"⚠️  {report.error_count} ISSUE(S)")
    for message in report.messages():
        print(f"  - {message}")
    print()


if __name__ == "__main__":
    questionnaire = build_example_it_request()
    print_stats(questionnaire)
    print_report(validate_questionnaire(questionnaire))

    # An empty branch blocks publishing
    broken = apply_to_section(questionnaire, "section-requester", add_branch)
    print_report(validate_questionnaire(broken))

    drafts = DraftService(InMemoryStore())
    published = PublishedService(InMemoryStore())
    client = InMemoryRecordClient()

    draft, _ = drafts.save(questionnaire)
    outcome = publish_questionnaire(questionnaire, drafts, published, client, draft_id=draft.id)

    print("🚀 PUBLISHED")
    print(f"  Record id:             {outcome.record_id}")
    print(f"  Local copy:            {outcome.published.metadata.id}")
    print(f"  Drafts left:           {len(drafts.load_all())}")
    print()

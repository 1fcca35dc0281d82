"""
Example questionnaire builder for demos and tests.

Builds a small IT support request: two pages, a category question that
opens a hardware branch (with a nested laptop branch) or an access
branch, and an answer-level rule that swaps the answers offered for
the access question when the request is urgent.

Ids are fixed so rules and tests can refer to them.
"""
from qstudio.model import (
    ActionRecord,
    Answer,
    AnswerLevelRuleGroup,
    AnswerSet,
    ConditionalBranch,
    Page,
    Question,
    Questionnaire,
    QuestionType,
    Section,
)
from qstudio.rules import ConditionOperator, MatchType, Rule, RuleGroup


def _equals(rule_id: str, question_id: str, value: str) -> Rule:
    return Rule(id=rule_id, question_id=question_id, operator=ConditionOperator.EQUALS, value=value)


def _group(group_id: str, *children) -> RuleGroup:
    return RuleGroup(id=group_id, match_type=MatchType.AND, children=tuple(children))


def _single_set(set_id: str, *answers: Answer) -> tuple:
    return (AnswerSet(id=set_id, name="Default Answer Set", is_default=True, answers=answers),)


def build_example_it_request(name: str = "IT Support Request") -> Questionnaire:
    hardware_action = ActionRecord(
        operation_category_tier1="Hardware",
        operation_category_tier2="Repair",
        impact="3-Moderate",
        urgency="3-Medium",
    )

    # Page 1 root questions
    category = Question(
        id="q-category",
        text="What do you need help with?",
        question_type=QuestionType.CHOICE,
        required=True,
        order=1,
        answer_sets=_single_set(
            "as-category",
            Answer(id="a-hw", label="Hardware", value="hardware", action_record=hardware_action),
            Answer(id="a-sw", label="Software", value="software"),
            Answer(id="a-access", label="Access", value="access"),
        ),
        condition_group=_group("g-category"),
    )
    urgent = Question(
        id="q-urgent",
        text="Is this blocking your work?",
        question_type=QuestionType.BOOLEAN,
        required=True,
        order=2,
        answer_sets=_single_set(
            "as-urgent",
            Answer(id="a-yes", label="Yes", value="true"),
            Answer(id="a-no", label="No", value="false"),
        ),
        condition_group=_group("g-urgent"),
    )

    # Hardware branch with a nested laptop branch
    device = Question(
        id="q-device",
        text="Which device?",
        question_type=QuestionType.DROPDOWN,
        order=1,
        answer_sets=_single_set(
            "as-device",
            Answer(id="a-laptop", label="Laptop", value="laptop"),
            Answer(id="a-phone", label="Phone", value="phone"),
        ),
        condition_group=_group("g-device"),
    )
    serial = Question(
        id="q-serial",
        text="Laptop serial number",
        question_type=QuestionType.TEXT,
        order=1,
        answer_sets=_single_set("as-serial", Answer(id="a-serial")),
        condition_group=_group("g-serial"),
    )
    laptop_branch = ConditionalBranch(
        id="branch-laptop",
        name="Laptop details",
        condition_group=_group("g-laptop", _equals("r-laptop", "q-device", "a-laptop")),
        questions=(serial,),
    )
    hardware_branch = ConditionalBranch(
        id="branch-hardware",
        name="Hardware issue",
        condition_group=_group("g-hardware", _equals("r-hardware", "q-category", "a-hw")),
        questions=(device,),
        child_branches=(laptop_branch,),
    )

    # Access branch; urgent requests are offered a shorter answer list
    priority_set = AnswerSet(
        id="as-system-urgent",
        name="Urgent systems",
        answers=(
            Answer(
                id="a-email",
                label="Email",
                value="email",
                action_record=ActionRecord(operation_category_tier1="Access", urgency="1-Critical"),
            ),
        ),
    )
    system = Question(
        id="q-system",
        text="Which system?",
        question_type=QuestionType.CHOICE,
        order=1,
        answer_sets=_single_set(
            "as-system",
            Answer(id="a-email-std", label="Email", value="email"),
            Answer(id="a-crm", label="CRM", value="crm"),
        ),
        condition_group=_group("g-system"),
        answer_level_rule_groups=(
            AnswerLevelRuleGroup(
                id="g-system-urgent",
                children=(_equals("r-system-urgent", "q-urgent", "a-yes"),),
                inline_answer_set=priority_set,
            ),
        ),
    )
    access_branch = ConditionalBranch(
        id="branch-access",
        name="Access request",
        condition_group=_group("g-access", _equals("r-access", "q-category", "a-access")),
        questions=(system,),
    )

    request_page = Page(
        id="page-request",
        name="Request",
        sections=(
            Section(
                id="section-requester",
                name="Requester",
                questions=(category, urgent),
                branches=(hardware_branch, access_branch),
            ),
        ),
    )

    confirm = Question(
        id="q-confirm",
        text="Submit this request?",
        question_type=QuestionType.BOOLEAN,
        required=True,
        order=1,
        answer_sets=_single_set(
            "as-confirm",
            Answer(id="a-confirm-yes", label="Yes", value="true"),
            Answer(id="a-confirm-no", label="No", value="false"),
        ),
        condition_group=_group("g-confirm"),
    )
    review_page = Page(
        id="page-review",
        name="Review",
        sections=(Section(id="section-confirmation", name="Confirmation", questions=(confirm,)),),
    )

    return Questionnaire(
        name=name,
        description="Raise a request with the service desk",
        status="Draft",
        version="1.0",
        service_catalog="IT Services",
        pages=(request_page, review_page),
    )

"""
Serialization helpers for questionnaire objects.

Provides:
    - Lossless dict/JSON/YAML round-trip of the tree (camelCase wire keys)
    - The versioned export envelope {version, exportedAt, questionnaire}
    - The flat published record (Dataverse-style columns)

Legacy wire names are folded into canonical fields on read and never
written back: a branch's ``ruleGroup`` and a question's
``questionLevelRuleGroup`` become ``conditionGroup``; a rule's
``sourceQuestionId`` / ``sourceAnswerSetId`` / ``sourceAnswerId`` become
``questionId`` / ``answerSetId`` / ``value``.

Keys this module does not know are carried in each entity's ``extra``
mapping and written back unchanged.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, Optional

import yaml

from qstudio.errors import ImportFormatError
from qstudio.model import (
    ActionRecord,
    Answer,
    AnswerLevelRuleGroup,
    AnswerSet,
    ConditionalBranch,
    NumberConfig,
    Page,
    Question,
    Questionnaire,
    QuestionType,
    RatingConfig,
    Section,
)
from qstudio.rules import (
    AnswerRule,
    ConditionNode,
    ConditionOperator,
    MatchType,
    Rule,
    RuleGroup,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"
DEFAULT_RECORD_VERSION = "1.0.0"
UNTITLED_QUESTIONNAIRE = "Untitled Questionnaire"


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _extra(d: Dict[str, Any], known: Iterable[str]) -> Dict[str, Any]:
    known = set(known)
    return {k: v for k, v in d.items() if k not in known}


def _put(d: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        d[key] = value


def _operator(raw: Any) -> ConditionOperator:
    try:
        return ConditionOperator(raw)
    except ValueError:
        raise ImportFormatError(
            f"Unsupported condition operator: {raw!r}",
            user_message="Invalid questionnaire format",
        ) from None


# =============================================================================
# CONDITIONS
# =============================================================================

def condition_to_dict(node: ConditionNode | None) -> Any:
    if node is None:
        return None
    if isinstance(node, Rule):
        d = {
            "type": "rule",
            "id": node.id,
            "questionId": node.question_id,
            "operator": node.operator.value,
            "value": node.value,
        }
        if node.answer_set_id:
            d["answerSetId"] = node.answer_set_id
        return d
    if isinstance(node, AnswerRule):
        return {
            "type": "answerRule",
            "id": node.id,
            "previousQuestionId": node.previous_question_id,
            "previousAnswerSetId": node.previous_answer_set_id,
            "operator": node.operator.value,
            "previousAnswerId": node.previous_answer_id,
            "selectedAnswerSetId": node.selected_answer_set_id,
        }
    if isinstance(node, RuleGroup):
        d = {
            "type": "group",
            "id": node.id,
            "matchType": node.match_type.value,
            "children": [condition_to_dict(c) for c in node.children],
        }
        if isinstance(node, AnswerLevelRuleGroup) and node.inline_answer_set is not None:
            d["inlineAnswerSet"] = answer_set_to_dict(node.inline_answer_set)
        return d
    raise TypeError(f"Unsupported condition node type: {type(node)}")


def condition_from_dict(d: Any, answer_level: bool = False) -> ConditionNode | None:
    if d is None:
        return None
    t = d.get("type")
    if t == "rule":
        return Rule(
            id=d["id"],
            question_id=d.get("questionId", d.get("sourceQuestionId", "")),
            operator=_operator(d.get("operator", "equals")),
            value=d.get("value", d.get("sourceAnswerId", "")),
            answer_set_id=d.get("answerSetId", d.get("sourceAnswerSetId", "")),
        )
    if t == "answerRule":
        return AnswerRule(
            id=d["id"],
            previous_question_id=d.get("previousQuestionId", ""),
            previous_answer_set_id=d.get("previousAnswerSetId", ""),
            operator=_operator(d.get("operator", "equals")),
            previous_answer_id=d.get("previousAnswerId", ""),
            selected_answer_set_id=d.get("selectedAnswerSetId", ""),
        )
    if t == "group":
        # Groups nested in an answer-level group are answer-level too
        children = tuple(condition_from_dict(c, answer_level=answer_level) for c in d.get("children", []))
        match_type = MatchType(d.get("matchType", "AND"))
        if answer_level:
            inline = d.get("inlineAnswerSet")
            return AnswerLevelRuleGroup(
                id=d["id"],
                match_type=match_type,
                children=children,
                inline_answer_set=answer_set_from_dict(inline) if inline else None,
            )
        return RuleGroup(id=d["id"], match_type=match_type, children=children)
    raise ImportFormatError(
        f"Unsupported condition dict type: {t}",
        user_message="Invalid questionnaire format",
    )


# =============================================================================
# ANSWERS
# =============================================================================

_ACTION_KEYS = {
    "operationCategoryTier1": "operation_category_tier1",
    "operationCategoryTier2": "operation_category_tier2",
    "operationCategoryTier3": "operation_category_tier3",
    "productCategoryTier1": "product_category_tier1",
    "productCategoryTier2": "product_category_tier2",
    "productCategoryTier3": "product_category_tier3",
    "impact": "impact",
    "urgency": "urgency",
}


def action_record_to_dict(a: ActionRecord | None) -> Dict[str, Any] | None:
    if a is None:
        return None
    return {wire: getattr(a, attr) for wire, attr in _ACTION_KEYS.items()}


def action_record_from_dict(d: Dict[str, Any] | None) -> ActionRecord | None:
    if d is None:
        return None
    return ActionRecord(**{attr: d.get(wire, "") for wire, attr in _ACTION_KEYS.items()})


def answer_to_dict(a: Answer) -> Dict[str, Any]:
    d = {"id": a.id, "label": a.label, "value": a.value, "active": a.active}
    _put(d, "actionRecord", action_record_to_dict(a.action_record))
    d.update(a.extra)
    return d


def answer_from_dict(d: Dict[str, Any]) -> Answer:
    return Answer(
        id=d["id"],
        label=d.get("label", ""),
        value=d.get("value", ""),
        active=d.get("active", True),
        action_record=action_record_from_dict(d.get("actionRecord")),
        extra=_extra(d, ("id", "label", "value", "active", "actionRecord")),
    )


def answer_set_to_dict(s: AnswerSet) -> Dict[str, Any]:
    d = {
        "id": s.id,
        "name": s.name,
        "tag": s.tag,
        "isDefault": s.is_default,
        "answers": [answer_to_dict(a) for a in s.answers],
    }
    d.update(s.extra)
    return d


def answer_set_from_dict(d: Dict[str, Any]) -> AnswerSet:
    return AnswerSet(
        id=d["id"],
        name=d.get("name", ""),
        tag=d.get("tag", ""),
        is_default=d.get("isDefault", False),
        answers=tuple(answer_from_dict(a) for a in d.get("answers", [])),
        extra=_extra(d, ("id", "name", "tag", "isDefault", "answers")),
    )


# =============================================================================
# QUESTIONS
# =============================================================================

def number_config_to_dict(c: NumberConfig | None) -> Dict[str, Any] | None:
    if c is None:
        return None
    d: Dict[str, Any] = {}
    _put(d, "min", c.min)
    _put(d, "max", c.max)
    _put(d, "step", c.step)
    _put(d, "defaultValue", c.default_value)
    return d


def number_config_from_dict(d: Dict[str, Any] | None) -> NumberConfig | None:
    if d is None:
        return None
    return NumberConfig(min=d.get("min"), max=d.get("max"), step=d.get("step"), default_value=d.get("defaultValue"))


def rating_config_to_dict(c: RatingConfig | None) -> Dict[str, Any] | None:
    if c is None:
        return None
    d: Dict[str, Any] = {"minValue": c.min_value, "maxValue": c.max_value}
    _put(d, "minLabel", c.min_label)
    _put(d, "maxLabel", c.max_label)
    _put(d, "defaultValue", c.default_value)
    return d


def rating_config_from_dict(d: Dict[str, Any] | None) -> RatingConfig | None:
    if d is None:
        return None
    return RatingConfig(
        min_value=d.get("minValue", 1),
        max_value=d.get("maxValue", 5),
        min_label=d.get("minLabel"),
        max_label=d.get("maxLabel"),
        default_value=d.get("defaultValue"),
    )


def _question_type(raw: Any) -> QuestionType | str:
    try:
        return QuestionType(raw)
    except ValueError:
        return raw


_QUESTION_KEYS = (
    "id", "text", "type", "required", "order", "answerSets", "conditionGroup",
    "questionLevelRuleGroup", "answerLevelRuleGroups", "numberConfig",
    "ratingConfig", "actionRecord", "readOnly", "hidden",
)


def question_to_dict(q: Question) -> Dict[str, Any]:
    d = {
        "id": q.id,
        "text": q.text,
        "type": _enum_value(q.question_type),
        "required": q.required,
        "order": q.order,
        "answerSets": [answer_set_to_dict(s) for s in q.answer_sets],
    }
    _put(d, "conditionGroup", condition_to_dict(q.condition_group))
    d["answerLevelRuleGroups"] = [condition_to_dict(g) for g in q.answer_level_rule_groups]
    _put(d, "numberConfig", number_config_to_dict(q.number_config))
    _put(d, "ratingConfig", rating_config_to_dict(q.rating_config))
    _put(d, "actionRecord", action_record_to_dict(q.action_record))
    _put(d, "readOnly", q.read_only)
    _put(d, "hidden", q.hidden)
    d.update(q.extra)
    return d


def question_from_dict(d: Dict[str, Any]) -> Question:
    condition = d.get("conditionGroup") or d.get("questionLevelRuleGroup")
    return Question(
        id=d["id"],
        text=d.get("text", ""),
        question_type=_question_type(d.get("type", QuestionType.CHOICE.value)),
        required=d.get("required", False),
        order=d.get("order", 1),
        answer_sets=tuple(answer_set_from_dict(s) for s in d.get("answerSets", [])),
        condition_group=condition_from_dict(condition),
        answer_level_rule_groups=tuple(
            condition_from_dict(g, answer_level=True) for g in d.get("answerLevelRuleGroups", [])
        ),
        number_config=number_config_from_dict(d.get("numberConfig")),
        rating_config=rating_config_from_dict(d.get("ratingConfig")),
        action_record=action_record_from_dict(d.get("actionRecord")),
        read_only=d.get("readOnly"),
        hidden=d.get("hidden"),
        extra=_extra(d, _QUESTION_KEYS),
    )


# =============================================================================
# CONTAINERS
# =============================================================================

def branch_to_dict(b: ConditionalBranch) -> Dict[str, Any]:
    d: Dict[str, Any] = {"id": b.id, "name": b.name}
    _put(d, "conditionGroup", condition_to_dict(b.condition_group))
    d["questions"] = [question_to_dict(q) for q in b.questions]
    d["childBranches"] = [branch_to_dict(c) for c in b.child_branches]
    d.update(b.extra)
    return d


def branch_from_dict(d: Dict[str, Any]) -> ConditionalBranch:
    condition = d.get("conditionGroup") or d.get("ruleGroup")
    return ConditionalBranch(
        id=d["id"],
        name=d.get("name", ""),
        condition_group=condition_from_dict(condition),
        questions=tuple(question_from_dict(q) for q in d.get("questions", [])),
        child_branches=tuple(branch_from_dict(c) for c in d.get("childBranches", [])),
        extra=_extra(d, ("id", "name", "conditionGroup", "ruleGroup", "questions", "childBranches")),
    )


def section_to_dict(s: Section) -> Dict[str, Any]:
    d: Dict[str, Any] = {"id": s.id, "name": s.name}
    _put(d, "description", s.description)
    d["questions"] = [question_to_dict(q) for q in s.questions]
    d["branches"] = [branch_to_dict(b) for b in s.branches]
    d.update(s.extra)
    return d


def section_from_dict(d: Dict[str, Any]) -> Section:
    return Section(
        id=d["id"],
        name=d.get("name", ""),
        description=d.get("description"),
        questions=tuple(question_from_dict(q) for q in d.get("questions", [])),
        branches=tuple(branch_from_dict(b) for b in d.get("branches", [])),
        extra=_extra(d, ("id", "name", "description", "questions", "branches")),
    )


def page_to_dict(p: Page) -> Dict[str, Any]:
    d: Dict[str, Any] = {"id": p.id, "name": p.name}
    _put(d, "description", p.description)
    d["sections"] = [section_to_dict(s) for s in p.sections]
    d.update(p.extra)
    return d


def page_from_dict(d: Dict[str, Any]) -> Page:
    return Page(
        id=d["id"],
        name=d.get("name", ""),
        description=d.get("description"),
        sections=tuple(section_from_dict(s) for s in d.get("sections", [])),
        extra=_extra(d, ("id", "name", "description", "sections")),
    )


def questionnaire_to_dict(q: Questionnaire) -> Dict[str, Any]:
    d = {
        "name": q.name,
        "description": q.description,
        "status": q.status,
        "version": q.version,
        "serviceCatalog": q.service_catalog,
        "pages": [page_to_dict(p) for p in q.pages],
    }
    d.update(q.extra)
    return d


def questionnaire_from_dict(d: Dict[str, Any]) -> Questionnaire:
    return Questionnaire(
        name=d.get("name", ""),
        description=d.get("description", ""),
        status=d.get("status", "Draft"),
        version=d.get("version", "1.0"),
        service_catalog=d.get("serviceCatalog", ""),
        pages=tuple(page_from_dict(p) for p in d.get("pages", [])),
        extra=_extra(d, ("name", "description", "status", "version", "serviceCatalog", "pages")),
    )


_TEXT_FIELDS = ("name", "description", "status", "version", "serviceCatalog")


def parse_questionnaire(d: Any) -> Questionnaire:
    """
    Build a Questionnaire from an untrusted dict.

    Raises ImportFormatError instead of the KeyError/TypeError a
    malformed payload would otherwise produce.
    """
    if not isinstance(d, dict) or not isinstance(d.get("pages"), list):
        raise ImportFormatError("Questionnaire payload has no pages list", user_message="Invalid questionnaire format")
    for key in _TEXT_FIELDS:
        if key in d and not isinstance(d[key], str):
            raise ImportFormatError(
                f"Questionnaire field {key!r} must be a string, got {type(d[key]).__name__}",
                user_message="Invalid questionnaire format",
            )
    try:
        return questionnaire_from_dict(d)
    except ImportFormatError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ImportFormatError(
            f"Malformed questionnaire payload: {exc!r}",
            user_message="Invalid questionnaire format",
        ) from exc


# =============================================================================
# EXPORT ENVELOPE
# =============================================================================

@dataclass(frozen=True)
class ExportEnvelope:
    """The versioned wrapper used for import/export and record payloads."""

    version: str
    exported_at: str
    questionnaire: Questionnaire


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_export_data(q: Questionnaire, exported_at: Optional[str] = None) -> Dict[str, Any]:
    return {
        "version": SCHEMA_VERSION,
        "exportedAt": exported_at or utc_timestamp(),
        "questionnaire": questionnaire_to_dict(q),
    }


def envelope_from_dict(d: Any) -> ExportEnvelope:
    if not isinstance(d, dict):
        raise ImportFormatError("Export payload is not an object", user_message="Invalid questionnaire format")
    version = d.get("version")
    if version != SCHEMA_VERSION:
        raise ImportFormatError(
            f"Unsupported export version: {version!r}",
            user_message=f"Unsupported questionnaire file version: {version}",
        )
    exported_at = d.get("exportedAt")
    if not isinstance(exported_at, str):
        raise ImportFormatError("Export payload has no exportedAt timestamp", user_message="Invalid questionnaire format")
    return ExportEnvelope(
        version=version,
        exported_at=exported_at,
        questionnaire=parse_questionnaire(d.get("questionnaire")),
    )


def export_to_json(q: Questionnaire, indent: Optional[int] = 2, exported_at: Optional[str] = None) -> str:
    return json.dumps(build_export_data(q, exported_at), indent=indent)


def import_from_json(s: str) -> ExportEnvelope:
    """
    Parse an export file.

    Raises:
        ImportFormatError: payload is not JSON or not an export envelope.
        Nothing else is touched on failure.
    """
    try:
        d = json.loads(s)
    except (TypeError, ValueError) as exc:
        logger.warning("Rejected questionnaire import: %s", exc)
        raise ImportFormatError(
            f"Invalid JSON: {exc}",
            user_message="Failed to parse questionnaire file",
        ) from exc
    try:
        envelope = envelope_from_dict(d)
    except ImportFormatError as exc:
        logger.warning("Rejected questionnaire import: %s", exc)
        raise
    logger.debug("Imported questionnaire %r exported at %s", envelope.questionnaire.name, envelope.exported_at)
    return envelope


def questionnaire_to_yaml(q: Questionnaire) -> str:
    return yaml.safe_dump(questionnaire_to_dict(q), sort_keys=False)


def questionnaire_from_yaml(s: str) -> Questionnaire:
    try:
        d = yaml.safe_load(s)
    except yaml.YAMLError as exc:
        raise ImportFormatError(f"Invalid YAML: {exc}", user_message="Failed to parse questionnaire file") from exc
    return parse_questionnaire(d)


# =============================================================================
# PUBLISHED RECORD
# =============================================================================

class DataverseStatus(IntEnum):
    DRAFT = 100000000
    PUBLISHED = 100000001


# Column names on the questionnaire table
RECORD_COLUMNS = {
    "name": "ctna_name",
    "description": "ctna_description",
    "status": "ctna_status",
    "version": "ctna_version",
    "schema_version": "ctna_schemaversion",
    "definition_json": "ctna_definitionjson",
}


@dataclass(frozen=True)
class DataverseRecord:
    """
    Flat record handed to the remote record service.

    ``definition_json`` holds the whole questionnaire (not the envelope)
    as a JSON string.
    """

    name: str
    description: str
    status: DataverseStatus
    version: str
    schema_version: str
    definition_json: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "status": int(self.status),
            "version": self.version,
            "schemaVersion": self.schema_version,
            "definitionJson": self.definition_json,
        }

    def to_attributes(self) -> Dict[str, Any]:
        return {
            column: int(getattr(self, attr)) if attr == "status" else getattr(self, attr)
            for attr, column in RECORD_COLUMNS.items()
        }

    @classmethod
    def from_attributes(cls, attributes: Dict[str, Any]) -> "DataverseRecord":
        raw_status = attributes.get(RECORD_COLUMNS["status"])
        status = DataverseStatus.PUBLISHED if raw_status == DataverseStatus.PUBLISHED else DataverseStatus.DRAFT
        return cls(
            name=attributes.get(RECORD_COLUMNS["name"]) or "",
            description=attributes.get(RECORD_COLUMNS["description"]) or "",
            status=status,
            version=attributes.get(RECORD_COLUMNS["version"]) or "",
            schema_version=attributes.get(RECORD_COLUMNS["schema_version"]) or "",
            definition_json=attributes.get(RECORD_COLUMNS["definition_json"]) or "",
        )


def record_status(status: str | None) -> DataverseStatus:
    """Only "published" (any case) maps to PUBLISHED; everything else is DRAFT."""
    if isinstance(status, str) and status.lower() == "published":
        return DataverseStatus.PUBLISHED
    return DataverseStatus.DRAFT


def to_dataverse_record(
    q: Questionnaire,
    schema_version: str = SCHEMA_VERSION,
    default_version: str = DEFAULT_RECORD_VERSION,
) -> DataverseRecord:
    return DataverseRecord(
        name=q.name or UNTITLED_QUESTIONNAIRE,
        description=q.description or "",
        status=record_status(q.status),
        version=q.version or default_version,
        schema_version=schema_version,
        definition_json=json.dumps(questionnaire_to_dict(q)),
    )


def from_dataverse_record(record: DataverseRecord) -> Questionnaire:
    """
    Rebuild the questionnaire stored in a record's definition JSON.

    Raises:
        ImportFormatError: the record has no definition or it is malformed.
    """
    if not record.definition_json:
        raise ImportFormatError("Record has no DefinitionJson data")
    try:
        d = json.loads(record.definition_json)
    except ValueError as exc:
        raise ImportFormatError(
            f"Record DefinitionJson is not valid JSON: {exc}",
            user_message="Record has malformed DefinitionJson data",
        ) from exc
    return parse_questionnaire(d)

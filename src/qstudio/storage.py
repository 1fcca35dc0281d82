"""
Local persistence for drafts and published questionnaires.

Layout (JsonFileStore):
    .qstudio/drafts/draft-1a2b3c4d5e6f.json
    .qstudio/published/published-9f8e7d6c5b4a.json

Each record is a plain JSON object. Questionnaires inside records use
the same wire shape as the export codec, so a record file can be read
by anything that reads an export.

Lookups return a LookupResult instead of raising: "not found" is an
expected outcome for callers that search by id or name.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import ImportFormatError, RecordIdError
from .ids import EntityId
from .model import Questionnaire, QuestionnaireStatus
from .serialization import parse_questionnaire, questionnaire_to_dict, utc_timestamp
from .stats import StructureStats, calculate_questionnaire_stats, get_questionnaire_stats

logger = logging.getLogger(__name__)

SOURCE_DRAFT = "draft"
SOURCE_PUBLISHED = "published"
SOURCE_RECORD = "record"


# =============================================================================
# STORES
# =============================================================================

class QuestionnaireStore(ABC):
    """A keyed collection of JSON records."""

    @abstractmethod
    def load_all(self) -> Dict[str, Dict[str, Any]]:
        """Every record keyed by id, in a stable order."""

    @abstractmethod
    def save(self, record_id: str, record: Dict[str, Any]) -> None:
        """Create or replace a record."""

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        """Remove a record. Returns False when there was nothing to remove."""

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        return self.load_all().get(record_id)

    def clear(self) -> None:
        for record_id in list(self.load_all()):
            self.delete(record_id)


class InMemoryStore(QuestionnaireStore):
    """Insertion-ordered store kept in a dict. Used by tests and the demo."""

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}

    def load_all(self) -> Dict[str, Dict[str, Any]]:
        return dict(self._records)

    def save(self, record_id: str, record: Dict[str, Any]) -> None:
        self._records[record_id] = record

    def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None


def _is_plain_name(record_id: str) -> bool:
    return bool(record_id) and Path(record_id).name == record_id


class JsonFileStore(QuestionnaireStore):
    """
    One JSON file per record under ``base_dir``.

    Files are rewritten on every save. A file that cannot be read or
    parsed is logged and skipped so one bad record does not hide the rest.
    """

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("JsonFileStore initialized: %s", self.base_dir)

    def _path(self, record_id: str) -> Path:
        if not _is_plain_name(record_id):
            raise RecordIdError(f"Record id is not a plain name: {record_id!r}")
        return self.base_dir / f"{record_id}.json"

    def load_all(self) -> Dict[str, Dict[str, Any]]:
        records: Dict[str, Dict[str, Any]] = {}
        for path in sorted(self.base_dir.glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    records[path.stem] = json.load(f)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.warning("Skipping unreadable record %s: %s", path, e)
        return records

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        if not _is_plain_name(record_id):
            return None
        path = self._path(record_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Skipping unreadable record %s: %s", path, e)
            return None

    def save(self, record_id: str, record: Dict[str, Any]) -> None:
        with open(self._path(record_id), "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2, ensure_ascii=False)
        logger.debug("Wrote record %s", record_id)

    def delete(self, record_id: str) -> bool:
        if not _is_plain_name(record_id):
            return False
        path = self._path(record_id)
        if not path.exists():
            return False
        path.unlink()
        return True


def _decode(from_dict, record_id, d):
    """Decode a stored record, or log and return None when it is malformed."""
    try:
        return from_dict(d)
    except ImportFormatError as e:
        logger.warning("Skipping malformed record %s: %s", record_id, e)
        return None


# =============================================================================
# DRAFTS
# =============================================================================

@dataclass(frozen=True)
class SavedDraft:
    """A questionnaire saved for later editing, with its structure counts."""

    id: str
    questionnaire: Questionnaire
    saved_at: str
    stats: StructureStats

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id,
            "questionnaire": questionnaire_to_dict(self.questionnaire),
            "savedAt": self.saved_at,
        }
        d.update(self.stats.as_dict())
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SavedDraft":
        """Raises ImportFormatError when the record is not a draft."""
        if not isinstance(d, dict) or not isinstance(d.get("id"), str):
            raise ImportFormatError("Draft record has no id", user_message="Invalid draft record")
        return cls(
            id=d["id"],
            questionnaire=parse_questionnaire(d.get("questionnaire")),
            saved_at=d.get("savedAt", ""),
            stats=StructureStats(
                page_count=d.get("pageCount", 0),
                section_count=d.get("sectionCount", 0),
                question_count=d.get("questionCount", 0),
                branch_count=d.get("branchCount", 0),
            ),
        )


class DraftService:
    """Create, update, list and delete drafts in a QuestionnaireStore."""

    def __init__(self, store: QuestionnaireStore):
        self.store = store

    def load_all(self) -> List[SavedDraft]:
        drafts = (_decode(SavedDraft.from_dict, k, d) for k, d in self.store.load_all().items())
        return [draft for draft in drafts if draft is not None]

    def find_by_id(self, draft_id: str) -> Optional[SavedDraft]:
        d = self.store.find_by_id(draft_id)
        return _decode(SavedDraft.from_dict, draft_id, d) if d is not None else None

    def save(self, questionnaire: Questionnaire, existing_id: Optional[str] = None) -> Tuple[SavedDraft, bool]:
        """
        Save ``questionnaire`` as a draft.

        The stored copy always has status Draft. A new id is generated
        when ``existing_id`` is None.

        Returns:
            (draft, is_new)
        """
        draft_id = existing_id or EntityId.draft()
        is_new = self.store.find_by_id(draft_id) is None
        draft = SavedDraft(
            id=draft_id,
            questionnaire=replace(questionnaire, status=QuestionnaireStatus.DRAFT.value),
            saved_at=utc_timestamp(),
            stats=get_questionnaire_stats(questionnaire),
        )
        self.store.save(draft_id, draft.to_dict())
        logger.info("%s draft: %s", "Created new" if is_new else "Updated", draft_id)
        return draft, is_new

    def delete(self, draft_id: str) -> bool:
        if not self.store.delete(draft_id):
            logger.warning("Draft not found for deletion: %s", draft_id)
            return False
        logger.info("Deleted draft: %s", draft_id)
        return True

    def clear_all(self) -> None:
        self.store.clear()
        logger.info("Cleared all drafts")


# =============================================================================
# PUBLISHED
# =============================================================================

DEFAULT_CATEGORY = "Service Request"
DEFAULT_PRIORITY = "Medium"
DEFAULT_SERVICE_CATALOG = "General"
UNTITLED_QUESTIONNAIRE = "Untitled Questionnaire"


@dataclass(frozen=True)
class PublishedMetadata:
    """List-view summary of a published questionnaire."""

    id: str
    name: str
    description: str
    category: str
    status: str
    priority: str
    created_at: str
    updated_at: str
    question_count: int
    service_catalog: str
    page_count: int
    section_count: int
    branch_count: int
    action_count: int
    answer_set_count: int

    _WIRE = {
        "id": "id",
        "name": "name",
        "description": "description",
        "category": "category",
        "status": "status",
        "priority": "priority",
        "created_at": "createdAt",
        "updated_at": "updatedAt",
        "question_count": "questionCount",
        "service_catalog": "serviceCatalog",
        "page_count": "pageCount",
        "section_count": "sectionCount",
        "branch_count": "branchCount",
        "action_count": "actionCount",
        "answer_set_count": "answerSetCount",
    }

    def to_dict(self) -> Dict[str, Any]:
        return {wire: getattr(self, attr) for attr, wire in self._WIRE.items()}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PublishedMetadata":
        missing = [wire for wire in cls._WIRE.values() if wire not in d]
        if missing:
            raise ImportFormatError(
                "Published metadata is missing " + ", ".join(missing),
                user_message="Invalid published record",
            )
        return cls(**{attr: d[wire] for attr, wire in cls._WIRE.items()})


@dataclass(frozen=True)
class PublishedRecord:
    metadata: PublishedMetadata
    questionnaire: Questionnaire

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "questionnaire": questionnaire_to_dict(self.questionnaire),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PublishedRecord":
        if not isinstance(d, dict) or not isinstance(d.get("metadata"), dict):
            raise ImportFormatError("Published record has no metadata", user_message="Invalid published record")
        return cls(
            metadata=PublishedMetadata.from_dict(d["metadata"]),
            questionnaire=parse_questionnaire(d.get("questionnaire")),
        )


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


class PublishedService:
    """Local copies of published questionnaires, keyed by published id."""

    def __init__(self, store: QuestionnaireStore):
        self.store = store

    def load_all(self) -> List[PublishedRecord]:
        records = (_decode(PublishedRecord.from_dict, k, d) for k, d in self.store.load_all().items())
        return [record for record in records if record is not None]

    def find_by_id(self, record_id: str) -> Optional[PublishedRecord]:
        d = self.store.find_by_id(record_id)
        return _decode(PublishedRecord.from_dict, record_id, d) if d is not None else None

    def publish(self, questionnaire: Questionnaire, existing_id: Optional[str] = None) -> PublishedRecord:
        """
        Store ``questionnaire`` as published with status Active.

        Republishing under an existing id keeps the original ``created_at``.
        """
        record_id = existing_id or EntityId.published()
        existing = self.find_by_id(record_id)
        stats = calculate_questionnaire_stats(questionnaire)
        today = _today()

        metadata = PublishedMetadata(
            id=record_id,
            name=questionnaire.name or UNTITLED_QUESTIONNAIRE,
            description=questionnaire.description or "",
            category=DEFAULT_CATEGORY,
            status=QuestionnaireStatus.ACTIVE.value,
            priority=DEFAULT_PRIORITY,
            created_at=existing.metadata.created_at if existing else today,
            updated_at=today,
            question_count=stats.question_count,
            service_catalog=questionnaire.service_catalog or DEFAULT_SERVICE_CATALOG,
            page_count=stats.page_count,
            section_count=stats.section_count,
            branch_count=stats.branch_count,
            action_count=stats.action_count,
            answer_set_count=stats.answer_set_count,
        )
        record = PublishedRecord(
            metadata=metadata,
            questionnaire=replace(questionnaire, status=QuestionnaireStatus.ACTIVE.value),
        )
        self.store.save(record_id, record.to_dict())
        logger.info("Published questionnaire: %s", record_id)
        return record

    def delete(self, record_id: str) -> bool:
        if not self.store.delete(record_id):
            logger.warning("Published record not found for deletion: %s", record_id)
            return False
        logger.info("Deleted published record: %s", record_id)
        return True

    def clear_all(self) -> None:
        self.store.clear()
        logger.info("Cleared all published records")


# =============================================================================
# LOOKUP
# =============================================================================

@dataclass(frozen=True)
class LookupResult:
    """
    Outcome of a questionnaire lookup.

    Attributes:
        found: Whether a questionnaire was located
        questionnaire: The questionnaire, or None
        source: "draft", "published" or "record"
        id: Id of the draft / published record it came from
        message: Reason when not found
    """

    found: bool
    questionnaire: Optional[Questionnaire] = None
    source: Optional[str] = None
    id: Optional[str] = None
    message: str = ""

    @classmethod
    def hit(cls, questionnaire: Questionnaire, source: str, record_id: str) -> "LookupResult":
        return cls(found=True, questionnaire=questionnaire, source=source, id=record_id)

    @classmethod
    def miss(cls, message: str) -> "LookupResult":
        return cls(found=False, message=message)


@dataclass(frozen=True)
class LibraryEntry:
    id: str
    name: str
    source: str
    questionnaire: Questionnaire


def _normalize_name(name: str) -> str:
    return name.strip().lower()


class QuestionnaireLibrary:
    """Search drafts and published questionnaires together."""

    def __init__(self, drafts: DraftService, published: PublishedService):
        self.drafts = drafts
        self.published = published

    def from_id(self, record_id: str) -> LookupResult:
        """Drafts are searched before published records."""
        draft = self.drafts.find_by_id(record_id)
        if draft is not None:
            return LookupResult.hit(draft.questionnaire, SOURCE_DRAFT, draft.id)
        record = self.published.find_by_id(record_id)
        if record is not None:
            return LookupResult.hit(record.questionnaire, SOURCE_PUBLISHED, record.metadata.id)
        return LookupResult.miss(f"Questionnaire not found with ID: {record_id}")

    def from_name(self, name: str) -> LookupResult:
        """
        Case-insensitive, whitespace-trimmed name match.

        Published records take priority over drafts; the first match wins.
        """
        wanted = _normalize_name(name)
        for record in self.published.load_all():
            if _normalize_name(record.questionnaire.name) == wanted:
                return LookupResult.hit(record.questionnaire, SOURCE_PUBLISHED, record.metadata.id)
        for draft in self.drafts.load_all():
            if _normalize_name(draft.questionnaire.name) == wanted:
                return LookupResult.hit(draft.questionnaire, SOURCE_DRAFT, draft.id)
        return LookupResult.miss(f"Questionnaire not found with name: {name}")

    def list_all(self) -> List[LibraryEntry]:
        """Published records first, then drafts."""
        entries = [
            LibraryEntry(r.metadata.id, r.questionnaire.name, SOURCE_PUBLISHED, r.questionnaire)
            for r in self.published.load_all()
        ]
        entries.extend(
            LibraryEntry(d.id, d.questionnaire.name, SOURCE_DRAFT, d.questionnaire)
            for d in self.drafts.load_all()
        )
        return entries


def open_library(storage_dir: str | Path) -> QuestionnaireLibrary:
    """A library backed by JSON files under ``storage_dir``."""
    base = Path(storage_dir)
    return QuestionnaireLibrary(
        DraftService(JsonFileStore(base / "drafts")),
        PublishedService(JsonFileStore(base / "published")),
    )

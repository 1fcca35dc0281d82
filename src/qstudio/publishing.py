"""
Publishing: validate, push to the record service, keep a local copy.

The remote record service is reached through the RecordClient protocol.
Every client call returns a RecordResult; remote failures are data, not
exceptions, so a failed push never loses the local published copy.

Publish flow:
    1. validate_questionnaire; stop and return the report on any defect
    2. build the flat record from the questionnaire with status Active
    3. update the remote record when an id is known, create it otherwise
    4. store the local published copy (whatever step 3 returned)
    5. drop the draft the questionnaire was edited from
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Protocol

from .config import StudioSettings
from .errors import ImportFormatError
from .ids import new_id
from .model import Questionnaire, QuestionnaireStatus
from .serialization import RECORD_COLUMNS, DataverseRecord, from_dataverse_record, to_dataverse_record
from .storage import SOURCE_RECORD, DraftService, LookupResult, PublishedRecord, PublishedService
from .validator import ValidationReport, validate_questionnaire

logger = logging.getLogger(__name__)


# =============================================================================
# REMOTE RESULTS
# =============================================================================

class RecordErrorCode:
    NOT_FOUND = "NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    DUPLICATE_RECORD = "DUPLICATE_RECORD"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONCURRENCY_ERROR = "CONCURRENCY_ERROR"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN = "UNKNOWN"


USER_MESSAGES = {
    RecordErrorCode.NOT_FOUND: "The record you requested could not be found. It may have been deleted.",
    RecordErrorCode.ACCESS_DENIED: "You do not have permission to perform this action.",
    RecordErrorCode.DUPLICATE_RECORD: "A record with this information already exists.",
    RecordErrorCode.VALIDATION_ERROR: "Please check your input and try again.",
    RecordErrorCode.CONCURRENCY_ERROR: "This record was modified by another user. Please refresh and try again.",
    RecordErrorCode.TIMEOUT: "The request took too long. Please try again.",
    RecordErrorCode.NETWORK_ERROR: "A network error occurred. Please check your connection.",
    RecordErrorCode.UNKNOWN: "An unexpected error occurred. Please try again.",
}


@dataclass(frozen=True)
class RecordError:
    """
    A failed record-service call.

    Attributes:
        code: One of RecordErrorCode
        message: Technical detail for logs
        user_message: Text safe to show to an author
    """
    code: str
    message: str
    user_message: str

    @classmethod
    def from_code(cls, code: str, message: str = "") -> "RecordError":
        user_message = USER_MESSAGES.get(code, USER_MESSAGES[RecordErrorCode.UNKNOWN])
        return cls(code=code, message=message or user_message, user_message=user_message)


@dataclass(frozen=True)
class RecordResult:
    """
    Outcome of one record-service call.

    ``data`` is the new record id for create, the record id for update,
    and the attribute mapping for retrieve.
    """
    success: bool
    data: Any = None
    error: Optional[RecordError] = None

    @classmethod
    def ok(cls, data: Any = None) -> "RecordResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: RecordError) -> "RecordResult":
        return cls(success=False, error=error)


class RecordClient(Protocol):
    """The questionnaire table of the remote record service."""

    def create(self, attributes: Dict[str, Any]) -> RecordResult:
        ...

    def update(self, record_id: str, attributes: Dict[str, Any]) -> RecordResult:
        ...

    def retrieve(self, record_id: str, select: Optional[List[str]] = None) -> RecordResult:
        ...


class InMemoryRecordClient:
    """A RecordClient that keeps records in a dict. Used offline and in tests."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}

    def create(self, attributes: Dict[str, Any]) -> RecordResult:
        record_id = new_id("record")
        self.records[record_id] = dict(attributes)
        return RecordResult.ok(record_id)

    def update(self, record_id: str, attributes: Dict[str, Any]) -> RecordResult:
        if record_id not in self.records:
            return RecordResult.fail(RecordError.from_code(RecordErrorCode.NOT_FOUND, f"No record {record_id}"))
        self.records[record_id].update(attributes)
        return RecordResult.ok(record_id)

    def retrieve(self, record_id: str, select: Optional[List[str]] = None) -> RecordResult:
        record = self.records.get(record_id)
        if record is None:
            return RecordResult.fail(RecordError.from_code(RecordErrorCode.NOT_FOUND, f"No record {record_id}"))
        if select is not None:
            record = {k: v for k, v in record.items() if k in select}
        return RecordResult.ok(dict(record))


# =============================================================================
# PUBLISH
# =============================================================================

@dataclass(frozen=True)
class PublishOutcome:
    """
    Everything a publish attempt produced.

    When ``report`` has errors nothing else was attempted and the other
    fields are None.
    """
    report: ValidationReport
    remote: Optional[RecordResult] = None
    record_id: Optional[str] = None
    published: Optional[PublishedRecord] = None

    @property
    def published_locally(self) -> bool:
        return self.published is not None

    @property
    def published_remotely(self) -> bool:
        return self.remote is not None and self.remote.success


def _push_record(client: RecordClient, attributes: Dict[str, Any], record_id: Optional[str]) -> RecordResult:
    try:
        if record_id:
            return client.update(record_id, attributes)
        return client.create(attributes)
    except Exception as exc:
        logger.exception("Unexpected error publishing to the record service")
        return RecordResult.fail(RecordError.from_code(RecordErrorCode.UNKNOWN, str(exc)))


def publish_questionnaire(
    questionnaire: Questionnaire,
    drafts: DraftService,
    published: PublishedService,
    client: RecordClient,
    record_id: Optional[str] = None,
    draft_id: Optional[str] = None,
    published_id: Optional[str] = None,
    settings: Optional[StudioSettings] = None,
) -> PublishOutcome:
    """
    Validate and publish ``questionnaire``.

    Args:
        record_id: Remote record to update; a new one is created when None
        draft_id: Draft to remove once published
        published_id: Local published copy to replace
        settings: Supplies schema and default record versions

    Returns:
        PublishOutcome. Check ``outcome.report.is_valid`` first.
    """
    report = validate_questionnaire(questionnaire)
    if report.has_errors:
        logger.info("Publish blocked by %d validation error(s)", report.error_count)
        return PublishOutcome(report=report)

    settings = settings or StudioSettings()
    active = replace(questionnaire, status=QuestionnaireStatus.ACTIVE.value)
    record = to_dataverse_record(
        active,
        schema_version=settings.schema_version,
        default_version=settings.default_record_version,
    )

    updating = bool(record_id)
    remote = _push_record(client, record.to_attributes(), record_id)
    if remote.success:
        record_id = remote.data or record_id
        logger.info("%s record: %s", "Updated" if updating else "Created", record_id)
    else:
        logger.error(
            "Failed to %s record: %s",
            "update" if updating else "create",
            remote.error.message if remote.error else "unknown error",
        )

    local = published.publish(questionnaire, existing_id=published_id)

    if draft_id:
        drafts.delete(draft_id)

    return PublishOutcome(report=report, remote=remote, record_id=record_id, published=local)


def load_from_record_service(client: RecordClient, record_id: str) -> LookupResult:
    """Fetch a record by id and rebuild its questionnaire."""
    result = client.retrieve(record_id, select=list(RECORD_COLUMNS.values()))
    if not result.success:
        message = result.error.user_message if result.error else ""
        return LookupResult.miss(message or "Failed to retrieve record")

    record = DataverseRecord.from_attributes(result.data or {})
    try:
        questionnaire = from_dataverse_record(record)
    except ImportFormatError as exc:
        logger.warning("Record %s could not be loaded: %s", record_id, exc)
        return LookupResult.miss(exc.user_message)
    return LookupResult.hit(questionnaire, SOURCE_RECORD, record_id)

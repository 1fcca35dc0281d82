"""
Exception types for Questionnaire Studio.

Only conditions a caller cannot express as data are raised. Structural
defects, lookup misses and remote failures are returned as values
(see validator.ValidationReport, storage.LookupResult and
publishing.RecordResult).
"""

from __future__ import annotations


class QuestionnaireError(Exception):
    """Base class for all qstudio errors.

    ``user_message`` is safe to show to an author verbatim.
    """

    def __init__(self, message: str, user_message: str | None = None):
        super().__init__(message)
        self.user_message = user_message or message


class ImportFormatError(QuestionnaireError):
    """Raised when an import payload is not valid JSON or not an export envelope."""
    pass


class PatchError(QuestionnaireError, ValueError):
    """Raised when a patch object is built with a value of the wrong type."""
    pass


class RecordIdError(QuestionnaireError, ValueError):
    """Raised when a storage id is not a plain file name."""
    pass

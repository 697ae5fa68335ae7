"""Exception hierarchy and user-facing error messages."""

from __future__ import annotations

from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class StudioError(RuntimeError):
    """Base exception for failures surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class AuthenticationRequired(StudioError):
    status_code = 401


class AccessDenied(StudioError):
    status_code = 403


class NotFoundError(StudioError):
    status_code = 404


class InvalidRequest(StudioError):
    status_code = 400


class ItemBusyError(StudioError):
    """Raised when an action is already running for the same storyboard item."""

    status_code = 409


class ModeChangeNotAllowed(StudioError):
    status_code = 409


class ExternalServiceError(StudioError):
    """Base class for failures of storage, database, dictionary or pipeline."""

    status_code = 502


class StorageError(ExternalServiceError):
    pass


class DatabaseError(ExternalServiceError):
    status_code = 500


class DictionaryAPIError(ExternalServiceError):
    pass


class PipelineCommandError(ExternalServiceError):
    """Raised when the remote command server rejects a request."""


class CommandServerUnavailable(PipelineCommandError):
    """Raised when the remote command server cannot be reached."""

    status_code = 503


class CommandServerTimeout(CommandServerUnavailable):
    """Raised when the remote command server does not answer in time."""


_FRIENDLY_OVERRIDES = {
    "Database error occurred.": "Something went wrong. Please try again.",
    "insufficient_privilege": "You don't have permission to perform this action.",
    "Authentication failed.": "Please sign in again.",
    "Network error": "Please check your internet connection.",
}

_SQLSTATE_MESSAGES = {
    "23505": "A record with this information already exists.",
    "23503": "Referenced record does not exist.",
    "42501": "You do not have permission to perform this action.",
}


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    original = getattr(exc, "orig", None)
    for attr in ("pgcode", "sqlstate"):
        code = getattr(original, attr, None)
        if code:
            return str(code)
    return None


def _database_message(exc: SQLAlchemyError) -> str:
    code = _sqlstate(exc)
    if code in _SQLSTATE_MESSAGES:
        return _SQLSTATE_MESSAGES[code]
    if isinstance(exc, IntegrityError):
        text = str(exc.orig if exc.orig is not None else exc).lower()
        if "unique" in text:
            return _SQLSTATE_MESSAGES["23505"]
        if "foreign key" in text:
            return _SQLSTATE_MESSAGES["23503"]
    return "Database error occurred."


def _storage_message(message: str) -> str:
    lowered = message.lower()
    if "size" in lowered:
        return "File size is too large."
    if "type" in lowered:
        return "Invalid file type."
    if "permission" in lowered or "accessdenied" in lowered or "access denied" in lowered:
        return "You do not have permission to upload files."
    return message or "File upload error occurred."


def describe_error(exc: BaseException) -> str:
    """Return a best-effort description of ``exc`` grouped by failure source."""

    if isinstance(exc, SQLAlchemyError):
        return _database_message(exc)
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {}) if exc.response else {}
        return _storage_message(str(error.get("Message") or error.get("Code") or ""))
    if isinstance(exc, BotoCoreError):
        return _storage_message(str(exc))
    if isinstance(exc, StorageError):
        return _storage_message(str(exc))

    message = str(exc)
    if "not found" in message:
        return "The requested resource was not found."
    if "network" in message:
        return "Network connection error. Please check your internet connection."
    return message or "An unexpected error occurred. Please try again."


def user_friendly_message(exc: BaseException) -> str:
    """Map technical failures to the message shown in user notifications."""

    message = describe_error(exc)
    return _FRIENDLY_OVERRIDES.get(message, message)


def validation_message(field: str) -> str:
    """Return the message shown when a required project field is invalid."""

    messages = {
        "project_name": "Project name is required.",
        "book_title": "Book title is required.",
        "epub_file": "Please upload a valid EPUB file.",
    }
    return messages.get(field, f"{field} is invalid.")


__all__ = [
    "AccessDenied",
    "AuthenticationRequired",
    "CommandServerTimeout",
    "CommandServerUnavailable",
    "DatabaseError",
    "DictionaryAPIError",
    "ExternalServiceError",
    "InvalidRequest",
    "ItemBusyError",
    "ModeChangeNotAllowed",
    "NotFoundError",
    "PipelineCommandError",
    "StorageError",
    "StudioError",
    "describe_error",
    "user_friendly_message",
    "validation_message",
]

"""
Domain errors.

Every failure that reaches an API caller is one of these. Database and
provider errors are translated at the boundary so raw codes and details
never leak into responses.
"""

from typing import Any, Dict, Optional


class LeadNexusError(Exception):
    """Base error with a stable code and an HTTP status."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.code, "message": self.message}


class DuplicateEmailError(LeadNexusError):
    code = "DUPLICATE_EMAIL"
    status_code = 409


class DuplicateRecordError(LeadNexusError):
    code = "DUPLICATE_RECORD"
    status_code = 409


class InvalidReferenceError(LeadNexusError):
    code = "INVALID_REFERENCE"
    status_code = 400


class MissingFieldError(LeadNexusError):
    code = "MISSING_FIELD"
    status_code = 400


class UnauthorizedError(LeadNexusError):
    code = "UNAUTHORIZED"
    status_code = 403


class NotFoundError(LeadNexusError):
    code = "NOT_FOUND"
    status_code = 404


class ValidationFailureError(LeadNexusError):
    code = "VALIDATION_FAILURE"
    status_code = 422


class UpstreamProviderError(LeadNexusError):
    code = "UPSTREAM_FAILURE"
    status_code = 502


class DatabaseError(LeadNexusError):
    code = "DATABASE_ERROR"
    status_code = 500


class ConfigurationMissingError(LeadNexusError, ValueError):
    """A provider credential is absent. Always fatal, never swallowed."""

    code = "CONFIGURATION_MISSING"
    status_code = 500

    def __init__(self, variable: str, service: str = ""):
        label = f"{service} is not properly configured. " if service else ""
        super().__init__(f"{label}Please set the {variable} environment variable.")
        self.variable = variable


def require_setting(value: Optional[str], variable: str, service: str = "") -> str:
    """Return the value or raise ConfigurationMissingError."""
    if not value or not value.strip():
        raise ConfigurationMissingError(variable, service)
    return value


def translate_database_error(payload: Any, status_code: Optional[int] = None) -> LeadNexusError:
    """
    Map a PostgREST/Postgres error payload to a domain error.

    PostgREST returns {"code", "message", "details", "hint"} where code is
    the SQLSTATE for database errors (23505 unique, 23503 foreign key, ...).
    """
    if not isinstance(payload, dict):
        payload = {"message": str(payload or "")}

    code = str(payload.get("code") or "")
    message = str(payload.get("message") or "")
    detail = str(payload.get("details") or "")
    text = f"{message} {detail}".lower()

    if code == "23505" or "duplicate key value" in text:
        if "email" in text:
            return DuplicateEmailError("This email address is already registered", payload)
        return DuplicateRecordError("This record already exists", payload)

    if code == "23503" or "violates foreign key constraint" in text:
        return InvalidReferenceError("Referenced record does not exist", payload)

    if code == "23502" or "null value in column" in text:
        return MissingFieldError("Required field is missing", payload)

    if code == "42501" or "permission denied" in text or status_code in (401, 403):
        return UnauthorizedError("You don't have permission to perform this action", payload)

    if code in ("22P02", "22000") or "expected 1536 dimensions" in text:
        return ValidationFailureError("Invalid value for a lead field", payload)

    if code == "PGRST116" or status_code == 404:
        return NotFoundError("Record not found", payload)

    return DatabaseError("An error occurred while processing your request", payload)

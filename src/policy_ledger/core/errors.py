"""Exception hierarchy for the policy ledger."""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    code = "error"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(LedgerError, ValueError):
    """Raised when input is malformed or missing; carries field-level messages."""

    code = "validation_error"

    def __init__(self, errors: dict[str, str] | str, field: str | None = None):
        if isinstance(errors, str):
            errors = {field or "payload": errors}
        self.errors = errors
        summary = "; ".join(f"{key}: {value}" for key, value in errors.items())
        super().__init__(f"Validation failed: {summary}", details=errors)


class NotFoundError(LedgerError):
    """Raised when a referenced entity does not exist or is not visible."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: Any = None):
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(LedgerError):
    """Raised on uniqueness violations and referential-integrity blocks."""

    code = "conflict"


class DuplicateKeyError(ConflictError):
    """Raised by the store when a unique index rejects a write."""

    code = "duplicate_key"

    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"Duplicate value for {field}", details={"field": field})
        self.field = field


class InvalidStateError(ConflictError):
    """Raised when an entity is in the wrong state for the requested operation."""

    code = "invalid_state"


class InvalidTransitionError(ConflictError):
    """Raised when a claim status change is not in the transition table."""

    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Invalid status transition from {from_status} to {to_status}",
            details={"from": from_status, "to": to_status},
        )
        self.from_status = from_status
        self.to_status = to_status


class ForbiddenError(LedgerError):
    """Raised when the requester's role or ownership does not allow the operation."""

    code = "forbidden"


class UnexpectedError(LedgerError):
    """Raised when the store or transport fails unexpectedly."""

    code = "unexpected"

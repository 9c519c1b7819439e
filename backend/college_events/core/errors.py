"""
Domain error taxonomy.

Services raise these; the API layer maps each code to an HTTP status in one
place (see college_events.main). None of them is fatal to the process.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    OUT_OF_INVENTORY = "OUT_OF_INVENTORY"
    CONFLICT = "CONFLICT"
    PERMISSION_DENIED = "PERMISSION_DENIED"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    """Malformed or out-of-range input."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class NotFound(DomainError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str, entity_id) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidStateTransition(DomainError):
    """Operation attempted on an entity whose current state forbids it."""

    code = ErrorCode.INVALID_STATE_TRANSITION

    def __init__(self, entity: str, entity_id, current: str, target: str) -> None:
        super().__init__(f"{entity} {entity_id} cannot move from '{current}' to '{target}'")
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.target = target


class OutOfInventory(DomainError):
    """Expected business outcome: the event has no tickets left."""

    code = ErrorCode.OUT_OF_INVENTORY

    def __init__(self, event_id: int) -> None:
        super().__init__(f"Event {event_id} is sold out")
        self.event_id = event_id


class ConflictError(DomainError):
    code = ErrorCode.CONFLICT


class PermissionDenied(DomainError):
    code = ErrorCode.PERMISSION_DENIED

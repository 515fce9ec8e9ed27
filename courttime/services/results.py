"""
Typed outcomes for the admission rules.

Admission failures are returned, not raised, so route handlers can map
``ErrorKind`` to an HTTP status without matching on message text.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional


class ErrorKind(str, enum.Enum):
    """Closed set of admission failure kinds."""

    VALIDATION_ERROR = "validation_error"
    SLOT_UNAVAILABLE = "slot_unavailable"
    NOT_FOUND_OR_UNAUTHORIZED = "not_found_or_unauthorized"
    NOT_FOUND = "not_found"
    PERSISTENCE_ERROR = "persistence_error"


@dataclass(frozen=True)
class AdmissionResult:
    """Success flag plus either a payload or a typed error."""

    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Optional[Dict[str, Any]] = None) -> "AdmissionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "AdmissionResult":
        return cls(success=False, error=error, kind=kind)

"""
Result Envelope

Every order store operation answers with a ``Result``: an optional payload,
a success flag, a human-readable message and, on failure, an explicit
``ErrorKind`` that the request layer maps to a response status.
"""

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Why an operation failed."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


@dataclass
class Result(Generic[T]):
    """
    Uniform success/failure carrier.

    Attributes:
        data: Entity, list of entities, or None
        successful: Whether the operation succeeded
        message: Empty on a plain success; informational on some successes;
            always non-empty on failure
        error_kind: Set on every failure, None on success
    """
    data: Optional[T] = None
    successful: bool = True
    message: str = ""
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, message: str = "") -> "Result[T]":
        return cls(data=data, successful=True, message=message)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "Result[T]":
        if not message:
            raise ValueError("A failed result needs a message")
        return cls(data=None, successful=False, message=message, error_kind=kind)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and JSON serialization."""
        return {
            "successful": self.successful,
            "message": self.message,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "data": self.data,
        }

"""
Results Module
=============
Result type and exceptions for the train management core.

Operations whose failure is an expected outcome (segment accept/release,
topology builders, registration) return an OperationResult carrying an
ErrorKind. Exceptions are reserved for misuse that the caller cannot
recover from: advancing a system that is not operational, or constructing
a malformed route.
"""

from dataclasses import dataclass
from typing import Optional

from .enums import ErrorKind
from .events import Event


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an operation: success flag, produced event, error kind and message"""
    success: bool
    event: Optional[Event] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, event: Optional[Event] = None, message: str = "") -> "OperationResult":
        return cls(True, event=event, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "OperationResult":
        return cls(False, error=error, message=message)


class TrainSystemError(Exception):
    """Base error for the core, tagged with an ErrorKind"""

    kind = ErrorKind.INVALID_STATE

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class InvalidStateError(TrainSystemError):
    """Operation attempted in a system status that does not allow it"""

    kind = ErrorKind.INVALID_STATE


class MalformedRouteError(TrainSystemError, ValueError):
    """Route built from an empty or non-contiguous segment sequence"""

    kind = ErrorKind.MALFORMED_ROUTE

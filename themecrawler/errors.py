"""
Error taxonomy for job processing.

Handlers raise ``TransientJobError`` when a retry might succeed and
``PermanentJobError`` when it never will. Anything else reaching the outer
scope of a job is unclassified and treated as a defect.
"""

from enum import Enum
from typing import Any, Optional


class JobError(Exception):
    """Base class for classified job failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransientJobError(JobError):
    """The job may succeed if it is delivered again."""


class PermanentJobError(JobError):
    """The job can never succeed without outside intervention."""

    def __init__(self, message: str, payload: Optional[Any] = None):
        super().__init__(message)
        self.payload = payload


class UnknownJobKindError(Exception):
    """Raised when no handler exists for a job name."""

    def __init__(self, name: str):
        super().__init__(f"Invalid job '{name}'.")
        self.name = name


class ErrorClass(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNCLASSIFIED = "unclassified"


def classify(exc: BaseException) -> ErrorClass:
    """Map an exception onto the recovery action it calls for."""
    if isinstance(exc, TransientJobError):
        return ErrorClass.TRANSIENT
    if isinstance(exc, PermanentJobError):
        return ErrorClass.PERMANENT
    return ErrorClass.UNCLASSIFIED

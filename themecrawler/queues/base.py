"""Base class for job queue backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..models import Job


class QueueContractError(RuntimeError):
    """A receipt was acknowledged twice or never issued by this queue."""


class JobQueue(ABC):
    """
    Durable queue of jobs for a single job kind.

    Each received job must be settled with exactly one of ``succeed``,
    ``fail`` or ``retry``. ``notify`` is a latency hint only; a backend may
    drop it and callers must not depend on it.
    """

    name: str

    @abstractmethod
    def create(self, payload: Dict[str, Any]) -> Any:
        """Enqueue a new job. Payloads are not deduplicated."""
        raise NotImplementedError

    @abstractmethod
    def receive(self) -> Optional[Job]:
        """Return the next available job, or None when there is none."""
        raise NotImplementedError

    @abstractmethod
    def notify(self) -> None:
        """Hint that a consumer should be woken now rather than on the next poll."""
        raise NotImplementedError

    @abstractmethod
    def succeed(self, job: Job) -> None:
        """Acknowledge the job; it is removed permanently."""
        raise NotImplementedError

    @abstractmethod
    def fail(self, job: Job, error: BaseException) -> None:
        """Park the job in the dead-letter state. It is not redelivered."""
        raise NotImplementedError

    @abstractmethod
    def retry(self, job: Job) -> None:
        """Return the job to the queue for redelivery after a backoff."""
        raise NotImplementedError

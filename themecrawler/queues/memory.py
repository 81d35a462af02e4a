"""In-memory queue that logs every operation. Used for local runs and tests."""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..logger import StructuredLogger, get_logger
from ..models import Job
from ..retry import backoff_delay
from .base import JobQueue, QueueContractError


class MemoryJobQueue(JobQueue):
    """
    Process-local job queue.

    Keeps an ordered ``events`` log of every operation so tests can assert on
    ordering. With ``notify_enabled=False`` every notify hint is dropped.
    A retried job stays hidden for a backoff delay, like the SQL backend,
    so ``receive`` returns None until it is due.
    """

    def __init__(
        self,
        name: str,
        seed: Optional[List[Dict[str, Any]]] = None,
        logger: Optional[StructuredLogger] = None,
        notify_enabled: bool = True,
        retry_base_delay: float = 30.0,
        retry_max_delay: float = 900.0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.name = name
        self.notify_enabled = notify_enabled
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self._logger = logger or get_logger()
        self._clock = clock
        # Entries keep insertion order: payload, attempts, visible_at.
        self._pending: List[Dict[str, Any]] = []
        self._in_flight: Dict[str, Dict[str, Any]] = {}

        self.events: List[Tuple[str, Any]] = []
        self.created: List[Dict[str, Any]] = []
        self.succeeded: List[Job] = []
        self.retried: List[Job] = []
        self.dead_letters: List[Tuple[Job, BaseException]] = []
        self.notifications = 0

        for payload in seed or []:
            self._enqueue(copy.deepcopy(payload))

    def __len__(self) -> int:
        return len(self._pending)

    def _enqueue(self, payload: Dict[str, Any], attempts: int = 0,
                 visible_at: Optional[datetime] = None) -> None:
        self._pending.append({"payload": payload, "attempts": attempts, "visible_at": visible_at})

    def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        payload = copy.deepcopy(payload)
        self._enqueue(payload)
        self.created.append(payload)
        self.events.append(("create", payload))
        self._logger.info("Job created", queue=self.name, payload=payload)
        return {"queue": self.name, "position": len(self._pending)}

    def receive(self) -> Optional[Job]:
        now = self._clock()
        for index, entry in enumerate(self._pending):
            if entry["visible_at"] is None or entry["visible_at"] <= now:
                break
        else:
            self.events.append(("receive", None))
            return None

        entry = self._pending.pop(index)
        entry["attempts"] += 1
        job = Job(receipt_handle=uuid.uuid4().hex, payload=copy.deepcopy(entry["payload"]))
        self._in_flight[job.receipt_handle] = entry
        self.events.append(("receive", job.receipt_handle))
        self._logger.info("Job received", queue=self.name, receipt_handle=job.receipt_handle)
        return job

    def notify(self) -> None:
        self.events.append(("notify", self.notify_enabled))
        if not self.notify_enabled:
            self._logger.debug("Notify dropped", queue=self.name)
            return
        self.notifications += 1
        self._logger.info("Notify job", queue=self.name)

    def _settle(self, job: Job) -> Dict[str, Any]:
        try:
            return self._in_flight.pop(job.receipt_handle)
        except KeyError:
            raise QueueContractError(
                f"Receipt '{job.receipt_handle}' is not in flight on queue '{self.name}'"
            ) from None

    def succeed(self, job: Job) -> None:
        self._settle(job)
        self.succeeded.append(job)
        self.events.append(("succeed", job.receipt_handle))
        self._logger.info("Job succeeded", queue=self.name, receipt_handle=job.receipt_handle)

    def fail(self, job: Job, error: BaseException) -> None:
        self._settle(job)
        self.dead_letters.append((job, error))
        self.events.append(("fail", job.receipt_handle))
        self._logger.info("Job failed", queue=self.name, receipt_handle=job.receipt_handle, error=str(error))

    def retry(self, job: Job) -> None:
        entry = self._settle(job)
        delay = backoff_delay(entry["attempts"], self.retry_base_delay, self.retry_max_delay)
        self._enqueue(entry["payload"], entry["attempts"], self._clock() + timedelta(seconds=delay))
        self.retried.append(job)
        self.events.append(("retry", job.receipt_handle))
        self._logger.info(
            "Retrying job", queue=self.name, receipt_handle=job.receipt_handle, delay_seconds=delay,
        )

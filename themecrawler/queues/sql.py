"""
Durable job queue on SQLite.

A received job is hidden for ``visibility_timeout`` seconds. If it is not
settled by then, the next ``receive`` redelivers it under a new receipt and
the old receipt stops working.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import sessionmaker

from ..database import DEAD_LETTER, IN_FLIGHT, PENDING, QueuedJob, init_database
from ..logger import StructuredLogger, get_logger
from ..models import Job
from ..retry import backoff_delay
from .base import JobQueue, QueueContractError

CLAIM_BATCH = 10


class SqlJobQueue(JobQueue):
    """Job queue backed by the ``queued_jobs`` table."""

    def __init__(
        self,
        name: str,
        db_path: Path,
        visibility_timeout: float = 300.0,
        retry_base_delay: float = 30.0,
        retry_max_delay: float = 900.0,
        on_notify: Optional[Callable[[], None]] = None,
        logger: Optional[StructuredLogger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.name = name
        self.db_path = Path(db_path)
        self.visibility_timeout = visibility_timeout
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self.on_notify = on_notify
        self._logger = logger or get_logger()
        self._clock = clock
        self._Session = sessionmaker(bind=init_database(self.db_path))

    def create(self, payload: Dict[str, Any]) -> int:
        now = self._clock()
        with self._Session() as session:
            row = QueuedJob(
                queue=self.name,
                payload=json.dumps(payload),
                status=PENDING,
                attempts=0,
                visible_at=now,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            job_id = row.id
        self._logger.debug("Job created", queue=self.name, job_id=job_id, payload=payload)
        return job_id

    def receive(self) -> Optional[Job]:
        now = self._clock()
        with self._Session() as session:
            candidates = (
                session.query(QueuedJob.id, QueuedJob.receipt_handle)
                .filter(
                    QueuedJob.queue == self.name,
                    QueuedJob.status.in_([PENDING, IN_FLIGHT]),
                    QueuedJob.visible_at <= now,
                )
                .order_by(QueuedJob.visible_at, QueuedJob.id)
                .limit(CLAIM_BATCH)
                .all()
            )
            for job_id, old_receipt in candidates:
                receipt = uuid.uuid4().hex
                if old_receipt is None:
                    same_receipt = QueuedJob.receipt_handle.is_(None)
                else:
                    same_receipt = QueuedJob.receipt_handle == old_receipt
                # Compare-and-set so only one consumer holds this delivery.
                claimed = (
                    session.query(QueuedJob)
                    .filter(QueuedJob.id == job_id, same_receipt, QueuedJob.visible_at <= now)
                    .update(
                        {
                            QueuedJob.status: IN_FLIGHT,
                            QueuedJob.receipt_handle: receipt,
                            QueuedJob.attempts: QueuedJob.attempts + 1,
                            QueuedJob.visible_at: now + timedelta(seconds=self.visibility_timeout),
                            QueuedJob.updated_at: now,
                        },
                        synchronize_session=False,
                    )
                )
                session.commit()
                if not claimed:
                    continue
                row = session.get(QueuedJob, job_id)
                if old_receipt is not None:
                    self._logger.warning(
                        "Redelivering job after visibility timeout",
                        queue=self.name, job_id=job_id, attempts=row.attempts,
                    )
                return Job(receipt_handle=receipt, payload=json.loads(row.payload))
        return None

    def notify(self) -> None:
        if self.on_notify is not None:
            self.on_notify()

    def succeed(self, job: Job) -> None:
        with self._Session() as session:
            deleted = (
                session.query(QueuedJob)
                .filter(QueuedJob.receipt_handle == job.receipt_handle, QueuedJob.status == IN_FLIGHT)
                .delete(synchronize_session=False)
            )
            session.commit()
        if not deleted:
            raise QueueContractError(
                f"Receipt '{job.receipt_handle}' is not in flight on queue '{self.name}'"
            )

    def fail(self, job: Job, error: BaseException) -> None:
        now = self._clock()
        self._update_in_flight(
            job,
            {
                QueuedJob.status: DEAD_LETTER,
                QueuedJob.receipt_handle: None,
                QueuedJob.last_error: f"{type(error).__name__}: {error}",
                QueuedJob.updated_at: now,
            },
        )

    def retry(self, job: Job) -> None:
        now = self._clock()
        with self._Session() as session:
            row = (
                session.query(QueuedJob)
                .filter(QueuedJob.receipt_handle == job.receipt_handle, QueuedJob.status == IN_FLIGHT)
                .first()
            )
            if row is None:
                raise QueueContractError(
                    f"Receipt '{job.receipt_handle}' is not in flight on queue '{self.name}'"
                )
            delay = backoff_delay(row.attempts, self.retry_base_delay, self.retry_max_delay)
            row.status = PENDING
            row.receipt_handle = None
            row.visible_at = now + timedelta(seconds=delay)
            row.updated_at = now
            session.commit()
        self._logger.debug("Job scheduled for retry", queue=self.name, delay_seconds=delay)

    def _update_in_flight(self, job: Job, values: Dict[Any, Any]) -> None:
        with self._Session() as session:
            updated = (
                session.query(QueuedJob)
                .filter(QueuedJob.receipt_handle == job.receipt_handle, QueuedJob.status == IN_FLIGHT)
                .update(values, synchronize_session=False)
            )
            session.commit()
        if not updated:
            raise QueueContractError(
                f"Receipt '{job.receipt_handle}' is not in flight on queue '{self.name}'"
            )

    # Inspection and manual recovery

    def counts(self) -> Dict[str, int]:
        """Number of jobs per status on this queue."""
        with self._Session() as session:
            rows = (
                session.query(QueuedJob.status, func.count(QueuedJob.id))
                .filter(QueuedJob.queue == self.name)
                .group_by(QueuedJob.status)
                .all()
            )
        counts = {PENDING: 0, IN_FLIGHT: 0, DEAD_LETTER: 0}
        counts.update({status: count for status, count in rows})
        return counts

    def dead_letters(self) -> List[Dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(QueuedJob)
                .filter(QueuedJob.queue == self.name, QueuedJob.status == DEAD_LETTER)
                .order_by(QueuedJob.id)
                .all()
            )
            return [
                {
                    "id": row.id,
                    "payload": json.loads(row.payload),
                    "attempts": row.attempts,
                    "last_error": row.last_error,
                    "updated_at": row.updated_at.isoformat(),
                }
                for row in rows
            ]

    def redrive(self, job_id: int) -> bool:
        """Move a dead-lettered job back to pending. Returns False if not found."""
        now = self._clock()
        with self._Session() as session:
            updated = (
                session.query(QueuedJob)
                .filter(
                    QueuedJob.id == job_id,
                    QueuedJob.queue == self.name,
                    QueuedJob.status == DEAD_LETTER,
                )
                .update(
                    {
                        QueuedJob.status: PENDING,
                        QueuedJob.visible_at: now,
                        QueuedJob.updated_at: now,
                    },
                    synchronize_session=False,
                )
            )
            session.commit()
        if updated:
            self._logger.info("Job redriven from dead letter", queue=self.name, job_id=job_id)
        return bool(updated)

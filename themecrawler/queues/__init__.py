"""Job queue backends."""

from .base import JobQueue, QueueContractError
from .memory import MemoryJobQueue
from .sql import SqlJobQueue

__all__ = ["JobQueue", "QueueContractError", "MemoryJobQueue", "SqlJobQueue"]

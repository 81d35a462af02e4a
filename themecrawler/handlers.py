"""
Job handler registry and the worker loop that drives it.

A process is started for one job kind; ``handle`` invokes that kind's
handler once, ``run_worker`` keeps invoking it.
"""

import threading
from typing import Any, Callable, Dict, Optional

from . import crawler
from .errors import UnknownJobKindError
from .models import JobKind

Handler = Callable[[Any], Any]

HANDLERS: Dict[JobKind, Handler] = {
    JobKind.FETCH_THEMES: crawler.run,
}


def parse_job_kind(name: str) -> JobKind:
    try:
        return JobKind(name)
    except ValueError:
        raise UnknownJobKindError(name) from None


def handle(kind: JobKind, services, handlers: Optional[Dict[JobKind, Handler]] = None) -> Any:
    """Invoke the handler registered for kind once."""
    registry = HANDLERS if handlers is None else handlers
    handler = registry.get(kind)
    if handler is None:
        raise UnknownJobKindError(kind.value)
    return handler(services)


class Waker:
    """Event a queue's notify hook sets to cut the worker's poll wait short."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def __call__(self) -> None:
        self._event.set()

    def wait(self, timeout: float) -> bool:
        woken = self._event.wait(timeout)
        self._event.clear()
        return woken


def run_worker(
    kind: JobKind,
    services,
    handlers: Optional[Dict[JobKind, Handler]] = None,
    max_invocations: Optional[int] = None,
    poll_interval: float = 5.0,
    drain: bool = False,
    waker: Optional[Waker] = None,
) -> int:
    """
    Invoke the handler repeatedly and return the number of invocations.

    A handler returns None when its queue had no job. That ends the loop
    when ``drain`` is set; otherwise the worker sleeps for ``poll_interval``
    or until woken. Unclassified errors from a handler propagate.
    """
    logger = services.logger
    waker = waker or Waker()
    invocations = 0

    while max_invocations is None or invocations < max_invocations:
        result = handle(kind, services, handlers)
        invocations += 1
        if result is not None:
            continue
        if drain:
            logger.info("Queue drained", job=kind.value, invocations=invocations)
            break
        waker.wait(poll_interval)

    return invocations

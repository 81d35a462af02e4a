"""
Wiring of queues, the catalog client and the logger.

``create_services`` builds the durable setup; ``create_local_services``
builds an in-memory one seeded with the first page, for local runs.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import requests

from .catalog import CatalogClient
from .config import Settings
from .logger import StructuredLogger, get_logger
from .models import FetchPagePayload, JobKind
from .queues import JobQueue, MemoryJobQueue, SqlJobQueue


@dataclass
class Services:
    fetch_themes: JobQueue
    catalog: CatalogClient
    logger: StructuredLogger


def build_logger(settings: Settings) -> StructuredLogger:
    return get_logger(
        level=settings.log_level,
        log_dir=settings.log_dir,
        enable_file=settings.log_to_file,
    )


def build_catalog(settings: Settings, logger: StructuredLogger,
                  session: Optional[requests.Session] = None) -> CatalogClient:
    return CatalogClient(
        session=session,
        url=settings.catalog_url,
        timeout=settings.catalog_timeout,
        max_retries=settings.catalog_max_retries,
        logger=logger,
    )


def create_services(settings: Settings, on_notify: Optional[Callable[[], None]] = None,
                    session: Optional[requests.Session] = None) -> Services:
    logger = build_logger(settings)
    queue = SqlJobQueue(
        JobKind.FETCH_THEMES.value,
        db_path=settings.db_path,
        visibility_timeout=settings.visibility_timeout,
        retry_base_delay=settings.retry_base_delay,
        retry_max_delay=settings.retry_max_delay,
        on_notify=on_notify,
        logger=logger,
    )
    return Services(fetch_themes=queue, catalog=build_catalog(settings, logger, session), logger=logger)


def create_local_services(settings: Settings, seed_page: int = 1,
                          session: Optional[requests.Session] = None) -> Services:
    logger = build_logger(settings)
    queue = MemoryJobQueue(
        JobKind.FETCH_THEMES.value,
        seed=[FetchPagePayload(page=seed_page).to_dict()],
        logger=logger,
        retry_base_delay=settings.retry_base_delay,
        retry_max_delay=settings.retry_max_delay,
    )
    return Services(fetch_themes=queue, catalog=build_catalog(settings, logger, session), logger=logger)

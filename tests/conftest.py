"""
Pytest configuration and shared fixtures.
"""

import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytest
import requests

from themecrawler.catalog import CatalogClient
from themecrawler.crawler import GITHUB_PROPERTY_NAME
from themecrawler.logger import StructuredLogger, reset_logger
from themecrawler.queues import MemoryJobQueue
from themecrawler.services import Services


def make_response(status: int = 200, body: Any = None, reason: str = "OK") -> requests.Response:
    """Build a real requests.Response without touching the network."""
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    resp.encoding = "utf-8"
    resp.headers["Content-Type"] = "application/json"
    if isinstance(body, (bytes, str)):
        resp._content = body.encode("utf-8") if isinstance(body, str) else body
    else:
        resp._content = json.dumps(body).encode("utf-8")
    return resp


def page_response(extensions: List[Dict[str, Any]]) -> requests.Response:
    return make_response(200, {"results": [{"extensions": extensions, "resultMetadata": []}]})


class FakeSession:
    """Stands in for requests.Session; replays queued responses or exceptions."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.requests: List[Dict[str, Any]] = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.requests.append({
            "url": url,
            "body": json.loads(data),
            "headers": headers,
            "timeout": timeout,
        })
        if not self.responses:
            raise AssertionError("Unexpected catalog request")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class Clock:
    """Controllable clock for queue visibility and backoff tests."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_extension(
    name: str = "night-owl",
    repository: Optional[str] = None,
    versions: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Extension record shaped like the marketplace returns it."""
    if versions is None:
        properties = [
            {"key": "Microsoft.VisualStudio.Code.Engine", "value": "^1.20.0"},
        ]
        if repository is not None:
            properties.append({"key": GITHUB_PROPERTY_NAME, "value": repository})
        versions = [{
            "version": "1.1.0",
            "lastUpdated": "2019-03-01T10:00:00.000Z",
            "properties": properties,
        }]
    return {
        "extensionId": f"id-{name}",
        "extensionName": name,
        "displayName": name.title(),
        "publisher": {"publisherName": "sdras", "displayName": "Sarah Drasner"},
        "versions": versions,
        "statistics": [
            {"statisticName": "install", "value": 1500.0},
            {"statisticName": "averagerating", "value": 4.5},
        ],
    }


def make_version(last_updated: str, repository: Optional[str] = None) -> Dict[str, Any]:
    properties = []
    if repository is not None:
        properties.append({"key": GITHUB_PROPERTY_NAME, "value": repository})
    return {"version": last_updated[:10], "lastUpdated": last_updated, "properties": properties}


@pytest.fixture(autouse=True)
def fresh_global_logger():
    """Never share the process-wide logger between tests."""
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def logger(tmp_path) -> StructuredLogger:
    return StructuredLogger(
        name="themecrawler-test",
        level="DEBUG",
        log_dir=tmp_path,
        enable_file=False,
        enable_console=False,
    )


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def make_services(logger, fake_session, clock):
    """Build Services around a memory queue seeded with the given payloads."""

    def _make(seed=None, responses=None, notify_enabled=True, queue=None) -> Services:
        fake_session.responses.extend(responses or [])
        if queue is None:
            queue = MemoryJobQueue(
                "fetchThemes",
                seed=seed if seed is not None else [{"page": 1}],
                logger=logger,
                notify_enabled=notify_enabled,
                clock=clock,
            )
        catalog = CatalogClient(session=fake_session, max_retries=0, logger=logger)
        return Services(fetch_themes=queue, catalog=catalog, logger=logger)

    return _make

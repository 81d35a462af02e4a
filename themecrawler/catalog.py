"""
Client for the VS Code Marketplace extension query API.

One call fetches one page of theme extensions. Every failure is reported as
a ``TransientJobError``: the upstream shape is not under our control, so a
malformed body is treated as possibly flaky rather than permanent.
"""

import json
from typing import Any, Dict, List, Optional

import requests

from .errors import TransientJobError
from .logger import StructuredLogger, get_logger
from .retry import RetryError, exponential_backoff
from .schema import validate_query_results

MARKETPLACE_QUERY_URL = "https://marketplace.visualstudio.com/_apis/public/gallery/extensionquery"
PAGE_SIZE = 100

# Filter type codes are undocumented upstream; these reproduce the
# marketplace's own "Themes" listing.
FILTER_CRITERIA = [
    {"filterType": 8, "value": "Microsoft.VisualStudio.Code"},
    {"filterType": 10, "value": 'target:"Microsoft.VisualStudio.Code"'},
    {"filterType": 12, "value": "5122"},
    {"filterType": 5, "value": "Themes"},
]
SORT_BY_INSTALLS = 4
SORT_ASCENDING = 0
FILTER_DIRECTION = 2
# Includes version properties, which carry the source repository link.
QUERY_FLAGS = 914

REQUEST_HEADERS = {
    "Accept": "application/json;api-version=3.0-preview.1",
    "Content-Type": "application/json",
}


def build_query(page: int) -> Dict[str, Any]:
    """Request body for one page of the themes listing."""
    return {
        "filters": [
            {
                "criteria": [dict(c) for c in FILTER_CRITERIA],
                "direction": FILTER_DIRECTION,
                "pageSize": PAGE_SIZE,
                "pageNumber": page,
                "sortBy": SORT_BY_INSTALLS,
                "sortOrder": SORT_ASCENDING,
            }
        ],
        "flags": QUERY_FLAGS,
    }


class CatalogClient:
    """Fetch raw extension records from the marketplace, one page per call."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        url: str = MARKETPLACE_QUERY_URL,
        timeout: float = 30.0,
        max_retries: int = 2,
        base_delay: float = 1.0,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.url = url
        self.timeout = timeout
        self._logger = logger or get_logger()
        self._post = exponential_backoff(
            max_retries=max_retries,
            base_delay=base_delay,
            exceptions=(requests.exceptions.Timeout, requests.exceptions.ConnectionError),
            on_retry=self._on_retry,
        )(self._send)

    def _send(self, body: Dict[str, Any]) -> requests.Response:
        return self.session.post(
            self.url,
            data=json.dumps(body),
            headers=REQUEST_HEADERS,
            timeout=self.timeout,
        )

    def _on_retry(self, attempt: int, exc: Exception, delay: float) -> None:
        self._logger.warning(
            "Catalog request failed, retrying",
            attempt=attempt, delay_seconds=delay, error=str(exc),
        )

    def fetch_page(self, page: int) -> List[Any]:
        """
        Return the raw extension records of one catalog page.

        The records themselves are not validated here; an empty list means
        the listing has no more pages.

        Raises:
            TransientJobError: network failure, non-2xx status, or a body
                without ``results[0].extensions``
        """
        self._logger.record_catalog_request()
        try:
            resp = self._post(build_query(page))
        except RetryError as e:
            raise TransientJobError(f"Catalog request failed: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransientJobError(f"Catalog request error: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise TransientJobError(f"Bad response: {resp.status_code} {resp.reason}")

        try:
            data = resp.json()
        except ValueError as e:
            raise TransientJobError(f"Invalid response body: {resp.text[:500]}") from e

        if validate_query_results(data):
            raise TransientJobError(f"Invalid response data: {json.dumps(data)}")

        self._logger.record_page_fetched()
        return data["results"][0]["extensions"]

"""
Typed records for the crawler.

Records are only built from data that already passed the checks in
``schema.py``; ``from_dict`` does not re-validate.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class JobKind(str, Enum):
    """Job names understood by the handler registry."""

    FETCH_THEMES = "fetchThemes"


@dataclass(frozen=True)
class Job:
    """One delivery of a queued job. Identity is the receipt handle."""

    receipt_handle: str
    payload: Any


@dataclass(frozen=True)
class FetchPagePayload:
    page: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FetchPagePayload":
        return cls(page=data["page"])


@dataclass(frozen=True)
class Property:
    key: str
    value: str


@dataclass(frozen=True)
class Version:
    last_updated: str  # ISO-8601, compared as a string
    properties: List[Property] = field(default_factory=list)

    def get_property(self, key: str) -> Optional[str]:
        for prop in self.properties:
            if prop.key == key:
                return prop.value
        return None


@dataclass(frozen=True)
class Statistic:
    name: str
    value: float


@dataclass(frozen=True)
class Publisher:
    name: str


@dataclass(frozen=True)
class Extension:
    name: str
    publisher: Publisher
    versions: List[Version]
    statistics: List[Statistic] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Extension":
        return cls(
            name=data["extensionName"],
            publisher=Publisher(name=data["publisher"]["publisherName"]),
            versions=[
                Version(
                    last_updated=v["lastUpdated"],
                    properties=[Property(key=p["key"], value=p["value"]) for p in v["properties"]],
                )
                for v in data["versions"]
            ],
            statistics=[
                Statistic(name=s["statisticName"], value=s["value"])
                for s in data["statistics"]
            ],
        )

    def latest_version(self) -> Version:
        """Version with the greatest ``lastUpdated`` string."""
        return sorted(self.versions, key=lambda v: v.last_updated, reverse=True)[0]


class JobStatus(str, Enum):
    SUCCEEDED = "succeeded"
    RETRIED = "retried"
    FAILED = "failed"


@dataclass
class CrawlOutcome:
    """What one fetchThemes invocation did with its job."""

    status: JobStatus
    page: Optional[int] = None
    extensions: int = 0
    next_page: Optional[int] = None
    repositories: List[str] = field(default_factory=list)
    skipped: int = 0

    @property
    def terminal(self) -> bool:
        """True when this page ended the crawl."""
        return self.status is JobStatus.SUCCEEDED and self.next_page is None

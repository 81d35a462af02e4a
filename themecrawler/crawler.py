"""
The fetchThemes job: crawl one catalog page per invocation.

Each invocation receives one job, fetches its page, queues the next page,
pulls repository links out of the page's extensions and settles the job.
The next-page job is queued before extraction so a crash afterwards never
loses the crawl's position. Redelivery is expected (at-least-once), so
downstream consumers of repository URLs must tolerate duplicates and
out-of-order pages.
"""

import json
from typing import Any, List, Optional, Tuple

from .errors import ErrorClass, PermanentJobError, classify
from .logger import StructuredLogger
from .models import CrawlOutcome, Extension, FetchPagePayload, Job, JobStatus
from .queues.base import QueueContractError
from .schema import validate_extension, validate_fetch_page_payload

GITHUB_PROPERTY_NAME = "Microsoft.VisualStudio.Services.Links.GitHub"


def extract_repositories(
    extensions: List[Any], logger: StructuredLogger
) -> Tuple[List[str], int]:
    """
    Pull repository URLs from raw extension records.

    Malformed records and records without a repository link are logged and
    skipped. Returns the URLs in page order and the number of malformed
    records.
    """
    repositories: List[str] = []
    skipped = 0

    for raw in extensions:
        errors = validate_extension(raw)
        if errors:
            skipped += 1
            logger.record_extension_skipped()
            logger.warning("Invalid theme", errors=errors, theme=json.dumps(raw, default=str)[:1000])
            continue

        extension = Extension.from_dict(raw)
        # lastUpdated strings are assumed to share one ISO-8601 format and zone.
        url = extension.latest_version().get_property(GITHUB_PROPERTY_NAME)
        if url is None:
            logger.info(
                f"Missing property '{GITHUB_PROPERTY_NAME}'",
                extension=extension.name, publisher=extension.publisher.name,
            )
            continue
        repositories.append(url)

    return repositories, skipped


class FetchThemesJob:
    """Handler for the fetchThemes queue. Call ``run()`` once per invocation."""

    def __init__(self, services) -> None:
        self.queue = services.fetch_themes
        self.catalog = services.catalog
        self.logger = services.logger

    def run(self) -> Optional[CrawlOutcome]:
        """
        Process at most one job.

        Returns None when the queue had no job. Otherwise the outcome says
        whether the job succeeded, was returned for retry, or was
        dead-lettered.

        Raises:
            Exception: any unclassified error, after the job was dead-lettered
        """
        job = self.queue.receive()
        if job is None:
            self.logger.info("No more jobs to process.")
            return None

        self.logger.record_job_received()
        self.logger.info(
            "Processing fetchThemes job",
            receipt_handle=job.receipt_handle, payload=job.payload,
        )

        try:
            outcome = self._process(job)
        except Exception as err:
            error_class = self._settle_failure(job, err)
            if error_class is ErrorClass.UNCLASSIFIED:
                # Re-raised for the platform's fatal error handling.
                raise
            status = JobStatus.RETRIED if error_class is ErrorClass.TRANSIENT else JobStatus.FAILED
            return CrawlOutcome(status=status, page=_page_of(job.payload))

        self._settle_success(job)
        self.logger.info(
            "Page processed",
            page=outcome.page, themes=outcome.extensions,
            repositories=len(outcome.repositories), skipped=outcome.skipped,
        )
        return outcome

    def _process(self, job: Job) -> CrawlOutcome:
        errors = validate_fetch_page_payload(job.payload)
        if errors:
            raise PermanentJobError(f"Invalid job payload: {'; '.join(errors)}", payload=job.payload)
        payload = FetchPagePayload.from_dict(job.payload)

        extensions = self.catalog.fetch_page(payload.page)
        outcome = CrawlOutcome(
            status=JobStatus.SUCCEEDED, page=payload.page, extensions=len(extensions)
        )
        if not extensions:
            self.logger.info("No more pages to process.", page=payload.page)
            return outcome

        outcome.next_page = payload.page + 1
        self.queue.create(FetchPagePayload(page=outcome.next_page).to_dict())
        self._notify()

        outcome.repositories, outcome.skipped = extract_repositories(extensions, self.logger)
        self.logger.record_repositories_found(len(outcome.repositories))
        if not outcome.repositories:
            self.logger.info("No repositories to process for page.", page=payload.page)
        for url in outcome.repositories:
            self.logger.debug("Repository found", page=payload.page, repository=url)
        return outcome

    def _notify(self) -> None:
        try:
            self.queue.notify()
        except Exception as e:
            # Polling picks the job up anyway.
            self.logger.warning("Notify failed", queue=self.queue.name, error=str(e))

    def _settle_success(self, job: Job) -> None:
        try:
            self.queue.succeed(job)
        except Exception as err:
            error_type = type(err).__name__
            self.logger.critical(
                "Unexpected Error.",
                receipt_handle=job.receipt_handle, error=f"{error_type}: {err}",
            )
            self.logger.record_job_failed(error_type)
            # A contract error means the receipt is no longer ours to settle.
            if not isinstance(err, QueueContractError):
                self.queue.fail(job, err)
            raise
        self.logger.record_job_succeeded()

    def _settle_failure(self, job: Job, err: Exception) -> ErrorClass:
        """Retry or dead-letter the job according to the error's class."""
        error_class = classify(err)
        error_type = type(err).__name__

        if error_class is ErrorClass.TRANSIENT:
            self.logger.warning(err.message, receipt_handle=job.receipt_handle)
            self.queue.retry(job)
            self.logger.record_job_retried(error_type)
        elif error_class is ErrorClass.PERMANENT:
            self.logger.error(err.message, receipt_handle=job.receipt_handle, payload=err.payload)
            self.queue.fail(job, err)
            self.logger.record_job_failed(error_type)
        else:
            self.logger.critical(
                "Unexpected Error.",
                receipt_handle=job.receipt_handle, error=f"{error_type}: {err}",
            )
            self.queue.fail(job, err)
            self.logger.record_job_failed(error_type)
        return error_class


def run(services) -> Optional[CrawlOutcome]:
    """Entry point registered for the fetchThemes job kind."""
    return FetchThemesJob(services).run()


def _page_of(payload: Any) -> Optional[int]:
    if validate_fetch_page_payload(payload):
        return None
    return payload["page"]

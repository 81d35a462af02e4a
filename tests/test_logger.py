"""
Tests for logger functionality.
"""

from themecrawler.logger import StructuredLogger, get_logger, reset_logger


class TestStructuredLogger:
    """Test structured logging functionality."""

    def test_logger_creation(self, tmp_path):
        """Logger should be created with default settings."""
        logger = StructuredLogger(
            name="test",
            level="INFO",
            log_dir=tmp_path,
            enable_console=False,
        )

        assert logger.logger.name == "test"
        assert logger.metrics["jobs_received"] == 0

    def test_log_methods(self, tmp_path):
        """All log level methods should work."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")
        logger.critical("Critical message")

    def test_log_with_context(self, tmp_path):
        """Context is serialized after the message."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.info("Processing fetchThemes job", payload={"page": 3}, receipt_handle="abc")

        log_content = next(tmp_path.glob("*.log")).read_text()
        assert 'Context: {"payload": {"page": 3}, "receipt_handle": "abc"}' in log_content

    def test_unserializable_context(self, tmp_path):
        """Objects without a JSON form are logged via str()."""
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)

        logger.error("Job failed", error=ValueError("boom"))

        assert "boom" in next(tmp_path.glob("*.log")).read_text()

    def test_metrics_tracking(self, tmp_path):
        """Metrics should be tracked correctly."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.record_job_received()
        logger.record_job_received()
        logger.record_job_received()
        logger.record_job_succeeded()
        logger.record_job_retried("TransientJobError")
        logger.record_job_failed("PermanentJobError")
        logger.record_catalog_request()
        logger.record_page_fetched()
        logger.record_extension_skipped()
        logger.record_repositories_found(4)

        metrics = logger.get_metrics()

        assert metrics["jobs_received"] == 3
        assert metrics["jobs_succeeded"] == 1
        assert metrics["jobs_retried"] == 1
        assert metrics["jobs_failed"] == 1
        assert metrics["catalog_requests"] == 1
        assert metrics["pages_fetched"] == 1
        assert metrics["extensions_skipped"] == 1
        assert metrics["repositories_found"] == 4
        assert metrics["errors_by_type"] == {"TransientJobError": 1, "PermanentJobError": 1}

    def test_metrics_snapshot_is_a_copy(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)
        snapshot = logger.get_metrics()

        logger.record_job_failed("KeyError")

        assert snapshot["errors_by_type"] == {}

    def test_metrics_summary(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)
        logger.record_job_retried("TransientJobError")

        logger.log_metrics_summary()

        log_content = next(tmp_path.glob("*.log")).read_text()
        assert "Crawl Session Metrics" in log_content
        assert "TransientJobError: 1" in log_content

    def test_log_file_creation(self, tmp_path):
        """Log file should be created in specified directory."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.info("Test message")

        log_files = list(tmp_path.glob("*.log"))
        assert len(log_files) == 1
        assert "Test message" in log_files[0].read_text()


class TestGlobalLogger:
    """Test global logger singleton."""

    def test_get_logger_singleton(self, tmp_path):
        """get_logger should return same instance."""
        reset_logger()

        logger1 = get_logger(log_dir=tmp_path, enable_console=False)
        logger2 = get_logger()

        assert logger1 is logger2

    def test_reset_logger(self, tmp_path):
        """reset_logger should create new instance."""
        reset_logger()

        logger1 = get_logger(log_dir=tmp_path, enable_console=False)
        logger1.record_job_received()

        reset_logger()

        logger2 = get_logger(log_dir=tmp_path, enable_console=False)

        assert logger2.metrics["jobs_received"] == 0

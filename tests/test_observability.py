"""Tests for observability module."""

import json
import logging
import time

import pytest

from fs_s3.exceptions import DestinationExistsError
from fs_s3.models import CopyRequest, LocalFile, S3File, WriteRequest
from fs_s3.observability import (
    JsonFormatter,
    LogContext,
    LogLevel,
    OperationContext,
    StructuredLogger,
    Timer,
    configure_logging,
    destination_var,
    get_logger,
    operation_id_var,
    operation_var,
    source_var,
)


def capture(caplog: pytest.LogCaptureFixture, message: str) -> logging.LogRecord:
    records = [r for r in caplog.records if r.getMessage() == message]
    assert len(records) == 1
    return records[0]


class TestLogContext:
    """Tests for LogContext."""

    def test_empty_outside_an_operation(self) -> None:
        assert LogContext.current() == LogContext()
        assert LogContext.current().to_dict() == {}

    def test_reads_the_current_operation(self) -> None:
        with OperationContext("copy", source="s3://b/in", destination="/tmp/out", operation_id="op-1"):
            context = LogContext.current()

        assert context.to_dict() == {
            "operation_id": "op-1",
            "operation": "copy",
            "source": "s3://b/in",
            "destination": "/tmp/out",
        }

    def test_to_dict_leaves_out_unset_locations(self) -> None:
        context = LogContext(operation_id="op-2", operation="delete", source="/tmp/x")
        assert context.to_dict() == {"operation_id": "op-2", "operation": "delete", "source": "/tmp/x"}


class TestOperationContext:
    """Tests for OperationContext."""

    def test_sets_and_resets_context_vars(self) -> None:
        with OperationContext("write", destination="s3://b/k", operation_id="op-123"):
            assert operation_id_var.get() == "op-123"
            assert operation_var.get() == "write"
            assert destination_var.get() == "s3://b/k"
            assert source_var.get() is None

        assert operation_id_var.get() is None
        assert operation_var.get() is None
        assert destination_var.get() is None

    def test_generates_distinct_ids(self) -> None:
        with OperationContext("copy") as first:
            pass
        with OperationContext("copy") as second:
            pass

        assert first.operation_id
        assert first.operation_id != second.operation_id

    def test_nested_contexts_restore_the_outer_one(self) -> None:
        with OperationContext("copy", source="a", operation_id="outer"):
            with OperationContext("write", destination="b", operation_id="inner"):
                assert source_var.get() is None
                assert destination_var.get() == "b"
            assert operation_id_var.get() == "outer"
            assert source_var.get() == "a"

    @pytest.mark.asyncio
    async def test_async_context_manager(self) -> None:
        async with OperationContext("delete", source="/tmp/gone") as ctx:
            assert operation_id_var.get() == ctx.operation_id
            assert source_var.get() == "/tmp/gone"


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_fields_and_context_are_attached(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = StructuredLogger("fs_s3.tests")

        with caplog.at_level(logging.INFO, logger="fs_s3"):
            with OperationContext("copy", source="s3://b/in", operation_id="op-9"):
                logger.info("Copied files", count=3, duration_ms=1.5, skipped=None)

        record = capture(caplog, "Copied files")
        assert record.levelname == "INFO"
        assert record.fields == {"count": 3, "duration_ms": 1.5}
        assert record.operation_context == LogContext(operation_id="op-9", operation="copy", source="s3://b/in")

    def test_error_attaches_exception(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = StructuredLogger("fs_s3.tests")

        with caplog.at_level(logging.ERROR, logger="fs_s3"):
            logger.error("Delete failed", error=ValueError("bad"), count=0)

        record = capture(caplog, "Delete failed")
        assert record.exc_info[0] is ValueError
        assert record.fields == {"count": 0}

    def test_disabled_levels_are_dropped(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = StructuredLogger("fs_s3.tests")

        with caplog.at_level(logging.INFO, logger="fs_s3"):
            logger.debug("Copying file", route="s3->local")

        assert not caplog.records

    def test_get_logger_returns_structured_logger(self) -> None:
        assert isinstance(get_logger("fs_s3.module"), StructuredLogger)


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _format(self, caplog: pytest.LogCaptureFixture, log) -> dict:
        with caplog.at_level(logging.DEBUG, logger="fs_s3"):
            log(StructuredLogger("fs_s3.tests"))
        return json.loads(JsonFormatter().format(caplog.records[-1]))

    def test_one_flat_object(self, caplog: pytest.LogCaptureFixture) -> None:
        def log(logger):
            with OperationContext("write", destination="s3://b/k", operation_id="op-1"):
                logger.info("Wrote file", duration_ms=2.0)

        payload = self._format(caplog, log)

        assert payload["level"] == "INFO"
        assert payload["logger"] == "fs_s3.tests"
        assert payload["message"] == "Wrote file"
        assert payload["operation"] == "write"
        assert payload["operation_id"] == "op-1"
        assert payload["destination"] == "s3://b/k"
        assert payload["duration_ms"] == 2.0
        assert "timestamp" in payload
        assert "error" not in payload

    def test_context_is_the_one_at_logging_time(self, caplog: pytest.LogCaptureFixture) -> None:
        def log(logger):
            with OperationContext("delete", source="/tmp/x"):
                logger.info("Deleted files", count=1)

        payload = self._format(caplog, log)

        assert payload["source"] == "/tmp/x"
        assert payload["count"] == 1

    def test_error_summary(self, caplog: pytest.LogCaptureFixture) -> None:
        def log(logger):
            logger.error("Write failed", error=DestinationExistsError("s3://b/k"))

        payload = self._format(caplog, log)

        assert payload["error"]["type"] == "DestinationExistsError"
        assert "s3://b/k" in payload["error"]["message"]

    def test_plain_records(self) -> None:
        """Records from ordinary loggers format without operation data."""
        record = logging.LogRecord("other", logging.WARNING, "x.py", 1, "plain %s", ("text",), None)

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "plain text"
        assert set(payload) == {"timestamp", "level", "logger", "message"}


class TestTimer:
    """Tests for Timer."""

    def test_measures_duration(self) -> None:
        with Timer() as timer:
            time.sleep(0.05)

        assert timer.duration_ms >= 40  # Allow some variance
        assert timer.duration_ms < 1000


class TestServiceLogging:
    """The file service logs each operation with its locations."""

    @pytest.mark.asyncio
    async def test_write_is_logged(self, file_service, tmp_path, caplog: pytest.LogCaptureFixture) -> None:
        path = str(tmp_path / "logged.txt")

        with caplog.at_level(logging.INFO, logger="fs_s3"):
            await file_service.write(WriteRequest(destination=LocalFile(path), body=b"x"))

        record = capture(caplog, "Wrote file")
        assert record.operation_context.operation == "write"
        assert record.operation_context.destination == path
        assert record.fields["duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_copy_is_logged_with_count(
        self, file_service, s3_client, bucket, tmp_path, caplog: pytest.LogCaptureFixture
    ) -> None:
        s3_client.put(bucket, "in/a.txt", b"a")
        s3_client.put(bucket, "in/b.txt", b"b")

        with caplog.at_level(logging.INFO, logger="fs_s3"):
            await file_service.copy(CopyRequest(source=S3File(bucket, "in"), destination=LocalFile(str(tmp_path))))

        record = capture(caplog, "Copied files")
        assert record.operation_context.source == f"s3://{bucket}/in"
        assert record.operation_context.destination == str(tmp_path)
        assert record.fields["count"] == 2


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_format(self) -> None:
        configure_logging(level=LogLevel.DEBUG, format="json")

        package_logger = logging.getLogger("fs_s3")
        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0].formatter, JsonFormatter)

    def test_text_format(self) -> None:
        configure_logging(level=LogLevel.INFO, format="text")

        package_logger = logging.getLogger("fs_s3")
        assert package_logger.level == logging.INFO
        assert not isinstance(package_logger.handlers[0].formatter, JsonFormatter)

    def test_reconfiguring_replaces_the_handler(self) -> None:
        configure_logging(format="json")
        configure_logging(format="json")

        assert len(logging.getLogger("fs_s3").handlers) == 1

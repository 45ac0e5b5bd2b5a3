"""Tests for structured logging with trace propagation."""

from __future__ import annotations

import io
import json

from pricekeeper.core.logging import configure_logging, get_logger, log_context, logger


def _read_records(stream: io.StringIO) -> list[dict[str, object]]:
    stream.seek(0)
    lines = [line for line in stream.getvalue().splitlines() if line.strip()]
    return [json.loads(line) for line in lines]


def _capture() -> io.StringIO:
    buffer = io.StringIO()
    configure_logging(console_stream=buffer, console_output=True, file_output=False)
    return buffer


def test_structured_log_contains_trace_and_context() -> None:
    buffer = _capture()

    with log_context(trace_id="trace-123", component="cleanup", error_code="CLEANUP_CYCLE_ABANDONED", attempt=3):
        logger.info("cycle abandoned", series="BTC")

    records = _read_records(buffer)
    assert len(records) == 1
    record = records[0]
    assert record["trace_id"] == "trace-123"
    assert record["component"] == "cleanup"
    assert record["error_code"] == "CLEANUP_CYCLE_ABANDONED"
    assert record["context"]["attempt"] == 3
    assert record["context"]["series"] == "BTC"


def test_component_logger_is_bound() -> None:
    buffer = _capture()

    get_logger("aggregator").info("aggregated")

    assert _read_records(buffer)[0]["component"] == "aggregator"


def test_trace_id_propagates_within_context() -> None:
    buffer = _capture()

    with log_context() as trace_id:
        logger.info("first event")
        logger.info("second event")

    logger.info("outside context")

    records = _read_records(buffer)
    assert len(records) == 3
    assert records[0]["trace_id"] == records[1]["trace_id"] == trace_id
    assert records[2]["trace_id"] != trace_id


def test_level_filters_records() -> None:
    buffer = io.StringIO()
    configure_logging("WARNING", console_stream=buffer)

    logger.info("hidden")
    logger.warning("shown")

    assert [record["message"] for record in _read_records(buffer)] == ["shown"]


def test_file_sink_writes_json_lines(tmp_path) -> None:
    path = tmp_path / "logs" / "pricekeeper.log"
    configure_logging(console_output=False, file_output=True, file_path=str(path))

    logger.warning("disk almost full")

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert records[0]["level"] == "WARNING"
    assert records[0]["message"] == "disk almost full"

"""Unit tests for logging configuration."""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO
from pathlib import Path
from typing import Any

import pytest
import structlog

from quorum.config import LoggingConfig
from quorum.governance.quarterly_data import QuarterlySessionData
from quorum.governance.quarterly_engine import QuarterlyEngine
from quorum.governance.setup_data import SetupSessionData
from quorum.governance.setup_engine import SetupEngine
from quorum.governance.states import QuarterlyState, SetupState
from quorum.governance.vagueness import VaguenessGate
from quorum.logging import (
    bind_request_context,
    bind_session_context,
    clear_request_context,
    clear_session_context,
    get_correlation_id,
    get_logger,
    redact_journal_text,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Reset logging configuration before each test."""
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def capture_stream() -> StringIO:
    return StringIO()


@pytest.fixture
def json_config() -> LoggingConfig:
    return LoggingConfig(level="INFO", format="json", file=None)


def _capture(stream: StringIO) -> None:
    logging.getLogger().handlers[0].stream = stream


def _last_entry(stream: StringIO) -> dict[str, Any]:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


def test_json_output_format(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that JSON format produces valid JSON output."""
    setup_logging(json_config)
    _capture(capture_stream)

    logger = get_logger("quorum.governance.setup_engine")
    logger.info("setup_problem_saved", index=1, session_id="abc")

    log_entry = _last_entry(capture_stream)
    assert log_entry["event"] == "setup_problem_saved"
    assert log_entry["index"] == 1
    assert log_entry["level"] == "info"
    assert log_entry["logger"] == "quorum.governance.setup_engine"
    assert log_entry["timestamp"].endswith("Z")


def test_console_output_format(capture_stream: StringIO) -> None:
    setup_logging(LoggingConfig(level="DEBUG", format="console"))
    _capture(capture_stream)

    get_logger("test.module").debug("quarterly_transition", transition="answer")

    output = capture_stream.getvalue()
    assert "quarterly_transition" in output
    assert "transition" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output.strip())


def test_log_level_filtering(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    setup_logging(json_config)
    _capture(capture_stream)
    logger = get_logger("test.module")

    logger.debug("debug_message")
    assert capture_stream.getvalue() == ""

    logger.warning("warning_message")
    assert "warning_message" in capture_stream.getvalue()


def test_noisy_libraries_are_quieted(json_config: LoggingConfig) -> None:
    setup_logging(json_config)
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    setup_logging(LoggingConfig(level="DEBUG"))
    assert logging.getLogger("httpx").level == logging.DEBUG


def test_request_context(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    setup_logging(json_config)
    _capture(capture_stream)
    logger = get_logger("test.module")

    bind_request_context("corr-12345")
    bind_session_context(session_id="S-1", session_type="setup")
    assert get_correlation_id() == "corr-12345"
    logger.info("with_correlation")
    assert _last_entry(capture_stream)["correlation_id"] == "corr-12345"

    clear_request_context()
    logger.info("without_correlation")
    log_entry = _last_entry(capture_stream)
    assert get_correlation_id() is None
    assert "correlation_id" not in log_entry
    assert "session_id" not in log_entry


def test_session_context_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that governance session context is attached and can be cleared."""
    setup_logging(json_config)
    _capture(capture_stream)
    logger = get_logger("test.module")

    bind_request_context("corr-1")
    bind_session_context(session_id="S-888", session_type="quarterly")
    logger.info("quarterly_answer_recorded")
    log_entry = _last_entry(capture_stream)
    assert log_entry["session_id"] == "S-888"
    assert log_entry["session_type"] == "quarterly"

    clear_session_context()
    logger.info("after_clear")
    log_entry = _last_entry(capture_stream)
    assert "session_id" not in log_entry
    assert "session_type" not in log_entry
    assert log_entry["correlation_id"] == "corr-1"


class TestRedaction:
    def test_processor_masks_journal_text(self) -> None:
        event_dict: dict[str, Any] = {
            "event": "quarterly_answer_recorded",
            "answer": "I skipped the vendor call",
            "state": "q2CommitmentsVsActuals",
            "rationale": None,
        }

        result = redact_journal_text(None, "info", event_dict)

        assert result["answer"] == "<redacted 25 chars>"
        assert result["state"] == "q2CommitmentsVsActuals"
        assert result["rationale"] is None

    def test_enabled_by_default(self, json_config: LoggingConfig, capture_stream: StringIO) -> None:
        setup_logging(json_config)
        _capture(capture_stream)

        get_logger("test.module").info("bet_created", prediction="Lead two incidents")

        assert _last_entry(capture_stream)["prediction"] == "<redacted 18 chars>"

    def test_can_be_disabled(self, capture_stream: StringIO) -> None:
        setup_logging(LoggingConfig(format="json", redact_journal_text=False))
        _capture(capture_stream)

        get_logger("test.module").info("bet_created", prediction="Lead two incidents")

        assert _last_entry(capture_stream)["prediction"] == "Lead two incidents"



def test_file_rotation_handler_configuration(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "quorum.log"
    setup_logging(
        LoggingConfig(
            level="INFO",
            format="json",
            file=log_file,
            rotation_size_mb=10,
            retention_count=3,
        )
    )

    assert log_file.parent.exists()
    root = logging.getLogger()
    assert len(root.handlers) == 1
    handler = root.handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 10 * 1024 * 1024
    assert handler.backupCount == 3

    get_logger("test.module").info("written_to_file", data="test")
    handler.flush()

    log_entry = json.loads(log_file.read_text().strip())
    assert log_entry["event"] == "written_to_file"
    assert log_entry["data"] == "test"


def test_exception_formatting(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    setup_logging(json_config)
    _capture(capture_stream)

    try:
        raise ValueError("Test exception")
    except ValueError:
        get_logger("test.module").exception("error_occurred")

    log_entry = json.loads(capture_stream.getvalue().strip())
    assert log_entry["level"] == "error"
    assert "ValueError: Test exception" in log_entry["exception"]


class TestEngineTransitionLogging:
    def test_setup_transition_logged(self, collaborators: Any, capture_stream: StringIO) -> None:
        setup_logging(LoggingConfig(level="DEBUG", format="json"))
        _capture(capture_stream)
        engine = SetupEngine(
            anchoring=collaborators.anchoring,
            personas=collaborators.personas,
            health_statements=collaborators.health_statements,
        )

        data = engine.set_sensitivity_gate(SetupSessionData(), abstraction_mode=False)

        assert data.current_state is SetupState.collect_problem_1
        log_entry = _last_entry(capture_stream)
        assert log_entry["event"] == "setup_transition"
        assert log_entry["transition_event"] == "set_sensitivity_gate"
        assert log_entry["from_state"] == "sensitivityGate"
        assert log_entry["to_state"] == "collectProblem1"

    def test_quarterly_transition_logged(
        self, collaborators: Any, capture_stream: StringIO
    ) -> None:
        setup_logging(LoggingConfig(level="DEBUG", format="json"))
        _capture(capture_stream)
        engine = QuarterlyEngine(
            gate=VaguenessGate(collaborators.classifier),
            board_questions=collaborators.board_questions,
            reports=collaborators.reports,
            trends=collaborators.trends,
        )

        data = engine.set_sensitivity_gate(QuarterlySessionData(), abstraction_mode=True)

        assert data.current_state is QuarterlyState.prerequisites_gate
        log_entry = _last_entry(capture_stream)
        assert log_entry["event"] == "quarterly_transition"
        assert log_entry["to_state"] == data.current_state.value

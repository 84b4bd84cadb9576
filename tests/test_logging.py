"""Tests for the structured logging system (quote_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from quote_kernel.domain.context import ServiceType
from quote_kernel.domain.registry import ModuleRegistry
from quote_kernel.exceptions import ModuleExecutionError, UnknownDependencyError
from quote_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from quote_kernel.services.quote_orchestrator import QuoteOrchestrator
from tests.conftest import StubModule, make_request


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class _FailingModule(StubModule):
    def apply(self, ctx):
        raise ZeroDivisionError("no crew")


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "quote_kernel.test"
        assert "ts" in record

    def test_extra_fields_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "priced",
            extra={
                "amount": Decimal("12.50"),
                "service_type": ServiceType.MOVING,
                "modules": ("a", "b"),
                "run_id": uid,
            },
        )

        record = _parse_log(stream)
        assert record["amount"] == "12.50"
        assert record["service_type"] == "MOVING"
        assert record["modules"] == ["a", "b"]
        assert record["run_id"] == str(uid)

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(request_id="req-1", module_id="fuel-cost"):
            get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["request_id"] == "req-1"
        assert record["module_id"] == "fuel-cost"

    def test_kernel_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise UnknownDependencyError("labor-base", "workers")
        except UnknownDependencyError:
            get_logger("test").error("registry_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "UNKNOWN_DEPENDENCY"
        assert record["exc_type"] == "UnknownDependencyError"
        assert record["exc_module_id"] == "labor-base"
        assert record["exc_dependency_id"] == "workers"
        assert "traceback" in record

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "request_id" not in record
        assert "module_id" not in record

    def test_level_filtering(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first", "second"]

    def test_configure_is_idempotent(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        assert len(logging.getLogger("quote_kernel").handlers) == 1


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_bind_and_get(self):
        with LogContext.bind(request_id="y", scenario_id="ECO"):
            assert LogContext.get_all() == {"request_id": "y", "scenario_id": "ECO"}
        assert LogContext.get_all() == {}

    def test_clear(self):
        with LogContext.bind(module_id="m"):
            LogContext.clear()
            assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        with LogContext.bind(module_id="outer", request_id="r"):
            with LogContext.bind(module_id="inner"):
                assert LogContext.get_all() == {"module_id": "inner", "request_id": "r"}
            assert LogContext.get_all()["module_id"] == "outer"

    def test_bind_ignores_none(self):
        with LogContext.bind(request_id=None):
            assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="trace_id"):
            with LogContext.bind(trace_id="t"):
                pass


# ---------------------------------------------------------------------------
# Pipeline events
# ---------------------------------------------------------------------------


class TestPipelineEvents:
    def test_run_emits_start_skip_activate_complete(self, policy):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        orch = QuoteOrchestrator(
            ModuleRegistry([StubModule("a", priority=1), StubModule("b", priority=2, applicable=False)]),
            policy,
        )
        orch.run(make_request(request_id="req-42"))

        logs = _parse_all_logs(stream)
        messages = [r["message"] for r in logs]
        assert messages[0] == "quote_module_registry_built"
        assert messages[1:] == [
            "quote_pipeline_started",
            "quote_module_activated",
            "quote_module_skipped",
            "quote_pipeline_completed",
        ]
        activated = logs[2]
        assert activated["module_id"] == "a"
        assert activated["request_id"] == "req-42"
        completed = logs[-1]
        assert completed["activated_modules"] == ["a"]
        assert len(completed["context_fingerprint"]) == 64

    def test_failure_is_logged_with_module(self, policy):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        orch = QuoteOrchestrator(ModuleRegistry([_FailingModule("crew")]), policy)
        with pytest.raises(ModuleExecutionError):
            orch.run(make_request())

        failure = [r for r in _parse_all_logs(stream) if r["message"] == "quote_module_failed"]
        assert len(failure) == 1
        assert failure[0]["failed_module_id"] == "crew"
        assert failure[0]["module_id"] == "crew"
        assert failure[0]["exc_type"] == "ZeroDivisionError"

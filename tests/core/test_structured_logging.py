"""
Tests for the structured logging setup.

Tests verify:
- JSON output carries ECS field names and the service name
- LogContext binds and unbinds context variables
- DEBUG logs are suppressed at INFO level
"""

import json

import pytest

from tracespine.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)


def _json_lines(text: str) -> list[dict]:
    return [json.loads(line) for line in text.splitlines() if line.strip()]


class TestConfigureLogging:
    def test_json_output_uses_ecs_fields(self, capsys):
        configure_logging(level="INFO", json_format=True)

        get_logger("tests").info("playback_started", run_id="drun-001", steps=3)

        records = _json_lines(capsys.readouterr().err)
        assert len(records) == 1
        record = records[0]
        assert record["event"] == "playback_started"
        assert record["log.level"] == "info"
        assert record["service.name"] == "trace-spine"
        assert record["run_id"] == "drun-001"
        assert "@timestamp" in record

    def test_stdout_is_left_alone(self, capsys):
        configure_logging(json_format=True)
        get_logger().info("hello")
        assert capsys.readouterr().out == ""

    def test_debug_suppressed_at_info(self, capsys):
        configure_logging(level="INFO", json_format=True)
        logger = get_logger("tests")

        logger.debug("hidden")
        logger.info("shown")

        events = [r["event"] for r in _json_lines(capsys.readouterr().err)]
        assert events == ["shown"]

    def test_custom_service_name(self, capsys):
        configure_logging(json_format=True, service="replayer")
        get_logger().warning("x")
        assert _json_lines(capsys.readouterr().err)[0]["service.name"] == "replayer"
        configure_logging(json_format=True)

    def test_without_timestamp(self, capsys):
        configure_logging(json_format=True, add_timestamp=False)
        get_logger().info("x")
        assert "@timestamp" not in _json_lines(capsys.readouterr().err)[0]

    def test_console_format(self, capsys):
        configure_logging(json_format=False)
        get_logger().info("console_event", run_id="r1")
        err = capsys.readouterr().err
        assert "console_event" in err
        assert "r1" in err

    def test_exception_rendered_in_json(self, capsys):
        configure_logging(json_format=True)
        try:
            raise ValueError("kaboom")
        except ValueError:
            get_logger().exception("listener_failed")

        record = _json_lines(capsys.readouterr().err)[0]
        assert record["log.level"] == "error"
        assert "kaboom" in record["exception"]


class TestGetLogger:
    def test_package_import_and_module_logger(self, capsys):
        import tracespine
        from tracespine.playback import scheduler

        configure_logging(json_format=True)
        get_logger(__name__).info("module_logger_ready", version=tracespine.__version__)
        scheduler.logger.info("scheduler_logger_ready")

        events = [r["event"] for r in _json_lines(capsys.readouterr().err)]
        assert events == ["module_logger_ready", "scheduler_logger_ready"]

    def test_unnamed_logger(self, capsys):
        configure_logging(json_format=True)
        get_logger().info("anonymous")
        assert _json_lines(capsys.readouterr().err)[0]["event"] == "anonymous"


class TestContextManagement:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_bind_and_unbind(self, capsys):
        configure_logging(json_format=True)
        logger = get_logger()

        bind_context(run_id="r1")
        logger.info("first")
        unbind_context("run_id")
        logger.info("second")

        first, second = _json_lines(capsys.readouterr().err)
        assert first["run_id"] == "r1"
        assert "run_id" not in second

    def test_log_context_scope(self, capsys):
        configure_logging(json_format=True)
        logger = get_logger()

        with LogContext(run_id="r2"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = _json_lines(capsys.readouterr().err)
        assert inside["run_id"] == "r2"
        assert "run_id" not in outside

    @pytest.mark.asyncio
    async def test_async_log_context(self, capsys):
        configure_logging(json_format=True)
        logger = get_logger()

        async with LogContext(run_id="r3"):
            logger.info("inside")

        assert _json_lines(capsys.readouterr().err)[0]["run_id"] == "r3"

"""
Unit tests for the Logfire monitoring module.

This test suite covers:
- Environment variable parsing
- Logfire initialization with various configurations
- Custom logging helpers (agent runs, API requests, errors)
- Graceful degradation when Logfire is inactive or failing
"""

import importlib
import os
from unittest.mock import patch

import pytest

import runboard_ai.core.monitoring as monitoring


@pytest.fixture(autouse=True)
def _inactive_logfire(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(monitoring, "_logfire_active", False)


class TestLogfireEnvironmentConfiguration:
    """Test environment variable configuration for Logfire."""

    @pytest.mark.parametrize(
        "value,expected",
        [("true", True), ("1", True), ("yes", True), ("false", False), ("no", False)],
    )
    def test_logfire_enabled_flag(self, value, expected):
        with patch.dict(os.environ, {"LOGFIRE_ENABLED": value}):
            module = importlib.reload(monitoring)
            assert module.LOGFIRE_ENABLED is expected
        importlib.reload(monitoring)

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            module = importlib.reload(monitoring)
            assert module.LOGFIRE_ENABLED is False
            assert module.LOGFIRE_SERVICE_NAME == "runboard-ai"
            assert module.LOGFIRE_TRACE_HTTPX is True
        importlib.reload(monitoring)


class TestInitializeLogfire:
    def test_disabled_returns_false(self):
        with patch.object(monitoring.logfire, "configure") as configure:
            assert monitoring.initialize_logfire(enabled=False) is False
            configure.assert_not_called()
        assert monitoring.is_logfire_active() is False

    def test_missing_token_returns_false(self):
        with patch.object(monitoring.logfire, "configure") as configure:
            assert monitoring.initialize_logfire(enabled=True, token="") is False
            configure.assert_not_called()

    def test_enabled_configures_and_instruments_httpx(self):
        with patch.object(monitoring.logfire, "configure") as configure, patch.object(
            monitoring.logfire, "instrument_httpx"
        ) as instrument:
            assert monitoring.initialize_logfire(enabled=True, token="tok") is True
            configure.assert_called_once()
            assert configure.call_args.kwargs["token"] == "tok"
            instrument.assert_called_once()
        assert monitoring.is_logfire_active() is True

    def test_configure_failure_is_reported(self):
        with patch.object(monitoring.logfire, "configure", side_effect=RuntimeError("boom")):
            assert monitoring.initialize_logfire(enabled=True, token="tok") is False
        assert monitoring.is_logfire_active() is False

    def test_instrumentation_failure_does_not_disable_monitoring(self):
        with patch.object(monitoring.logfire, "configure"), patch.object(
            monitoring.logfire, "instrument_httpx", side_effect=RuntimeError("no httpx")
        ):
            assert monitoring.initialize_logfire(enabled=True, token="tok") is True


class TestLoggingHelpers:
    def test_helpers_are_noops_when_inactive(self):
        with patch.object(monitoring.logfire, "info") as info, patch.object(monitoring.logfire, "error") as error:
            monitoring.log_agent_run(1, "acme/repo", "start")
            monitoring.log_agent_completion(1, "idle", 12.0)
            monitoring.log_api_request("GET", "/agent/run/1", 200, 3.0)
            monitoring.log_error("AuthenticationError", "bad token")
            info.assert_not_called()
            error.assert_not_called()

    def test_helpers_emit_when_active(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(monitoring, "_logfire_active", True)
        with patch.object(monitoring.logfire, "info") as info, patch.object(monitoring.logfire, "error") as error:
            monitoring.log_agent_run(1, "acme/repo", "start")
            monitoring.log_api_request("GET", "/agent/run/1", 200, 3.0, cached=True)
            monitoring.log_error("AuthenticationError", "bad token", {"run_id": 1})

        assert info.call_count == 2
        assert info.call_args_list[0].kwargs == {"run_id": 1, "project": "acme/repo", "operation": "start"}
        assert info.call_args_list[1].kwargs["cached"] is True
        error.assert_called_once_with("AuthenticationError: bad token", run_id=1)

    def test_helpers_swallow_logfire_failures(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(monitoring, "_logfire_active", True)
        with patch.object(monitoring.logfire, "info", side_effect=RuntimeError("down")):
            monitoring.log_agent_completion(1, "idle", 1.0)

"""Unit tests for structured logging."""
# ruff: noqa: ARG002  # Fixtures used for setup side effects

import logging
from unittest.mock import MagicMock, patch

import pytest
import structlog
from uuid_utils.compat import uuid7

from distportal.core.context import create_context, request_context
from distportal.core.logging import (
    LogContext,
    add_environment_info,
    add_request_context,
    drop_color_message_key,
    get_logger,
    log_external_call,
    setup_logging,
)


@pytest.fixture
def mock_settings():
    settings = MagicMock()
    settings.log_level = "INFO"
    settings.ENVIRONMENT = "development"
    with patch("distportal.core.logging.get_settings", return_value=settings):
        yield settings


class TestAddRequestContext:
    """Tests for add_request_context processor."""

    def test_adds_context_when_available(self):
        """Test context fields are added when RequestContext is set."""
        ctx = create_context(actor_id=uuid7())

        with request_context(ctx):
            result = add_request_context(None, "info", {})

        assert result["request_id"] == str(ctx.request_id)
        assert result["correlation_id"] == str(ctx.correlation_id)
        assert result["actor_id"] == str(ctx.actor_id)

    def test_anonymous_context_has_no_actor(self):
        with request_context(create_context()):
            result = add_request_context(None, "info", {})

        assert "actor_id" not in result

    def test_no_context_available(self):
        """Test graceful handling when no context is set."""
        result = add_request_context(None, "info", {"message": "test"})

        assert result == {"message": "test"}


class TestProcessors:
    def test_adds_environment(self, mock_settings):
        mock_settings.ENVIRONMENT = "production"

        assert add_environment_info(None, "info", {})["environment"] == "production"

    def test_drops_color_message(self):
        result = drop_color_message_key(None, "info", {"message": "test", "color_message": "x"})

        assert result == {"message": "test"}


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_custom_level(self, mock_settings):
        setup_logging(log_level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_setup_logging_json_format(self, mock_settings):
        mock_settings.ENVIRONMENT = "production"

        setup_logging(json_format=True)

        assert get_logger("test") is not None


class TestLogContext:
    def test_log_context_binds_values(self, mock_settings):
        """Values are bound inside the block and removed afterwards."""
        setup_logging()
        structlog.contextvars.clear_contextvars()

        with LogContext(release_id="r-1"):
            assert structlog.contextvars.get_contextvars().get("release_id") == "r-1"

        assert "release_id" not in structlog.contextvars.get_contextvars()


class TestLogExternalCall:
    def test_failure_logs_warning(self):
        logger = MagicMock()

        log_external_call(
            logger, service="email", operation="send", duration_ms=12.345, success=False
        )

        logger.warning.assert_called_once_with(
            "external_call",
            service="email",
            operation="send",
            duration_ms=12.35,
            success=False,
        )

    def test_success_logs_info(self):
        logger = MagicMock()

        log_external_call(
            logger, service="email", operation="send", duration_ms=1, success=True, status_code=200
        )

        assert logger.info.call_args.kwargs["status_code"] == 200

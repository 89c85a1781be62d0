"""Configuration validation for startup checks.

Validates that required configuration is present and consistent before the
application starts accepting requests.

Usage:
    from distportal.config.validation import validate_or_raise

    # During startup
    validate_or_raise()
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from distportal.config.settings import Settings, get_settings
from distportal.utils.exceptions import ConfigurationError

logger = structlog.get_logger("distportal.config")


class ValidationSeverity(str, Enum):
    """Severity of configuration validation issues."""

    ERROR = "error"  # Must be fixed, app cannot start
    WARNING = "warning"  # Should be fixed, app can start


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""

    field: str
    severity: ValidationSeverity
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result


def validate_configuration(settings: Settings | None = None) -> list[ValidationResult]:
    """Validate application configuration.

    Args:
        settings: Settings to validate (default: global settings)

    Returns:
        List of validation results (empty if all checks pass)
    """
    if settings is None:
        settings = get_settings()

    results: list[ValidationResult] = []
    results.extend(_validate_database(settings))
    results.extend(_validate_security(settings))
    results.extend(_validate_email(settings))
    results.extend(_validate_environment(settings))
    return results


def validate_or_raise(settings: Settings | None = None) -> None:
    """Validate configuration and raise if errors found.

    Args:
        settings: Settings to validate

    Raises:
        ConfigurationError: If any validation errors are found
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity == ValidationSeverity.ERROR]

    if errors:
        error_messages = "\n".join(str(e) for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{error_messages}")

    for warning in results:
        logger.warning("configuration_warning", field=warning.field, message=warning.message)


# =============================================================================
# Validators
# =============================================================================


def _validate_database(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    if not settings.DATABASE_URL:
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.ERROR,
                message="Database URL is not configured",
                suggestion="Set DATABASE_URL environment variable",
            )
        )
    elif not settings.DATABASE_URL.startswith(("postgresql", "sqlite")):
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.WARNING,
                message=f"Unexpected database type in URL: {settings.DATABASE_URL[:20]}...",
                suggestion="The portal is designed for PostgreSQL or SQLite",
            )
        )

    return results


def _validate_security(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and settings.API_SECRET_KEY is None:
        results.append(
            ValidationResult(
                field="API_SECRET_KEY",
                severity=ValidationSeverity.ERROR,
                message="API secret key is required in production",
                suggestion="Generate a secure random string for API authentication",
            )
        )

    if settings.API_SECRET_KEY is not None:
        if len(settings.API_SECRET_KEY.get_secret_value()) < 32:
            results.append(
                ValidationResult(
                    field="API_SECRET_KEY",
                    severity=ValidationSeverity.WARNING,
                    message="API secret key is short and may be weak",
                    suggestion="Use at least 32 characters for secure API keys",
                )
            )

    if settings.ENVIRONMENT == "production" and "*" in settings.CORS_ORIGINS:
        results.append(
            ValidationResult(
                field="CORS_ORIGINS",
                severity=ValidationSeverity.ERROR,
                message="Wildcard CORS origin not allowed in production",
                suggestion="Specify exact allowed origins",
            )
        )

    return results


def _validate_email(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    if not settings.email_enabled:
        severity = (
            ValidationSeverity.ERROR
            if settings.ENVIRONMENT == "production"
            else ValidationSeverity.WARNING
        )
        results.append(
            ValidationResult(
                field="email_api_key",
                severity=severity,
                message="No email provider key configured - notifications will only be logged",
                suggestion="Set EMAIL_API_KEY to deliver release notifications",
            )
        )

    if "@" not in settings.email_from:
        results.append(
            ValidationResult(
                field="email_from",
                severity=ValidationSeverity.ERROR,
                message=f"Sender address is not an email address: {settings.email_from}",
            )
        )

    if settings.notifications.max_concurrency < 1:
        results.append(
            ValidationResult(
                field="notifications.max_concurrency",
                severity=ValidationSeverity.ERROR,
                message="Notification concurrency must be at least 1",
            )
        )

    return results


def _validate_environment(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        results.append(
            ValidationResult(
                field="DEBUG",
                severity=ValidationSeverity.ERROR,
                message="Debug mode must be disabled in production",
                suggestion="Set DEBUG=false for production",
            )
        )

    if settings.ENVIRONMENT == "production" and settings.log_level == "DEBUG":
        results.append(
            ValidationResult(
                field="log_level",
                severity=ValidationSeverity.WARNING,
                message="DEBUG log level in production may expose recipient addresses",
                suggestion="Use INFO or WARNING for production",
            )
        )

    return results


def get_configuration_summary(settings: Settings | None = None) -> dict[str, Any]:
    """Get a summary of current configuration (safe for logging).

    Excludes sensitive values like API keys and connection strings.
    """
    if settings is None:
        settings = get_settings()

    return {
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "log_level": settings.log_level,
        "cors_origins_count": len(settings.CORS_ORIGINS),
        "database_pool_size": settings.DATABASE_POOL_SIZE,
        "api_key_configured": settings.API_SECRET_KEY is not None,
        "email_enabled": settings.email_enabled,
        "notification_max_concurrency": settings.notifications.max_concurrency,
    }

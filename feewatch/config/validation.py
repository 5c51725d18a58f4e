"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

from ..data.parsers import PAYLOAD_FORMATS

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_refresh_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate retry and polling parameters."""
        errors = []

        if "max_retries" in params:
            value = params["max_retries"]
            if not _is_int(value) or value < 0:
                errors.append(ValidationError(
                    field="max_retries",
                    message="Must be a non-negative integer",
                    value=value
                ))

        for name in ("poll_interval_ms", "max_poll_span_ms", "retry_delay_ms"):
            if name in params:
                value = params[name]
                if not _is_int(value) or value <= 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a positive integer",
                        value=value
                    ))

        interval = params.get("poll_interval_ms")
        span = params.get("max_poll_span_ms")
        if _is_int(interval) and _is_int(span) and interval > 0 and span < interval:
            errors.append(ValidationError(
                field="max_poll_span_ms",
                message="Must be at least poll_interval_ms",
                value=span
            ))

        return errors

    @staticmethod
    def validate_fetch_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate upstream source parameters."""
        errors = []

        if "timeout_seconds" in params:
            value = params["timeout_seconds"]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                errors.append(ValidationError(
                    field="timeout_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        endpoints = params.get("endpoints", {})
        if not isinstance(endpoints, dict) or not endpoints:
            errors.append(ValidationError(
                field="endpoints",
                message="Must be a non-empty mapping of endpoint name to url/format",
                value=endpoints
            ))
            endpoints = {}

        for name, spec in endpoints.items():
            if not isinstance(spec, dict) or not isinstance(spec.get("url"), str) or not spec.get("url"):
                errors.append(ValidationError(
                    field=f"endpoints.{name}.url",
                    message="Must be a non-empty string",
                    value=spec.get("url") if isinstance(spec, dict) else spec
                ))
                continue
            payload_format = spec.get("format", "mempool")
            if payload_format not in PAYLOAD_FORMATS:
                errors.append(ValidationError(
                    field=f"endpoints.{name}.format",
                    message=f"Must be one of: {', '.join(PAYLOAD_FORMATS)}",
                    value=payload_format
                ))

        if "default_endpoint" in params and endpoints:
            value = params["default_endpoint"]
            if value not in endpoints:
                errors.append(ValidationError(
                    field="default_endpoint",
                    message="Must name a configured endpoint",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                errors.append(ValidationError(
                    field="level",
                    message=f"Must be one of: {', '.join(LOG_LEVELS)}",
                    value=value
                ))

        for name in ("format_json", "include_timestamp"):
            if name in params and not isinstance(params[name], bool):
                errors.append(ValidationError(
                    field=name,
                    message="Must be a boolean",
                    value=params[name]
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []
        section_validators = (
            ("refresh", ConfigValidator.validate_refresh_params),
            ("fetch", ConfigValidator.validate_fetch_params),
            ("logging", ConfigValidator.validate_logging_params),
        )

        for section, validate in section_validators:
            if section not in config:
                continue
            params = config[section]
            # An empty YAML section loads as None
            if not isinstance(params, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping of settings",
                    value=params
                ))
                continue
            errors.extend(validate(params))

        return errors

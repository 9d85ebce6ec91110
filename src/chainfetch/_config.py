"""
Global configuration for the chainfetch client.

This module provides a simple configuration system following Convention over Configuration (CoC).
Users can optionally call CHAINFETCH.configure() at application startup to customize defaults.
If not called, the market-data API's published policy values are used.

Hierarchy of precedence (highest to lowest):
1. Arguments passed to client constructors
2. Values set via CHAINFETCH.configure()
3. Environment variables (CHAINFETCH_*) - when allow_env_override=True
4. Hardcoded defaults (in dataclass fields)

Example:
    >>> from chainfetch import CHAINFETCH
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> CHAINFETCH.config.rate_limit.max_requests
    200
    >>>
    >>> # Custom configuration
    >>> CHAINFETCH.configure(
    ...     retry={"initial_delay": 0.5, "max_attempts": 5},
    ...     http={"request_timeout": 10},
    ... )
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from functools import wraps
from typing import Any, Self

# String values that set a nullable field to None ("no limit")
_NONE_STRINGS = ("none", "null", "unlimited")

_SECTIONS = ("rate_limit", "retry", "http")


# =============================================================================
# Exceptions
# =============================================================================


class ConfigEnvVarError(ValueError):
    """Raised when an environment variable has an invalid value."""

    def __init__(
        self,
        env_var: str,
        value: str,
        expected_type: str,
        cause: Exception | None = None,
    ):
        self.env_var = env_var
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Invalid value for {env_var}: '{value}' (expected {expected_type})")
        self.__cause__ = cause


class ConfigValidationError(ValueError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        field: str,
        value: Any,
        message: str,
        section: str | None = None,
    ):
        self.field = field
        self.value = value
        self.section = section
        prefix = f"[{section}] " if section else ""
        super().__init__(f"{prefix}Invalid value for '{field}': {value!r}. {message}")


# =============================================================================
# Environment Variables
# =============================================================================


class EnvVars:
    """
    Utility class for reading environment variables with type conversion.

    Example:
        >>> EnvVars.get("CHAINFETCH_RETRY_MAX_ATTEMPTS", type_hint=int)
        5
        >>> EnvVars.get("UNDEFINED_VAR")
        None
    """

    @staticmethod
    def get(
        var_name: str,
        type_hint: Any = str,
        converter: Callable[[str], Any] | None = None,
    ) -> Any:
        """
        Read an environment variable with optional type conversion.

        Args:
            var_name: The environment variable name.
            type_hint: Type hint used to infer the converter (ignored if converter is provided).
            converter: Custom converter function (takes precedence over type_hint).

        Returns:
            The converted value, or None if env var is not set/empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value = os.environ.get(var_name)
        if not raw_value:  # None or empty string
            return None

        actual_converter = converter or EnvVars._infer_converter(type_hint)
        try:
            return actual_converter(raw_value)
        except (ValueError, TypeError) as e:
            raise ConfigEnvVarError(
                env_var=var_name,
                value=raw_value,
                expected_type=type_hint.__name__ if hasattr(type_hint, "__name__") else str(type_hint),
                cause=e,
            ) from e

    @staticmethod
    def _infer_converter(type_hint: Any) -> Callable[[str], Any]:
        """
        Infer converter function from type hint.

        Handles both actual types and string annotations (PEP 563),
        including optional numbers such as "float | None".
        """
        type_str = str(type_hint).replace(" | None", "")

        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        if type_hint is bool or type_str == "bool":
            return lambda v: v.lower() in ("true", "1", "yes")
        return str


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration dataclasses.

    Provides `.with_overrides()` for creating new instances with partial
    field updates, and `.with_env_vars()` for applying the env vars declared
    in field metadata. Fields declared with metadata={"nullable": True}
    accept None (or the strings "none"/"null"/"unlimited") as "no limit".

    Example:
        >>> config = RetryConfig()
        >>> custom = config.with_overrides({"max_attempts": 5})
        >>> custom.max_attempts
        5
    """

    @classmethod
    def _nullable_fields(cls) -> set[str]:
        return {f.name for f in fields(cls) if f.metadata.get("nullable", False)}

    def with_overrides(self, overrides: dict[str, Any]) -> Self:
        """
        Return a new instance with specified fields overridden.

        None values are ignored, except for nullable fields where None
        means "no limit".

        Args:
            overrides: Dict of field names to new values.
                       Only existing fields are allowed.

        Returns:
            New instance with updated values.

        Raises:
            ValueError: If overrides contains unknown field names.
        """
        if not overrides:
            return self

        valid_fields = {f.name for f in fields(self)}
        invalid_fields = set(overrides.keys()) - valid_fields

        if invalid_fields:
            raise ValueError(
                f"Unknown config fields: {invalid_fields}. "
                f"Valid fields are: {valid_fields}"
            )

        nullable = self._nullable_fields()
        filtered: dict[str, Any] = {}
        for name, value in overrides.items():
            if name in nullable and isinstance(value, str) and value.lower() in _NONE_STRINGS:
                value = None
            if value is not None or name in nullable:
                filtered[name] = value
        return replace(self, **filtered) if filtered else self

    def with_env_vars(self) -> Self:
        """
        Return new instance with environment variables applied.

        Reads env vars declared in field metadata and applies them as overrides.

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, Any] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if not env_var:
                continue
            if f.metadata.get("nullable", False):
                raw = os.environ.get(env_var)
                if raw and raw.lower() in _NONE_STRINGS:
                    overrides[f.name] = None
                    continue
            value = EnvVars.get(var_name=env_var, type_hint=f.type)
            if value is not None:
                overrides[f.name] = value
        return self.with_overrides(overrides)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass(frozen=True)
class RateLimitConfig(OverridableConfig):
    """
    Sliding-window rate limiting applied to every outbound request.

    The defaults mirror the market-data API quota: 200 requests in any
    trailing 60-second interval.

    Attributes:
        enabled: Whether the default client guards requests with a limiter.
            Env var: CHAINFETCH_RATE_LIMIT_ENABLED

        max_requests: Maximum requests admitted in any trailing time window.
            Env var: CHAINFETCH_RATE_LIMIT_MAX_REQUESTS

        time_window: Window length in seconds.
            Env var: CHAINFETCH_RATE_LIMIT_TIME_WINDOW

        slack: Extra seconds added to each computed wait to stay clear of
            the window boundary.
            Env var: CHAINFETCH_RATE_LIMIT_SLACK

        max_wait_time: Maximum seconds a caller may wait for admission before
            RateLimitExhaustedError is raised. None waits indefinitely.
            Env var: CHAINFETCH_RATE_LIMIT_MAX_WAIT_TIME
    """

    enabled: bool = field(default=True, metadata={"env": "CHAINFETCH_RATE_LIMIT_ENABLED"})
    max_requests: int = field(default=200, metadata={"env": "CHAINFETCH_RATE_LIMIT_MAX_REQUESTS"})
    time_window: float = field(default=60.0, metadata={"env": "CHAINFETCH_RATE_LIMIT_TIME_WINDOW"})
    slack: float = field(default=0.1, metadata={"env": "CHAINFETCH_RATE_LIMIT_SLACK"})
    max_wait_time: float | None = field(
        default=None,
        metadata={"env": "CHAINFETCH_RATE_LIMIT_MAX_WAIT_TIME", "nullable": True},
    )

    def validate(self) -> Self:
        """Validate rate limit configuration fields."""
        if self.max_requests <= 0:
            raise ConfigValidationError(
                "max_requests", self.max_requests,
                "Must be greater than 0.", section="rate_limit"
            )
        if self.time_window <= 0:
            raise ConfigValidationError(
                "time_window", self.time_window,
                "Must be greater than 0.", section="rate_limit"
            )
        if self.slack < 0:
            raise ConfigValidationError(
                "slack", self.slack,
                "Must be greater than or equal to 0.", section="rate_limit"
            )
        if self.max_wait_time is not None and self.max_wait_time <= 0:
            raise ConfigValidationError(
                "max_wait_time", self.max_wait_time,
                "Must be greater than 0 (or None for unlimited).", section="rate_limit"
            )
        return self


@dataclass(frozen=True)
class RetryConfig(OverridableConfig):
    """
    Retry policy defaults for the resilient client.

    Attributes:
        initial_delay: Seconds to wait before the first retry.
            Env var: CHAINFETCH_RETRY_INITIAL_DELAY

        max_attempts: Additional attempts allowed after the first request.
            Use 0 to disable retries (single attempt only).
            Env var: CHAINFETCH_RETRY_MAX_ATTEMPTS

        backoff_multiplier: Growth factor applied to the delay after each retry.
            Env var: CHAINFETCH_RETRY_BACKOFF_MULTIPLIER

        max_delay: Ceiling for any single retry delay, including delays taken
            from Retry-After. None leaves delays uncapped.
            Env var: CHAINFETCH_RETRY_MAX_DELAY
    """

    initial_delay: float = field(default=1.0, metadata={"env": "CHAINFETCH_RETRY_INITIAL_DELAY"})
    max_attempts: int = field(default=3, metadata={"env": "CHAINFETCH_RETRY_MAX_ATTEMPTS"})
    backoff_multiplier: float = field(default=2.0, metadata={"env": "CHAINFETCH_RETRY_BACKOFF_MULTIPLIER"})
    max_delay: float | None = field(
        default=60.0,
        metadata={"env": "CHAINFETCH_RETRY_MAX_DELAY", "nullable": True},
    )

    def validate(self) -> Self:
        """Validate retry configuration fields."""
        if self.initial_delay < 0:
            raise ConfigValidationError(
                "initial_delay", self.initial_delay,
                "Must be greater than or equal to 0.", section="retry"
            )
        if self.max_attempts < 0:
            raise ConfigValidationError(
                "max_attempts", self.max_attempts,
                "Must be greater than or equal to 0.", section="retry"
            )
        if self.backoff_multiplier < 1:
            raise ConfigValidationError(
                "backoff_multiplier", self.backoff_multiplier,
                "Must be greater than or equal to 1.", section="retry"
            )
        if self.max_delay is not None and self.max_delay <= 0:
            raise ConfigValidationError(
                "max_delay", self.max_delay,
                "Must be greater than 0 (or None for uncapped).", section="retry"
            )
        return self


@dataclass(frozen=True)
class HttpConfig(OverridableConfig):
    """
    Transport settings for the default HTTP client.

    Attributes:
        request_timeout: Per-request timeout in seconds.
            Env var: CHAINFETCH_HTTP_REQUEST_TIMEOUT

        base_url: Base URL that relative request paths are joined onto.
            Env var: CHAINFETCH_HTTP_BASE_URL
    """

    request_timeout: int = field(default=30, metadata={"env": "CHAINFETCH_HTTP_REQUEST_TIMEOUT"})
    base_url: str = field(default="https://data.alpaca.markets", metadata={"env": "CHAINFETCH_HTTP_BASE_URL"})

    def validate(self) -> Self:
        """Validate HTTP configuration fields."""
        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "request_timeout", self.request_timeout,
                "Must be greater than 0.", section="http"
            )
        if not (self.base_url.startswith("http://") or self.base_url.startswith("https://")):
            raise ConfigValidationError(
                "base_url", self.base_url,
                "Must start with 'http://' or 'https://'.", section="http"
            )
        return self


@dataclass(frozen=True)
class ConfigEntry:
    """
    A configuration field with its resolved value and source.

    Attributes:
        name: The field name (e.g., "max_requests").
        value: The resolved value.
        source: Where the value came from:
            - "default": Hardcoded default value
            - "env:VAR_NAME": Environment variable
            - "user": Set via CHAINFETCH.configure()

    Example:
        >>> entry = ConfigEntry("max_requests", 200, "default")
        >>> entry.formatted_value
        '200'
    """

    name: str
    value: Any
    source: str

    @property
    def formatted_value(self) -> str:
        """Return value formatted for display, truncating long strings."""
        if self.value is None:
            return "None"

        str_value = str(self.value)
        max_length = 50
        if len(str_value) > max_length:
            return str_value[: max_length - 3] + "..."

        return str_value


@dataclass(frozen=True)
class ConfigTracker:
    """
    Tracks the source of config field values.

    An immutable tracker that records where each configuration value came from
    (default, env var, or configure()). Used by CHAINFETCH.explain().

    Attributes:
        sources: Dict tracking source of each field value.
            Structure: {"section": {"field": "source"}}
    """

    sources: dict[str, dict[str, str]] = field(default_factory=dict)

    @staticmethod
    def track_changes(
        source_type: str,
    ) -> Callable[[Callable[..., ChainFetchConfig]], Callable[..., ChainFetchConfig]]:
        """
        Decorator that tracks config changes made by the decorated method.

        Wraps methods that return a new ChainFetchConfig and records which
        fields the source touched.

        Args:
            source_type: Source label for tracking ("env" or "user").
        """

        def decorator(
            method: Callable[..., ChainFetchConfig],
        ) -> Callable[..., ChainFetchConfig]:
            @wraps(method)
            def wrapper(self: ChainFetchConfig, *args: Any, **kwargs: Any) -> ChainFetchConfig:
                new_config = method(self, *args, **kwargs)
                new_tracker = self._tracker.with_changes_tracked(
                    new_config, source_type, overrides=kwargs
                )
                return replace(new_config, _tracker=new_tracker)

            return wrapper

        return decorator

    def with_changes_tracked(
        self,
        new_config: ChainFetchConfig,
        source_type: str,
        overrides: dict[str, Any] | None = None,
    ) -> ConfigTracker:
        """
        Return new tracker with the fields touched by the source recorded.

        Fields are considered touched when the source set them, even if the
        value did not change.
        """
        new_sources = {section: dict(flds) for section, flds in self.sources.items()}

        for section_name in _SECTIONS:
            section_config = getattr(new_config, section_name)
            section_overrides = (overrides or {}).get(section_name) or {}

            for f in fields(section_config):
                if source_type == "env":
                    env_var = f.metadata.get("env")
                    if env_var and os.environ.get(env_var):
                        new_sources.setdefault(section_name, {})[f.name] = f"env:{env_var}"
                elif f.name in section_overrides:
                    new_sources.setdefault(section_name, {})[f.name] = source_type

        return ConfigTracker(sources=new_sources)


@dataclass(frozen=True)
class ChainFetchConfig:
    """
    Global configuration for the chainfetch client.

    Aggregates all configuration sections. Access via `CHAINFETCH.config`.

    Attributes:
        rate_limit: Sliding-window limiter settings.
        retry: Retry policy defaults.
        http: Transport settings.

    Example:
        >>> from chainfetch import CHAINFETCH
        >>> CHAINFETCH.config.retry.max_attempts
        3
        >>> CHAINFETCH.config.rate_limit.time_window
        60.0
    """

    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    _tracker: ConfigTracker = field(default_factory=ConfigTracker, repr=False)

    @ConfigTracker.track_changes("env")
    def with_env_vars(self) -> ChainFetchConfig:
        """
        Return a new config with CHAINFETCH_* environment variables applied on top.

        Example:
            >>> config = ChainFetchConfig().with_env_vars()
        """
        return ChainFetchConfig(
            rate_limit=self.rate_limit.with_env_vars(),
            retry=self.retry.with_env_vars(),
            http=self.http.with_env_vars(),
        )

    @ConfigTracker.track_changes("user")
    def with_section_overrides(
        self,
        *,
        rate_limit: dict[str, Any] | None = None,
        retry: dict[str, Any] | None = None,
        http: dict[str, Any] | None = None,
    ) -> ChainFetchConfig:
        """
        Return a new config with overrides applied to nested sections.

        Each section dict is merged with the existing section config,
        only overriding the specified fields.
        """
        return ChainFetchConfig(
            rate_limit=self.rate_limit.with_overrides(rate_limit or {}),
            retry=self.retry.with_overrides(retry or {}),
            http=self.http.with_overrides(http or {}),
        )

    def explain_data(self) -> dict[str, list[ConfigEntry]]:
        """
        Return config data structured for explain output.

        Returns:
            Dict mapping section names to list of ConfigEntry objects.
        """
        result: dict[str, list[ConfigEntry]] = {}
        for section_name in _SECTIONS:
            section_config = getattr(self, section_name)
            section_sources = self._tracker.sources.get(section_name, {})
            result[section_name] = [
                ConfigEntry(
                    name=f.name,
                    value=getattr(section_config, f.name),
                    source=section_sources.get(f.name, "default"),
                )
                for f in fields(section_config)
            ]
        return result


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _ChainFetch:
    """
    Singleton for client configuration.

    Use `CHAINFETCH.configure()` to customize settings and `CHAINFETCH.config`
    to access current configuration.

    Example:
        >>> from chainfetch import CHAINFETCH
        >>> CHAINFETCH.configure(rate_limit={"max_requests": 100})
        >>> print(CHAINFETCH.config.rate_limit.max_requests)
        100
    """

    def __init__(self) -> None:
        """Initialize with defaults and environment variables."""
        self._config: ChainFetchConfig = ChainFetchConfig().with_env_vars()

    def configure(
        self,
        *,
        rate_limit: dict[str, Any] | None = None,
        retry: dict[str, Any] | None = None,
        http: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> ChainFetchConfig:
        """
        Configure client settings.

        Call at application startup, before the first request. Clients and
        limiters created earlier keep the settings they were built with;
        call reset_default_http_client() to rebuild the default one.

        Args:
            rate_limit: Rate limiting overrides (max_requests, time_window, ...).
            retry: Retry policy overrides (initial_delay, max_attempts, ...).
            http: Transport overrides (request_timeout, base_url).
            allow_env_override: If True (default), env vars are used as fallback
                for fields NOT provided. If False, ignores env vars entirely.

        Returns:
            The configured ChainFetchConfig instance.

        Raises:
            ValueError: If any dict contains unknown field names.
            ConfigValidationError: If any config value fails validation.
        """
        base = ChainFetchConfig()
        if allow_env_override:
            base = base.with_env_vars()

        self._config = base.with_section_overrides(
            rate_limit=rate_limit,
            retry=retry,
            http=http,
        )

        return self.validate()

    @property
    def config(self) -> ChainFetchConfig:
        """Access current configuration (read-only)."""
        return self._config

    def reset(self) -> ChainFetchConfig:
        """
        Reset configuration to defaults + env vars.

        Useful for testing to ensure clean state between tests.
        """
        self._config = ChainFetchConfig().with_env_vars()
        return self.validate()

    def validate(self) -> ChainFetchConfig:
        """
        Validate current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config.rate_limit.validate()
        self._config.retry.validate()
        self._config.http.validate()
        return self._config

    def explain(
        self,
        output: Callable[[str], None] = print,
    ) -> None:
        """
        Print current configuration with sources.

        Args:
            output: Callable to output each line. Defaults to print.
                    Can be used with logging: `CHAINFETCH.explain(logger.info)`
        """
        name_width = 22
        value_width = 50
        total_width = 2 + name_width + 2 + (value_width + 2) + 1 + 8

        output("chainfetch configuration:")
        output("=" * total_width)

        for section_name, entries in self._config.explain_data().items():
            output(f"[{section_name}]")
            for entry in entries:
                dots = "." * (name_width - len(entry.name))
                value_padded = entry.formatted_value.ljust(value_width)
                marker = "✎" if entry.source != "default" else " "
                output(f"  {entry.name} {dots} {value_padded} {marker} {entry.source}")

        output("=" * total_width)

    def __repr__(self) -> str:
        return f"CHAINFETCH(config={self._config!r})"


# Global singleton instance - always reflects current configuration
CHAINFETCH: _ChainFetch = _ChainFetch()
CHAINFETCH.validate()

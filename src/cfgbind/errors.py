"""
Structured error types for cfgbind.

Every failure the binding engine can surface carries a category and a small
structured context (the config key, the record field, the offending value)
so the host CLI can log it or render it without parsing messages.

Manifesto:
    - **Typed hierarchy:** one base class, one subclass per failure mode
    - **Fail fast at bind time:** introspection errors surface before any
      command runs
    - **Propagate at resolve time:** decode failures abort the dispatch that
      triggered them; nothing is retried because nothing would change
    - **Absence is not failure:** a missing config file is a normal state

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                      CfgBindError                          │
        │               (category, context, cause)                   │
        ├───────────────────────────────────────────────────────────┤
        │  BINDING                 DECODE            CONFIG           │
        │  InvalidTargetKindError  DecodeError       ConfigFileNotFound│
        │                                            ConfigParseError  │
        │                                            UnsupportedConfig │
        │                                            PathUnresolvable  │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> error = DecodeError("cannot decode", key="port", value="abc")
    >>> error.category
    <ErrorCategory.DECODE: 'DECODE'>
    >>> error.to_dict()["context"]
    {'key': 'port', 'value': 'abc'}

Tags:
    error-handling, exception-hierarchy, error-context, cfgbind
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification."""

    BINDING = "BINDING"
    DECODE = "DECODE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        key: Dotted config key being resolved
        field: Record field name
        record: Record type name
        value: Offending value
        path: File path involved
        metadata: Additional key-value pairs
    """

    key: str | None = None
    field: str | None = None
    record: str | None = None
    value: Any = None
    path: str | None = None

    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["key", "field", "record", "value", "path"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CfgBindError(Exception):
    """
    Base exception for all cfgbind errors.

    Subclasses set ``default_category``. The optional ``cause`` is chained
    as ``__cause__`` so tracebacks show the underlying library error.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CfgBindError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DecodeError("bad value").with_context(record="RootConfig")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# BINDING ERRORS
# =============================================================================


class InvalidTargetKindError(CfgBindError):
    """
    Binding was called on something that is not a record.

    A programmer error: raised at bind time, before any command runs.
    """

    default_category = ErrorCategory.BINDING

    def __init__(self, target: Any, message: str | None = None):
        self.target = target
        kind = target.__name__ if isinstance(target, type) else type(target).__name__
        super().__init__(
            message or f"Expected a dataclass record, got {kind}",
            context=ErrorContext(record=kind),
        )


# =============================================================================
# DECODE ERRORS
# =============================================================================


class DecodeError(CfgBindError):
    """A config-sourced value cannot be coerced onto a record field."""

    default_category = ErrorCategory.DECODE

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        value: Any = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, context=ErrorContext(key=key, value=value), cause=cause)
        self.key = key
        self.value = value


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(CfgBindError):
    """Configuration source error."""

    default_category = ErrorCategory.CONFIG


class ConfigFileNotFoundError(ConfigError):
    """No config file was found in any search path.

    Expected state: the loader swallows it and continues with defaults,
    flags and environment only.
    """

    def __init__(self, name: str, search_paths: list[str] | None = None):
        self.name = name
        self.search_paths = search_paths or []
        super().__init__(
            f"Config file {name!r} not found in {self.search_paths}",
            context=ErrorContext(path=name),
        )


class ConfigParseError(ConfigError):
    """Config content could not be parsed."""

    def __init__(self, path: str, cause: Exception | None = None):
        self.path = path
        super().__init__(f"Cannot parse config {path}", context=ErrorContext(path=path), cause=cause)


class UnsupportedConfigTypeError(ConfigError):
    """Config format is not one of the supported types."""

    def __init__(self, config_type: str):
        self.config_type = config_type
        super().__init__(f"Unsupported config type: {config_type!r}")


class PathUnresolvableError(ConfigError):
    """Home directory or executable path cannot be determined.

    Fatal: the loader cannot establish where to search.
    """

    def __init__(self, what: str, cause: Exception | None = None):
        self.what = what
        super().__init__(f"Cannot resolve {what}", cause=cause)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CfgBindError",
    "InvalidTargetKindError",
    "DecodeError",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "UnsupportedConfigTypeError",
    "PathUnresolvableError",
]

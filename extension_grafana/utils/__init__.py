# Utils Package
"""
Cross-cutting utilities.

- errors.py: Error taxonomy rendered to callers
- logging_context.py: Event correlation for log records
"""

from extension_grafana.utils.errors import (
    ExtensionError,
    ConfigurationError,
    RuleNotFoundError,
    ExpectationMismatchError,
    MissingDataError,
    EventDecodeError,
    AmbiguousAnnotationError,
    GrafanaClientError,
    GrafanaStatusError,
    GrafanaPayloadError,
)
from extension_grafana.utils.logging_context import (
    EventContextFilter,
    LoggingContext,
    setup_logging,
)

__all__ = [
    "ExtensionError",
    "ConfigurationError",
    "RuleNotFoundError",
    "ExpectationMismatchError",
    "MissingDataError",
    "EventDecodeError",
    "AmbiguousAnnotationError",
    "GrafanaClientError",
    "GrafanaStatusError",
    "GrafanaPayloadError",
    "EventContextFilter",
    "LoggingContext",
    "setup_logging",
]

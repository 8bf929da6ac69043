"""
Error Taxonomy

Provides:
- ExtensionError, the base carrying a title/detail pair rendered to callers
- Check faults surfaced to the action caller
- Backend faults absorbed by discovery and annotations
"""

from typing import Any, Dict, List, Optional, Sequence


class ExtensionError(Exception):
    """Base error rendered as ``{"title", "detail"}`` by the HTTP layer."""

    status_code = 500

    def __init__(self, title: str, detail: Optional[str] = None):
        super().__init__(title)
        self.title = title
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"title": self.title}
        if self.detail:
            body["detail"] = self.detail
        return body


class ConfigurationError(ExtensionError):
    """Raised when a check is prepared with an unusable target or config."""

    status_code = 400


class RuleNotFoundError(ExtensionError):
    """Raised when the polled alert rule is not present in its datasource."""
    pass


class ExpectationMismatchError(ExtensionError):
    """Raised when the observed rule state does not satisfy the check policy."""

    def __init__(self, title: str, rule_name: str, actual_state: Optional[str], expected_states: Sequence[str]):
        super().__init__(title)
        self.rule_name = rule_name
        self.actual_state = actual_state
        self.expected_states = list(expected_states)


class MissingDataError(ExtensionError):
    """Raised when a lifecycle event lacks the payload its kind requires."""

    status_code = 400


class EventDecodeError(ExtensionError):
    """Raised when a lifecycle event body cannot be decoded."""

    status_code = 400


class AmbiguousAnnotationError(ExtensionError):
    """Raised when an annotation search does not yield exactly one match."""

    def __init__(self, tags: List[str], matches: int):
        super().__init__(
            f"Expected exactly one annotation with tags {tags}, found {matches}"
        )
        self.tags = tags
        self.matches = matches


class GrafanaClientError(ExtensionError):
    """Raised when a Grafana request fails at the transport level."""
    pass


class GrafanaStatusError(GrafanaClientError):
    """Raised when Grafana responds with a non-2xx status."""

    def __init__(self, method: str, path: str, status_code: int, body: str):
        super().__init__(
            f"Grafana API responded with unexpected status code {status_code} for {method} {path}",
            detail=body,
        )
        self.method = method
        self.path = path
        self.response_status = status_code
        self.body = body


class GrafanaPayloadError(GrafanaClientError):
    """Raised when a Grafana response body does not have the expected shape."""

    def __init__(self, method: str, path: str, detail: str):
        super().__init__(f"Grafana returned an unexpected body for {method} {path}", detail=detail)
        self.method = method
        self.path = path

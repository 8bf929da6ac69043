"""
Logging Context - Lifecycle event correlation

Every log record emitted while an experiment lifecycle event is handled
carries the event id and the experiment execution id, so that all lines
of one annotation round can be found together.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Context vars, task-local under asyncio
_event_id: ContextVar[str] = ContextVar("event_id", default="")
_execution_id: ContextVar[str] = ContextVar("execution_id", default="")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [event=%(event_id)s] %(message)s"


class EventContextFilter(logging.Filter):
    """Filter that adds event_id and execution_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.event_id = _event_id.get() or "N/A"
        record.execution_id = _execution_id.get() or "N/A"
        return True


class LoggingContext:
    """Access to the current lifecycle event context."""

    @staticmethod
    def get_event_id() -> str:
        return _event_id.get()

    @staticmethod
    def get_execution_id() -> str:
        return _execution_id.get()

    @staticmethod
    @contextmanager
    def bind_event(event_id: Optional[str], execution_id: Optional[str] = None) -> Iterator[None]:
        """Bind event identifiers for the duration of the block."""
        event_token = _event_id.set(event_id or "")
        execution_token = _execution_id.set(execution_id or "")
        try:
            yield
        finally:
            _event_id.reset(event_token)
            _execution_id.reset(execution_token)


def setup_logging(log_level: str = "INFO") -> None:
    """Configure logging for the application."""
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(EventContextFilter())
    logging.basicConfig(
        level=getattr(logging, log_level),
        format=LOG_FORMAT,
        handlers=[handler],
        force=True,
    )

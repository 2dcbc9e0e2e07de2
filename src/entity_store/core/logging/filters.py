"""
Logging filters.

CorrelationIdFilter stamps every record with the current correlation id so log
lines emitted by one unit of work (a request, a job, a CLI command) can be
grouped. The id lives in a `contextvars.ContextVar`, which follows the value
across `await` boundaries and stays isolated between concurrent asyncio tasks.

Usage:
    token = set_correlation_id("job-42")
    try:
        await service.save(entity)      # every log line carries correlation_id="job-42"
    finally:
        reset_correlation_id(token)

RedactFilter masks sensitive keys passed through `extra={...}`.
"""
import contextvars
import logging
from logging import LogRecord

_correlation_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> contextvars.Token:
    """Set the id for the current context; returns the token for `reset_correlation_id`."""
    return _correlation_id_ctx.set(correlation_id)


def reset_correlation_id(token: contextvars.Token) -> None:
    _correlation_id_ctx.reset(token)


def get_correlation_id() -> str | None:
    return _correlation_id_ctx.get()


class CorrelationIdFilter(logging.Filter):
    """
    Guarantee `record.correlation_id` exists.

    Precedence: an explicit `extra={"correlation_id": ...}`, then the context
    variable, then the "-" sentinel. Never drops a record.
    """

    def filter(self, record: LogRecord) -> bool:
        record.correlation_id = getattr(record, "correlation_id", None) or get_correlation_id() or "-"
        return True


class RedactFilter(logging.Filter):
    SENSITIVE = {"password", "secret", "token", "access_token", "refresh_token", "authorization", "database_url"}
    MASK = "***REDACTED***"

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = self.MASK
        return True

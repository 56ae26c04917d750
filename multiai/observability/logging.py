"""
MultiAI - Structured JSON Logging

Every log line is a single JSON object. Fields passed as keyword arguments
and the fields of the active send context (request id, persona, provider,
trace id) land at the top level of that object, and anything that looks
like a credential is masked before it is written.

Usage:
    from multiai.observability.logging import setup_logging, get_logger

    setup_logging(level="INFO")

    logger = get_logger(__name__)
    logger.info("Provider attempt failed", provider="gemini", failure="rate_limit")

Output:
    {"timestamp": "2025-01-15T10:30:00+00:00", "level": "INFO",
     "logger": "multiai.routing.cascade", "message": "Provider attempt failed",
     "request_id": "req_ab12", "provider": "gemini", "failure": "rate_limit"}
"""

import json
import logging
import os
import sys
import time
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

_send_context: ContextVar[Optional["LogContext"]] = ContextVar("multiai_log_context", default=None)

REDACTED = "[REDACTED]"

# Substrings that mark a field name as carrying a credential
SENSITIVE_MARKERS = (
    "api_key", "apikey", "authorization", "credential",
    "password", "private_key", "secret", "token",
)

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "taskName",
}

_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


@dataclass
class LogContext:
    """Correlation fields for one send."""
    request_id: str = ""
    trace_id: str = ""
    persona: str = ""
    provider: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def get_current(cls) -> Optional["LogContext"]:
        return _send_context.get()

    @classmethod
    def set_current(cls, ctx: Optional["LogContext"]):
        """Install ``ctx`` for the running task; returns the token for :meth:`reset`."""
        return _send_context.set(ctx)

    @classmethod
    def reset(cls, token) -> None:
        _send_context.reset(token)

    def update(self, **fields: Any) -> None:
        for name, value in fields.items():
            if name in ("request_id", "trace_id", "persona", "provider"):
                setattr(self, name, value)
            else:
                self.extra[name] = value

    def to_dict(self) -> Dict[str, Any]:
        named = {
            "request_id": self.request_id,
            "trace_id": self.trace_id,
            "persona": self.persona,
            "provider": self.provider,
        }
        result = {name: value for name, value in named.items() if value}
        result.update(self.extra)
        return result


def is_sensitive(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in SENSITIVE_MARKERS)


class JSONFormatter(logging.Formatter):
    """Render records as JSON, merging the send context and masking credentials."""

    def __init__(self, redact_sensitive: bool = True):
        super().__init__()
        self.redact_sensitive = redact_sensitive

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        ctx = LogContext.get_current()
        if ctx is not None:
            payload.update(ctx.to_dict())

        # Explicit fields win over the context
        for name, value in vars(record).items():
            if name in _RECORD_ATTRS:
                continue
            if self.redact_sensitive and is_sensitive(name):
                value = REDACTED
            payload[name] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=False)


class StructuredLogger:
    """
    Thin wrapper over :class:`logging.Logger` whose keyword arguments
    become structured fields on the record.
    """

    _PASSTHROUGH = ("exc_info", "stack_info", "stacklevel")

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def log(self, level: int, msg: str, *args: Any, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        options = {key: fields.pop(key) for key in self._PASSTHROUGH if key in fields}
        options.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, extra=fields, **options)

    def debug(self, msg: str, *args: Any, **fields: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **fields)

    def info(self, msg: str, *args: Any, **fields: Any) -> None:
        self.log(logging.INFO, msg, *args, **fields)

    def warning(self, msg: str, *args: Any, **fields: Any) -> None:
        self.log(logging.WARNING, msg, *args, **fields)

    def error(self, msg: str, *args: Any, **fields: Any) -> None:
        self.log(logging.ERROR, msg, *args, **fields)

    def exception(self, msg: str, *args: Any, **fields: Any) -> None:
        fields["exc_info"] = True
        self.log(logging.ERROR, msg, *args, **fields)


_configured = False


def setup_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = True,
    redact_sensitive: bool = True,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name or number
        json_output: JSON lines (True) or the plain text format (False)
        redact_sensitive: Mask credential-like fields in JSON output
    """
    global _configured

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_output:
        handler.setFormatter(JSONFormatter(redact_sensitive=redact_sensitive))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> StructuredLogger:
    """Return a structured logger, configuring from LOG_LEVEL / LOG_FORMAT on first use."""
    if not _configured:
        setup_logging(
            level=os.getenv("LOG_LEVEL", "INFO"),
            json_output=os.getenv("LOG_FORMAT", "json").lower() == "json",
        )
    return StructuredLogger(logging.getLogger(name))


class TimedOperation:
    """
    Log how long a block took.

    Usage:
        async with TimedOperation("provider_probe", logger, provider="local"):
            await adapter.complete(...)

    Emits "<operation> completed" at ``log_level`` or "<operation> failed"
    at WARNING, both with ``duration_ms``. Exceptions are never suppressed.
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[StructuredLogger] = None,
        log_level: int = logging.DEBUG,
        **fields: Any,
    ):
        self.operation = operation
        self.logger = logger or get_logger("multiai.timing")
        self.log_level = log_level
        self.fields = fields
        self.duration_ms: Optional[float] = None
        self._started = 0.0

    def __enter__(self) -> "TimedOperation":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration_ms = round((time.perf_counter() - self._started) * 1000, 2)
        fields = dict(self.fields, operation=self.operation, duration_ms=self.duration_ms)
        if exc_type is None:
            self.logger.log(self.log_level, f"{self.operation} completed", **fields)
        else:
            self.logger.log(logging.WARNING, f"{self.operation} failed", error=exc_type.__name__, **fields)
        return False

    async def __aenter__(self) -> "TimedOperation":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        return self.__exit__(exc_type, exc_val, exc_tb)

from __future__ import annotations

import json
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping, Optional, TextIO

LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40}

REDACTED = "***"
_SECRET_NAMES = frozenset({"token", "secret", "password", "authorization"})
_SECRET_SUFFIXES = ("_token", "_secret", "password", "api_key", "apikey")


def is_secret_field(name: str) -> bool:
    lowered = name.lower()
    return lowered in _SECRET_NAMES or lowered.endswith(_SECRET_SUFFIXES)


def redact(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Mask secret-looking keys, descending into nested mappings."""
    clean: Dict[str, Any] = {}
    for name, value in fields.items():
        if is_secret_field(name):
            clean[name] = REDACTED
        elif isinstance(value, Mapping):
            clean[name] = redact(value)
        else:
            clean[name] = value
    return clean


class AuditLogger:
    """
    Structured logger writing one JSON object per line (stderr by default).

    Every record carries `timestamp`, `level`, `run_id` and `message`, then the
    logger's bound context, then the call's keyword fields. Debug records are
    dropped unless the logger is verbose.
    """

    def __init__(
        self,
        run_id: str,
        *,
        verbose: bool = False,
        stream: Optional[TextIO] = None,
        context: Optional[Mapping[str, Any]] = None,
    ):
        self.run_id = run_id
        self.verbose = verbose
        self.min_level = LEVELS["debug" if verbose else "info"]
        self.context: Dict[str, Any] = dict(context or {})
        self.stage_durations: Dict[str, int] = {}
        self._stream = stream

    def bind(self, **fields: Any) -> "AuditLogger":
        """Child logger whose records also carry `fields`."""
        child = AuditLogger(
            self.run_id,
            verbose=self.verbose,
            stream=self._stream,
            context={**self.context, **fields},
        )
        child.stage_durations = self.stage_durations
        return child

    def debug(self, message: str, **fields: Any) -> None:
        self.log("debug", message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log("info", message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log("warning", message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self.log("error", message, **fields)

    def log(self, level: str, message: str, **fields: Any) -> None:
        if LEVELS[level] < self.min_level:
            return
        record: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "run_id": self.run_id,
            "message": message,
        }
        record.update(redact({**self.context, **fields}))
        out = self._stream or sys.stderr
        print(json.dumps(record, ensure_ascii=False, default=str), file=out, flush=True)

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Bracket a pipeline stage with start/end records and its duration."""
        self.info("stage_start", stage=name)
        started = time.perf_counter()
        status = "ok"
        try:
            yield
        except BaseException as exc:
            status = "error"
            self.error("stage_error", stage=name, error=str(exc) or type(exc).__name__)
            raise
        finally:
            elapsed = int((time.perf_counter() - started) * 1000)
            self.stage_durations[name] = elapsed
            self.info("stage_end", stage=name, duration_ms=elapsed, status=status)

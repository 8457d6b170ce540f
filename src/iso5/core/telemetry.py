# src/iso5/core/telemetry.py
"""
Telemetry sink used by the scheduler.

Every event is forwarded to loguru (payload bound as `payload`) and kept in a
bounded in-memory buffer so status pages and exports can read recent history
without touching the log files.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import json
import time
from typing import Any, Literal

from loguru import logger
import pandas as pd

LogLevel = Literal["DEBUG", "INFO", "WARN", "ERROR"]

# loguru level names
_LOGURU_LEVEL: dict[str, str] = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARN": "WARNING",
    "ERROR": "ERROR",
}

EXPORT_COLUMNS: list[str] = ["timestamp", "level", "message", "data"]


@dataclass(frozen=True)
class LogEntry:
    level: LogLevel
    timestamp: int
    message: str
    data: Any = None


class Telemetry:
    """Leveled, fire-and-forget event sink with a ring buffer of recent entries."""

    def __init__(self, max_logs: int = 1000, name: str = "iso5") -> None:
        self.max_logs = int(max_logs)
        self._logs: deque[LogEntry] = deque(maxlen=self.max_logs)
        self._log = logger.bind(component=name)

    def log(self, level: LogLevel, message: str, data: Any = None) -> None:
        level = level.upper()  # type: ignore[assignment]
        if level not in _LOGURU_LEVEL:
            raise ValueError(f"unknown log level: {level}")

        entry = LogEntry(level=level, timestamp=int(time.time()), message=message, data=data)
        self._logs.append(entry)

        sink = self._log.bind(payload=data)
        if data is not None:
            sink.log(_LOGURU_LEVEL[level], "{} | {}", message, data)
        else:
            sink.log(_LOGURU_LEVEL[level], "{}", message)

    def debug(self, message: str, data: Any = None) -> None:
        self.log("DEBUG", message, data)

    def info(self, message: str, data: Any = None) -> None:
        self.log("INFO", message, data)

    def warn(self, message: str, data: Any = None) -> None:
        self.log("WARN", message, data)

    def error(self, message: str, data: Any = None) -> None:
        self.log("ERROR", message, data)

    # ------------------------------ reads ------------------------------

    def get_logs(self, level: LogLevel | None = None, limit: int | None = None) -> list[LogEntry]:
        result = list(self._logs)
        if level:
            result = [e for e in result if e.level == level.upper()]
        if limit:
            result = result[-limit:]
        return result

    def get_last_error(self) -> LogEntry | None:
        for entry in reversed(self._logs):
            if entry.level == "ERROR":
                return entry
        return None

    def export_csv(self) -> str:
        """CSV with columns timestamp,level,message,data (data JSON-encoded)."""
        rows = [
            {
                "timestamp": e.timestamp,
                "level": e.level,
                "message": e.message,
                "data": json.dumps(e.data, default=str) if e.data is not None else "",
            }
            for e in self._logs
        ]
        df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
        return df.to_csv(index=False)

    def clear(self) -> None:
        self._logs.clear()

    def __len__(self) -> int:
        return len(self._logs)

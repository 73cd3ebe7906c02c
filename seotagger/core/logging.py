"""Logging setup: console output at the configured level plus an in-memory flight recorder.

The flight recorder keeps the latest records of every level so that a failed batch
can be written out in full (``analyze --forensics``) even when the console only
showed warnings.
"""

import logging
import sys
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from seotagger.core.config import get_config

FLIGHT_LOG_CAPACITY = 10_000
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers kept at WARNING so they do not crowd the recorder.
QUIET_LOGGERS = ("urllib3", "PIL", "httpx", "multipart")

_flight_logger: "FlightLogger | None" = None


class FlightLogger(logging.Handler):
    """Ring buffer of formatted log lines; dump() writes them under forensics_dir."""

    def __init__(self, capacity: int = FLIGHT_LOG_CAPACITY, forensics_dir: str | Path = "logs/forensics") -> None:
        super().__init__(level=logging.DEBUG)
        self.forensics_dir = Path(forensics_dir)
        self._records: deque[logging.LogRecord] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def lines(self) -> list[str]:
        fmt = self.formatter or logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
        return [fmt.format(r) for r in list(self._records)]

    def dump(self, label: str, session_id: str | None = None) -> str:
        """Write the buffered lines to {label}[_{session_id}]_{utc timestamp}.log and return its path."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        parts = [label, session_id, stamp] if session_id else [label, stamp]
        target = self.forensics_dir / ("_".join(parts) + ".log")
        target.parent.mkdir(parents=True, exist_ok=True)
        text = "\n".join(self.lines())
        target.write_text(text + "\n" if text else "", encoding="utf-8")
        return str(target)


def get_flight_logger() -> FlightLogger | None:
    """The recorder installed by the last setup_logging() call, if any."""
    return _flight_logger


def setup_logging(level: str | None = None) -> FlightLogger:
    """
    Route all records to a fresh FlightLogger and those at `level` (default: log_level
    from config) or above to stderr. Safe to call repeatedly; earlier root handlers are
    replaced.
    """
    global _flight_logger
    settings = get_config()
    console_level = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)

    recorder = FlightLogger(forensics_dir=settings.forensics_dir)
    recorder.setFormatter(formatter)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.DEBUG)
    root.addHandler(console)
    root.addHandler(recorder)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _flight_logger = recorder
    return recorder

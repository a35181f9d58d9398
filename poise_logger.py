"""
Poise -- Structured Session Logger
===================================
Writes session events to a JSONL file for after-the-fact review of a
capture session.

Key Features:
  - JSONL (one JSON object per line)
  - Thread-safe appends, flushed per entry
  - Levels: SYSTEM, AUDIT, WARN, ERROR
  - NumPy scalars/arrays and dataclass payloads serialize transparently

Events written by ScoringSession:
  session_started, frame_processed (opt-in), session_stopped
"""

import dataclasses
import json
import logging
import os
import sys
import threading
import time
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np

_log = logging.getLogger("PoiseLogger")


class PoiseJSONEncoder(json.JSONEncoder):
    """Handles NumPy types, enums and dataclasses."""
    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, Enum):
            return obj.value
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        return super().default(obj)


class PoiseLogger:
    """Append-only JSONL event log for one or more sessions."""

    def __init__(self, log_dir: str = "logs", filename: str = "poise_session.jsonl"):
        self.log_dir = log_dir
        os.makedirs(self.log_dir, exist_ok=True)

        self.log_path = os.path.join(self.log_dir, filename)
        self._file = open(self.log_path, "a", encoding="utf-8")
        self._lock = threading.Lock()

        self.log({
            "event": "logger_opened",
            "python_version": sys.version,
            "platform": sys.platform,
        }, level="SYSTEM")

    @property
    def closed(self) -> bool:
        return self._file.closed

    def log(self, data: Dict[str, Any], level: str = "AUDIT", event: Optional[str] = None):
        """Append one entry. Entries after close() are dropped with a warning."""
        entry = {
            "timestamp": time.time(),
            "level": level,
            "event": event or data.get("event", "unknown"),
            "data": data,
        }
        line = json.dumps(entry, cls=PoiseJSONEncoder) + "\n"

        with self._lock:
            if self._file.closed:
                _log.warning(f"Dropping '{entry['event']}' entry: log file already closed")
                return
            self._file.write(line)
            self._file.flush()

    def log_frame(self, frame_data: Dict[str, Any]):
        self.log(frame_data, level="AUDIT", event="frame_processed")

    def warn(self, message: str, context: Optional[Dict] = None):
        """Log structured warning (also echoed to the console logger)."""
        _log.warning(message)
        self.log({"message": message, "context": context}, level="WARN", event="session_warning")

    def error(self, message: str, exception: Optional[Exception] = None):
        """Log structured error with exception details."""
        _log.error(message)
        err_details = str(exception) if exception else None
        self.log({"message": message, "exception": err_details}, level="ERROR", event="session_error")

    def close(self):
        if self._file.closed:
            return
        self.log({"message": "Logger shutting down"}, level="SYSTEM", event="logger_closed")
        with self._lock:
            self._file.close()

    def __enter__(self) -> "PoiseLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


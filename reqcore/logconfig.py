"""Access-log formatting and size/midnight rotating log files."""

from __future__ import annotations

import gzip
import json
import logging
import math
import os
import shutil
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from logging.handlers import RotatingFileHandler

ACCESS_LOGGER_NAME = "reqcore.access"
_DEFAULT_MAX_SIZE_MB = 100
_ROTATE_CHECK_SECONDS = 3600


@dataclass
class LoggerSettings:
    """Where and how to write logs; ``log_size`` is in megabytes."""

    log_path: str
    log_size: int = 0
    log_compress: bool = False
    skip_paths: list[str] = field(default_factory=list)
    header_name: str = ""


def _trim(value: float) -> str:
    return f"{value:.9f}".rstrip("0").rstrip(".")


def _format_duration(seconds: float) -> str:
    ns = round(seconds * 1e9)
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_trim(ns / 1e3)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_trim(ns / 1e6)}ms"
    hours, rest = divmod(ns, 3600 * 10**9)
    minutes, rest = divmod(rest, 60 * 10**9)
    text = sign
    if hours:
        text += f"{hours}h"
    if hours or minutes:
        text += f"{minutes}m"
    return text + f"{_trim(rest / 1e9)}s"


class AccessLogFormatter(logging.Formatter):
    """Formats access records (those carrying ``status``) as one request line."""

    def __init__(self, header_name: str = "") -> None:
        super().__init__("%(asctime)s %(message)s", "%Y/%m/%d %H:%M:%S")
        self.header_name = header_name

    def format(self, record: logging.LogRecord) -> str:
        status = getattr(record, "status", None)
        if status is None:
            return super().format(record)
        latency = float(getattr(record, "latency", 0.0))
        if latency > 60:
            latency = math.floor(latency)
        stamp = time.strftime("%Y/%m/%d - %H:%M:%S", time.localtime(record.created))
        client_ip = getattr(record, "client_ip", "")
        method = getattr(record, "method", "")
        path = json.dumps(getattr(record, "path", ""), ensure_ascii=False)
        error = getattr(record, "error", "")
        return (
            f"[{self.header_name}] {stamp} | {int(status):3d} | "
            f"{_format_duration(latency):>13} | {client_ip:>15} | "
            f"{method:<7}  {path}\n{error}"
        )


def should_skip(settings: LoggerSettings, path: str) -> bool:
    """True when ``path`` is one of the paths excluded from access logging."""
    return path in settings.skip_paths


class _SkipPathFilter(logging.Filter):
    def __init__(self, settings: LoggerSettings) -> None:
        super().__init__()
        self.settings = settings

    def filter(self, record: logging.LogRecord) -> bool:
        return not should_skip(self.settings, getattr(record, "path", ""))


class _RollingFileHandler(RotatingFileHandler):
    """Rolls over by size into timestamped backups, keeping every backup."""

    def __init__(self, settings: LoggerSettings) -> None:
        size_mb = settings.log_size if settings.log_size > 0 else _DEFAULT_MAX_SIZE_MB
        super().__init__(
            settings.log_path, maxBytes=size_mb * 1024 * 1024, encoding="utf-8"
        )
        self.compress = settings.log_compress
        self.stop_event = threading.Event()

    def _backup_name(self) -> str:
        root, ext = os.path.splitext(self.baseFilename)
        now = datetime.now()
        stamp = now.strftime("%Y-%m-%dT%H-%M-%S.") + f"{now.microsecond // 1000:03d}"
        candidate = f"{root}-{stamp}{ext}"
        counter = 1
        while os.path.exists(candidate) or os.path.exists(candidate + ".gz"):
            candidate = f"{root}-{stamp}-{counter}{ext}"
            counter += 1
        return candidate

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None
        if os.path.exists(self.baseFilename) and os.path.getsize(self.baseFilename) > 0:
            backup = self._backup_name()
            os.rename(self.baseFilename, backup)
            if self.compress:
                with open(backup, "rb") as src, gzip.open(backup + ".gz", "wb") as dst:
                    shutil.copyfileobj(src, dst)
                os.remove(backup)
        if not self.delay:
            self.stream = self._open()

    def close(self) -> None:
        self.stop_event.set()
        super().close()


def _rotate_at_midnight(handler: _RollingFileHandler) -> None:
    while not handler.stop_event.wait(_ROTATE_CHECK_SECONDS):
        now = datetime.now()
        if now.hour == 0:
            print("========= performe log-rotate", now.hour, now.minute, now.second)
            handler.acquire()
            try:
                handler.doRollover()
            except OSError as exc:
                print("========= error in log-rotate", exc)
            finally:
                handler.release()
        else:
            print("log-heart-beat", now.hour, now.minute, now.second)


def configure_logger(settings: LoggerSettings) -> logging.Logger:
    """Send all logging to a rotating file and return the access logger."""
    handler = _RollingFileHandler(settings)
    handler.setFormatter(AccessLogFormatter(settings.header_name))
    threading.Thread(target=_rotate_at_midnight, args=(handler,), daemon=True).start()

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.INFO)

    access = logging.getLogger(ACCESS_LOGGER_NAME)
    for existing in list(access.filters):
        access.removeFilter(existing)
    access.addFilter(_SkipPathFilter(settings))
    access.propagate = True
    return access
# src/taskpilot/logging_setup.py

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path

LOG_FILE_NAME = "taskpilot.log"

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Bearer tokens and credential-ish JSON fields.
_SECRET_RE = re.compile(
    r'(?i)(bearer\s+|"(?:token|password|newPassword|otp)"\s*:\s*")[^\s"]+'
)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console only sees:
    - taskpilot logs, except the reminder loop below WARNING (it polls constantly)
    - anything else (httpx, httpcore, py.warnings) at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("taskpilot."):
            if name.startswith("taskpilot.tasks.reminders"):
                return record.levelno >= logging.WARNING
            return True
        return record.levelno >= logging.ERROR


class _RedactSecretsFilter(logging.Filter):
    """Masks tokens and passwords in the rendered message, on every handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        redacted = _SECRET_RE.sub(r"\1***", msg)
        if redacted != msg:
            record.msg = redacted
            record.args = None
        return True


def resolve_level(level: str | int, default: int = logging.INFO) -> int:
    """'debug' / 'WARNING' / 10 -> logging level number; unknown names give `default`."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else default


def setup_logging(
    *,
    log_dir: str | Path | None = ".local/taskpilot",
    console_level: str | int = logging.INFO,
    file_level: str | int = logging.DEBUG,
) -> Path | None:
    """
    Console handler (filtered) plus, when `log_dir` is given, a full file log.

    Call once, before the first log line. Returns the log file path, if any.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)
    redact = _RedactSecretsFilter()

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(resolve_level(console_level))
    ch.setFormatter(fmt)
    ch.addFilter(redact)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    log_file: Path | None = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / LOG_FILE_NAME
        fh = logging.FileHandler(str(log_file), encoding="utf-8")
        fh.setLevel(resolve_level(file_level, logging.DEBUG))
        fh.setFormatter(fmt)
        fh.addFilter(redact)
        root.addHandler(fh)

    logging.captureWarnings(True)

    # httpx logs each request URL at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    return log_file

"""Console logging and append-only event log."""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from lapse.config import get_settings

LOG_FILE_NAME = "lapse_events.jsonl"
LOGGER_NAME = "lapse"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _setup_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False
    return logger


LOGGER = _setup_logger()


def setup_logging(level: int = logging.INFO, extra_loggers: Iterable[str] | None = None) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    LOGGER.setLevel(level)
    for logger_name in extra_loggers or []:
        logging.getLogger(logger_name).setLevel(level)


def _log_path() -> Path:
    settings = get_settings()
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / LOG_FILE_NAME


def log_event(data: Mapping[str, Any]) -> None:
    """Append a JSON event to the log file and emit console output."""

    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **data,
    }
    try:
        path = _log_path()
        with path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False, default=str))
            handle.write("\n")
    except OSError:
        # Logging is best-effort; avoid breaking the caller.
        pass

    kind = payload.get("kind", "event")
    if kind == "document_saved":
        LOGGER.info(
            "Saved time data | document=%s entries=%s total=%s",
            payload.get("document_id"),
            payload.get("entries"),
            payload.get("total"),
        )
    elif kind == "report":
        LOGGER.info(
            "Report evaluated | group_by=%s matches=%s total=%s",
            payload.get("group_by"),
            payload.get("matches"),
            payload.get("total"),
        )
    else:
        LOGGER.info("%s | %s", kind, {k: v for k, v in payload.items() if k != "timestamp"})


__all__ = ["log_event", "setup_logging", "LOGGER", "LOGGER_NAME"]

"""
Core Module - Logging Setup.

Configures output for applications embedding the engine.
Library modules only ever call logging.getLogger(__name__).

Environment:
    LOG_LEVEL   default level when none is passed (INFO)
    LOG_FORMAT  "text" or "json" (text)
"""

import json
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv


ENGINE_LOGGERS = (
    "ledger_adapters",
    "provenance",
    "confidence_scoring",
    "verification_requests",
    "database",
)

# request/connection chatter from third-party clients
QUIET_LOGGERS = ("aiohttp.access", "aiohttp.client", "sqlalchemy.engine")


def _build_formatter(log_format: str, correlation_id: Optional[str]) -> logging.Formatter:
    tag = correlation_id or "-"
    if log_format == "json":
        template = json.dumps({
            "ts": "%(asctime)s",
            "level": "%(levelname)s",
            "logger": "%(name)s",
            "correlation_id": tag,
            "msg": "%(message)s",
        })
        return logging.Formatter(template)
    return logging.Formatter(f"%(asctime)s %(levelname)-7s [{tag}] %(name)s: %(message)s")


def setup_logging(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> logging.Logger:
    """
    Route every engine logger to a single stdout handler.

    Args:
        level: Level name; falls back to LOG_LEVEL, then INFO.
            Unknown names are treated as INFO.
        log_format: "json" or "text"; falls back to LOG_FORMAT
        correlation_id: Tag stamped on every line, e.g. a product lookup id

    Returns:
        The "provenance" logger
    """
    load_dotenv()
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(level_name)
    if not isinstance(resolved, int):
        resolved = logging.INFO
    log_format = (log_format or os.getenv("LOG_FORMAT", "text")).lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter(log_format, correlation_id))

    root = logging.getLogger()
    root.setLevel(resolved)
    root.handlers = [handler]

    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(resolved)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))

    return logging.getLogger("provenance")

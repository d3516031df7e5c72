"""Logging for pipeline runs: one `topicgraph` logger tree, console and/or rotating file."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from topicgraph.config import LoggingSettings, Settings

PACKAGE_LOGGER = "topicgraph"

# Per-request chatter from the HTTP, S3 and model-loading stacks.
_CHATTY_LOGGERS = ("httpx", "httpcore", "botocore", "boto3", "urllib3", "sentence_transformers")


def _log_file(cfg: LoggingSettings, log_dir: str) -> Path | None:
    if not cfg.file:
        return None
    path = Path(str(cfg.file))
    return path if path.is_absolute() else Path(log_dir) / path


def _handlers(cfg: LoggingSettings, log_dir: str) -> list[logging.Handler]:
    out: list[logging.Handler] = []
    if cfg.console:
        out.append(logging.StreamHandler())
    path = _log_file(cfg, log_dir)
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        out.append(
            RotatingFileHandler(
                path,
                maxBytes=int(cfg.max_bytes),
                backupCount=int(cfg.backup_count),
                encoding="utf-8",
            )
        )
    return out


def setup_logging(settings: Settings) -> logging.Logger:
    """Attach handlers to the package logger once and return it.

    Step and provider loggers (`topicgraph.steps.*`, `topicgraph.providers.*`)
    inherit from it. Third-party request loggers are held at WARNING unless the
    run itself is at DEBUG. Repeated calls return the configured logger as is.
    """
    root = logging.getLogger(PACKAGE_LOGGER)
    if getattr(root, "_topicgraph_configured", False):
        return root

    cfg = settings.logging
    level = getattr(logging, str(cfg.level or "INFO").upper(), logging.INFO)
    formatter = logging.Formatter(fmt=str(cfg.format), datefmt=str(cfg.datefmt))

    handlers = _handlers(cfg, settings.log_dir)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    root.setLevel(level)
    root.handlers = handlers
    root.propagate = False
    if level > logging.DEBUG:
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    setattr(root, "_topicgraph_configured", True)
    root.debug("logging configured (level=%s, handlers=%s)", logging.getLevelName(level), len(handlers))
    return root

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Mapping

DEBUG_ENV = "SAY_SERIF_DEBUG"
LOG_PATH_ENV = "SAY_SERIF_LOG_PATH"
DEFAULT_LOG_PATH = Path("tmp") / "boot.log"
LOG_FORMAT = "[say-serif] %(message)s"

ROOT_LOGGER = "say_serif"


def debug_enabled(env: Mapping[str, str] | None = None) -> bool:
    env = os.environ if env is None else env
    return env.get(DEBUG_ENV) == "1"


def configure_debug_logging(env: Mapping[str, str] | None = None,
                            force: bool = False) -> logging.Logger:
    """
    Route the package's diagnostics to stderr and an append-only file.

    Enabled when SAY_SERIF_DEBUG=1 (or ``force``). The file defaults to
    tmp/boot.log and can be moved with SAY_SERIF_LOG_PATH. If the file
    cannot be opened we keep the stderr handler only; a broken debug sink
    must never take down request handling.

    Returns the package root logger so apps can log through it.
    """
    env = os.environ if env is None else env
    logger = logging.getLogger(ROOT_LOGGER)
    if not (force or debug_enabled(env)):
        return logger
    if getattr(logger, "_say_serif_configured", False):
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)

    path = Path(env.get(LOG_PATH_ENV) or DEFAULT_LOG_PATH)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        logger.warning("debug log file unavailable (%s): %s", path, exc)
    else:
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG)
    logger._say_serif_configured = True  # type: ignore[attr-defined]
    return logger

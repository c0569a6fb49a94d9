"""Unified logging utilities for dockgen."""
from __future__ import annotations

import logging
import os
import sys

from ..config.env_adapter import get_bool, get_csv

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
# Minimal console format (message only) used for cleaner terminal output.
MINIMAL_CONSOLE_FORMAT = '%(message)s'

SUPPRESSED_LOGGERS = [
    'urllib3', 'asyncio', 'markdown_it',
]


def setup_logging(level: str = 'INFO', log_file: str | None = None, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """Configure root logging.

    Console handler writes to stdout with the message-only format; set
    DOCKGEN_VERBOSE_CONSOLE=1 to restore the full DEFAULT_FORMAT, or pass an
    explicit ``fmt``. The optional file handler always uses DEFAULT_FORMAT.
    Extra loggers to quiet can be listed in DOCKGEN_QUIET_LOGGERS.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(log_level)
    # Remove existing handlers to avoid duplication on re-init
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.flush()
        h.close()

    if fmt != DEFAULT_FORMAT:
        console_fmt = fmt
    elif get_bool('DOCKGEN_VERBOSE_CONSOLE'):
        console_fmt = DEFAULT_FORMAT
    else:
        console_fmt = MINIMAL_CONSOLE_FORMAT

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(logging.Formatter(console_fmt))
    root.addHandler(console)

    if log_file:
        try:
            os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
            fh = logging.FileHandler(log_file, encoding='utf-8')
        except OSError as e:
            root.error("Failed to create log file handler for %s: %s", log_file, e)
        else:
            fh.setLevel(log_level)
            fh.setFormatter(logging.Formatter(DEFAULT_FORMAT))
            root.addHandler(fh)

    for name in SUPPRESSED_LOGGERS + get_csv('DOCKGEN_QUIET_LOGGERS'):
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


__all__ = ["setup_logging", "DEFAULT_FORMAT", "MINIMAL_CONSOLE_FORMAT"]

"""Logging setup shared by the pytest plugin and ad-hoc harness scripts."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_installed: List[logging.Handler] = []


def configure_logging(level: str = "INFO", log_file: Optional[Path | str] = None) -> logging.Logger:
    """Install a stream handler and, optionally, a file handler on the package logger.

    Calling it again replaces the handlers installed by the previous call, so the
    plugin can re-apply settings after ``--cfg log.level=...`` without duplicating
    output.
    """
    root = logging.getLogger("authflow_e2e")
    for handler in _installed:
        root.removeHandler(handler)
        handler.close()
    _installed.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    _installed.append(stream)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        _installed.append(file_handler)

    for handler in _installed:
        root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    return root

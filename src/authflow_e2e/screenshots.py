"""Best-effort screenshot capture.

Capture is bounded by ``screenshot.timeout.seconds``. Any failure is logged
and swallowed so it can never replace the error of the test being recorded.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

import anyio

from authflow_e2e.config import ConfigStore
from authflow_e2e.records import Artifact
from authflow_e2e.session import Session

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_]")


def sanitize(name: str) -> str:
    """Reduce a test name to ``[A-Za-z0-9_]``."""
    return _UNSAFE.sub("_", name)


def screenshot_path(directory: Path, name: str, now: Optional[datetime] = None) -> Path:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return directory / f"{sanitize(name)}_{stamp}.png"


async def capture(session: Session, name: str, settings: Optional[ConfigStore] = None) -> Optional[Artifact]:
    """Save a full-page screenshot; returns None when disabled or on any failure."""
    settings = settings or session.settings
    if not settings.capture_screenshots:
        return None
    path = screenshot_path(settings.screenshot_dir, name)
    try:
        with anyio.fail_after(settings.screenshot_timeout):
            data = await session.page.screenshot(full_page=True)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except Exception as exc:
        logger.warning(f"Failed to capture screenshot for test: {name}: {type(exc).__name__}: {exc}")
        return None
    logger.info(f"Screenshot captured: {path}")
    return Artifact(path=path, data=data, description=name)


async def capture_failure(session: Session, test_name: str, settings: Optional[ConfigStore] = None) -> Optional[Artifact]:
    settings = settings or session.settings
    if not settings.screenshot_on_failure:
        return None
    return await capture(session, f"{test_name}_FAILED", settings)


async def capture_pass(session: Session, test_name: str, settings: Optional[ConfigStore] = None) -> Optional[Artifact]:
    settings = settings or session.settings
    if not settings.screenshot_on_pass:
        return None
    return await capture(session, f"{test_name}_PASSED", settings)

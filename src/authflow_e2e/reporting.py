"""Suite report sink.

One HTML report per suite run under ``report.path`` plus Allure-compatible
result files under ``allure.results.directory``. Within a process all writes
go through one lock; across worker processes each record is a separate file
and the HTML report is rendered once by the owning process.
"""
from __future__ import annotations

import base64
import getpass
import hashlib
import json
import logging
import platform
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, PackageLoader

from authflow_e2e.config import ConfigStore, get_settings
from authflow_e2e.records import Outcome, TestRecord

logger = logging.getLogger(__name__)


def _millis(moment: Optional[datetime]) -> int:
    return int(moment.timestamp() * 1000) if moment else 0


def system_metadata(settings: ConfigStore) -> Dict[str, str]:
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "unknown"
    return {
        "Application": settings.report_product,
        "Environment": settings.environment,
        "User": user,
        "OS": platform.platform(),
        "Python Version": platform.python_version(),
        "Browser": settings.browser,
        "Base URL": settings.get("base.url", ""),
    }


class ReportSink:
    """Append-only collector of finalized Test Records.

    A worker sink (``worker_id`` set) renders no HTML. It writes each record as
    a JSON part under ``parts_dir`` next to its Allure result. The sink that
    owns the HTML report merges every part when it closes, so records from
    parallel worker processes end up in one report.
    """

    def __init__(
        self,
        settings: Optional[ConfigStore] = None,
        parts_dir: Optional[Path] = None,
        worker_id: Optional[str] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.parts_dir = parts_dir
        self.worker_id = worker_id
        self.records: List[TestRecord] = []
        self.views: List[Dict[str, Any]] = []
        self.metadata: Dict[str, str] = {}
        self.path: Optional[Path] = None
        self.started_at: Optional[datetime] = None
        self.is_open = False
        self._lock = threading.Lock()
        self._env = Environment(loader=PackageLoader("authflow_e2e", "templates"), autoescape=True)

    @property
    def allure_dir(self) -> Path:
        return self.settings.allure_results_dir

    @property
    def is_worker(self) -> bool:
        return self.worker_id is not None

    def open(self) -> Optional[Path]:
        with self._lock:
            self.started_at = datetime.now()
            self.metadata = system_metadata(self.settings)
            self.allure_dir.mkdir(parents=True, exist_ok=True)
            if self.is_worker and self.parts_dir is not None:
                self.parts_dir.mkdir(parents=True, exist_ok=True)
            self.is_open = True
            if self.is_worker:
                logger.info(f"Worker {self.worker_id} reporting into {self.parts_dir}")
                return None
            stamp = self.started_at.strftime("%Y%m%d_%H%M%S")
            report_dir = self.settings.report_path
            report_dir.mkdir(parents=True, exist_ok=True)
            self.path = report_dir / f"{self.settings.report_product}_TestReport_{stamp}.html"
            self._write_environment()
            self._render()
        logger.info(f"Test report initialized: {self.path}")
        return self.path

    def add(self, record: TestRecord) -> None:
        with self._lock:
            if not self.is_open:
                logger.warning(f"Report sink is not open; '{record.name}' is not reported")
                return
            view = self._record_view(record)
            self.records.append(record)
            self.views.append(view)
            self._write_allure_result(record)
            if self.is_worker and self.parts_dir is not None:
                self._write_part(view)

    def flush(self) -> None:
        with self._lock:
            if self.is_open and not self.is_worker:
                self._render()

    def close(self) -> Optional[Path]:
        with self._lock:
            if not self.is_open:
                return None
            self.is_open = False
            if self.is_worker:
                return None
            self._merge_parts()
            self._render()
        logger.info(f"Test report written: {self.path}")
        return self.path

    # ---- summary ---------------------------------------------------------------
    def summary(self) -> Dict[str, int]:
        counts = {outcome.value: 0 for outcome in Outcome}
        for view in self.views:
            if view["status"] in counts:
                counts[view["status"]] += 1
        counts["total"] = len(self.views)
        return counts

    # ---- writers (caller holds the lock) ---------------------------------------
    def _write_part(self, view: Dict[str, Any]) -> None:
        target = self.parts_dir / f"{view['uuid']}.json"
        partial = target.with_suffix(".tmp")
        partial.write_text(json.dumps(view), encoding="utf-8")
        # atomic rename
        partial.replace(target)

    def _merge_parts(self) -> None:
        if self.parts_dir is None or not self.parts_dir.is_dir():
            return
        known = {view["uuid"] for view in self.views}
        merged = []
        for part in sorted(self.parts_dir.glob("*.json")):
            view = json.loads(part.read_text(encoding="utf-8"))
            if view["uuid"] not in known:
                known.add(view["uuid"])
                merged.append(view)
        self.views.extend(merged)
        self.views.sort(key=lambda view: view["started"])
        if merged:
            logger.info(f"Merged {len(merged)} records from {self.parts_dir}")

    def _render(self) -> None:
        template = self._env.get_template("report.html")
        html = template.render(
            title=f"{self.settings.report_product} Test Report",
            metadata=self.metadata,
            started_at=self.started_at,
            generated_at=datetime.now(),
            summary=self.summary(),
            records=self.views,
        )
        if self.path is None:
            raise RuntimeError("Report sink has no output path; call open() first")
        self.path.write_text(html, encoding="utf-8")

    def _record_view(self, record: TestRecord) -> Dict[str, Any]:
        images = []
        for artifact in record.artifacts:
            images.append(
                {
                    "description": artifact.description,
                    "path": str(artifact.path.resolve()) if artifact.path else "",
                    "b64": base64.b64encode(artifact.data).decode("ascii") if artifact.data else "",
                    "mime_type": artifact.mime_type,
                }
            )
        return {
            "uuid": record.uuid,
            "started": _millis(record.started_at),
            "worker": self.worker_id or "",
            "name": record.name,
            "group": record.group,
            "description": record.description,
            "author": record.author or self.settings.report_author,
            "categories": record.categories or ([record.group] if record.group else []),
            "status": record.outcome.value if record.outcome else "unknown",
            "attempts": record.attempts,
            "retries": record.retries,
            "duration": f"{record.duration:.2f}s",
            "error_message": record.error_message,
            "traceback": record.traceback,
            "skip_reason": record.skip_reason,
            "images": images,
        }

    def _write_environment(self) -> None:
        lines = [f"{key.replace(' ', '.')}={value}" for key, value in self.metadata.items()]
        (self.allure_dir / "environment.properties").write_text("\n".join(lines) + "\n", encoding="utf-8")

    def _write_allure_result(self, record: TestRecord) -> None:
        attachments = []
        for artifact in record.artifacts:
            if not artifact.data:
                continue
            source = f"{uuid.uuid4()}-attachment.png"
            (self.allure_dir / source).write_bytes(artifact.data)
            attachments.append({"name": artifact.description, "source": source, "type": artifact.mime_type})

        labels = [
            {"name": "framework", "value": "pytest"},
            {"name": "owner", "value": record.author or self.settings.report_author},
        ]
        if record.group:
            labels.append({"name": "suite", "value": record.group})
        labels.extend({"name": "tag", "value": category} for category in record.categories)

        status_details: Dict[str, Any] = {}
        if record.outcome in (Outcome.FAILED, Outcome.BROKEN):
            status_details = {"message": record.error_message, "trace": record.traceback}
        elif record.outcome is Outcome.SKIPPED:
            status_details = {"message": record.skip_reason}

        result = {
            "uuid": record.uuid,
            "historyId": hashlib.md5(record.full_name.encode("utf-8")).hexdigest(),
            "name": record.name,
            "fullName": record.full_name,
            "description": record.description,
            "status": record.outcome.value if record.outcome else "unknown",
            "statusDetails": status_details,
            "stage": "finished",
            "start": _millis(record.started_at),
            "stop": _millis(record.finished_at),
            "labels": labels,
            "attachments": attachments,
            "parameters": [{"name": "attempts", "value": str(record.attempts)}],
        }
        target = self.allure_dir / f"{record.uuid}-result.json"
        target.write_text(json.dumps(result, indent=2), encoding="utf-8")
        logger.debug(f"Allure result written: {target}")

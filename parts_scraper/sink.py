# sink.py
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import orjson

from .config import Settings
from .schema import BatchResult

logger = logging.getLogger(__name__)


def results_path(results_dir: Path, run_date: str) -> Path:
    return Path(results_dir) / f"scrapedProducts_{run_date}.json"


def failed_path(failed_dir: Path, run_date: str) -> Path:
    return Path(failed_dir) / f"failedLinks_{run_date}.json"


def error_log_path(logs_dir: Path, run_date: str) -> Path:
    return Path(logs_dir) / f"scraping_errors_{run_date}.log"


def _write_json(path: Path, obj):
    # temp file + rename so a crash never leaves half an artifact behind
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_bytes(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


@dataclass
class SinkReport:
    results_file: Optional[Path] = None
    failed_file: Optional[Path] = None
    errors: Dict[str, str] = field(default_factory=dict)   # artifact -> error

    @property
    def ok(self) -> bool:
        return not self.errors


class ResultSink:
    def __init__(self, settings: Settings):
        self.settings = settings

    def log_error(self, url: str, message: str, run_date: str):
        """Append one line to the day's diagnostic log."""
        path = error_log_path(self.settings.logs_dir, run_date)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(f"{run_date} - URL: {url} - Error: {message}\n")
        except OSError:
            logger.exception("[SINK] Could not append to %s", path)

    def succeeded_rows(self, result: BatchResult) -> List[dict]:
        rows = []
        for item in result.succeeded:
            row = {"url": item.url}
            if self.settings.include_product_id:
                row["id"] = item.id
            row["data"] = item.record.to_output()
            rows.append(row)
        return rows

    def failed_rows(self, result: BatchResult) -> List[dict]:
        return [
            {"url": f.url, "timestamp": f.timestamp, "reason": f.reason.value, "error": f.error}
            for f in result.failed
        ]

    def write(self, result: BatchResult) -> SinkReport:
        report = SinkReport()
        run_date = result.run_date

        path = results_path(self.settings.results_dir, run_date)
        try:
            _write_json(path, self.succeeded_rows(result))
            report.results_file = path
            logger.info("[SINK] Scraped data saved to %s", path)
        except OSError as e:
            report.errors["results"] = str(e)
            logger.exception("[SINK] Failed to write %s", path)

        for item in result.failed:
            self.log_error(item.url, item.error, run_date)

        failed = self.failed_rows(result)
        if not failed:
            logger.info("[SINK] No failed links to save.")
            return report

        path = failed_path(self.settings.failed_dir, run_date)
        try:
            _write_json(path, failed)
            report.failed_file = path
            logger.info("[SINK] Failed links saved to %s", path)
        except OSError as e:
            report.errors["failed"] = str(e)
            logger.exception("[SINK] Failed to write %s", path)
        return report

import asyncio
import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from .config import Settings, get_settings
from .errors import TargetSourceError
from .extractor import extract_product
from .fetcher import RenderSession, SessionManager
from .normalizer import make_id, product_id
from .retry import RetryController, Sleep
from .schema import BatchResult, ExtractionOutcome, Failure, FailureReason, Target
from .sink import ResultSink, SinkReport
from .targets import load_targets

logger = logging.getLogger(__name__)


def today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


class RunState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    DRAINING = "draining"
    DONE = "done"


class Orchestrator:
    """
    Walks the target list one page at a time. Every `batch_size` targets the
    render session is recycled; retries live in RetryController, so a target
    that still fails here is recorded and the run moves on.
    """

    def __init__(
        self,
        settings: Settings,
        targets: List[Target],
        sessions: Optional[SessionManager] = None,
        sink: Optional[ResultSink] = None,
        sleep: Sleep = asyncio.sleep,
        run_date: Optional[str] = None,
    ):
        self.settings = settings
        self.targets = list(targets)
        self.run_date = run_date or today()
        self.sessions = sessions or SessionManager(lambda: RenderSession(settings))
        self.sink = sink or ResultSink(settings)
        self._sleep = sleep
        self.retry = RetryController(settings, self.sessions, self._extract, sleep=sleep)
        self.result = BatchResult(self.run_date)
        self.report: Optional[SinkReport] = None
        self.state = RunState.IDLE

    def _extract(self, html: str, url: str):
        return extract_product(html, url, self.run_date, self.settings.keep_unclassified)

    def _product_id(self, url: str, name: str) -> str:
        return product_id(url, self.settings.id_marker) or make_id(url, name)

    async def _ensure_session(self):
        try:
            await self.sessions.open()
        except Exception:
            logger.exception("[SESSION] Could not open render session")

    async def _recycle(self):
        try:
            await self.sessions.recycle()
        except Exception:
            logger.exception("[SESSION] Recycle failed; will retry opening on next target")

    async def _process(self, i: int, target: Target) -> ExtractionOutcome:
        url = target.url
        if i and i % self.settings.batch_size == 0:
            await self._recycle()
        if i:
            await self._sleep(self.settings.request_delay_ms / 1000)

        logger.info("[JOB] FETCH → (%d/%d) %s", i + 1, len(self.targets), url)
        try:
            await self._ensure_session()
            outcome = await self.retry.attempt(target)
        except Exception as e:
            logger.exception("[JOB] ERR  → %s", url)
            outcome = Failure(FailureReason.EXTRACTION_ERROR, message=f"{type(e).__name__}: {e}")

        pid = None
        if outcome.ok:
            record = outcome.record
            pid = self._product_id(url, record.product_name)
            for note in record.diagnostics:
                self.sink.log_error(url, note, self.run_date)
            logger.info("[JOB] OK   → %s | %s | %d images", pid, record.product_name, len(record.images))
        else:
            logger.info("[JOB] FAIL → %s | %s", url, outcome.detail)

        self.result.record(target, outcome, pid)
        return outcome

    async def run(self) -> BatchResult:
        if self.state is not RunState.IDLE:
            raise RuntimeError("an Orchestrator runs once; build a new one per run")

        logger.info("[INIT] Starting scrape run %s with %d targets", self.run_date, len(self.targets))
        self.state = RunState.PROCESSING
        try:
            for i, target in enumerate(self.targets):
                await self._process(i, target)
        finally:
            self.state = RunState.DRAINING
            try:
                await self.sessions.close()
            except Exception:
                logger.exception("[SHUTDOWN] Error closing render session")

        self.report = self.sink.write(self.result)
        self.state = RunState.DONE
        logger.info(
            "[DONE] %d succeeded, %d failed, %d session recycle(s)",
            len(self.result.succeeded), len(self.result.failed), self.sessions.recycles,
        )
        return self.result


async def main(limit: Optional[int] = None, settings: Optional[Settings] = None) -> BatchResult:
    settings = settings or get_settings()
    targets = load_targets(settings.targets_path, settings.url_field, limit=limit)
    return await Orchestrator(settings, targets).run()


def cli(argv=None) -> int:
    #   python -m parts_scraper.scrape        -> scrape every target
    #   python -m parts_scraper.scrape 50     -> scrape the first 50
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    argv = sys.argv[1:] if argv is None else argv
    try:
        limit = int(argv[0]) if argv else None
    except ValueError:
        logger.error("[INIT] limit must be an integer, got %r", argv[0])
        return 2

    try:
        asyncio.run(main(limit))
    except (TargetSourceError, RuntimeError) as e:
        logger.error("[INIT] %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(cli())

# retry.py
"""
Bounded retry around one target.

An attempt is navigate -> wait for the content marker -> read and extract.
Only AttemptError subclasses are retried; the outcome of each failed
attempt is discarded except for the last one, which is reported as the
cause once the limit is reached.
When an attempt reports that the browser behind the session died, the
session is recycled before the next attempt.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .config import Settings
from .errors import AttemptError, PageExtractionError
from .fetcher import SessionManager
from .schema import ExtractionOutcome, Failure, FailureReason, ProductRecord, Success, Target

logger = logging.getLogger(__name__)

Extract = Callable[[str, str], ProductRecord]
Sleep = Callable[[float], Awaitable[None]]


class RetryController:
    def __init__(
        self,
        settings: Settings,
        sessions: SessionManager,
        extract: Extract,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings
        self.sessions = sessions
        self.extract = extract
        self._sleep = sleep

    async def _attempt_once(self, url: str) -> ProductRecord:
        s = self.settings
        session = self.sessions.session
        await session.navigate(url, s.navigation_timeout_ms)
        await session.wait_for(url, s.content_selector, s.content_timeout_ms)
        html = await session.content(url)
        try:
            return self.extract(html, url)
        except Exception as e:
            raise PageExtractionError(url, f"{type(e).__name__}: {e}") from e

    async def _replace_session(self):
        logger.warning("[RETRY] Render session is gone; recycling before the next attempt")
        try:
            await self.sessions.recycle()
        except Exception:
            logger.exception("[RETRY] Could not replace the render session")

    async def attempt(self, target: Target) -> ExtractionOutcome:
        limit = self.settings.retry_limit
        last: Optional[AttemptError] = None

        for n in range(1, limit + 1):
            try:
                record = await self._attempt_once(target.url)
                if n > 1:
                    logger.info("[RETRY] %s succeeded on attempt %d/%d", target.url, n, limit)
                return Success(record, attempts=n)
            except AttemptError as e:
                last = e
                logger.warning("[RETRY] Attempt %d/%d failed for %s: %s", n, limit, target.url, e)
                if e.session_lost:
                    await self._replace_session()

            if n < limit:
                await self._sleep(self.settings.retry_delay_ms / 1000)

        return Failure(
            reason=FailureReason.RETRIES_EXHAUSTED,
            message=last.message,
            cause=last.reason,
            attempts=limit,
        )

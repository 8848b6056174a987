# errors.py
from .schema import FailureReason


class ScrapeError(Exception):
    pass


class TargetSourceError(ScrapeError):
    """Input list is unreadable or malformed. Fatal to the run."""


class AttemptError(ScrapeError):
    """
    One attempt at a target failed. The retry controller catches these;
    anything else escaping an attempt is treated as a bug in the page.
    """

    reason = FailureReason.EXTRACTION_ERROR

    def __init__(self, url: str, message: str, session_lost: bool = False):
        self.url = url
        self.message = message
        # the page or browser behind the session is gone; retrying on it is pointless
        self.session_lost = session_lost
        super().__init__(f"{self.reason.value}: {message}")


class NavigationTimeout(AttemptError):
    reason = FailureReason.NAVIGATION_TIMEOUT


class NavigationFailed(AttemptError):
    reason = FailureReason.NAVIGATION_FAILED


class ContentNotFound(AttemptError):
    reason = FailureReason.CONTENT_NOT_FOUND


class PageExtractionError(AttemptError):
    reason = FailureReason.EXTRACTION_ERROR

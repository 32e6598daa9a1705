"""User-facing, non-blocking notifications raised by the engine."""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class NoticeKind(str, Enum):
    SWIPE_LIMIT_REACHED = "swipe_limit_reached"
    SWIPE_FAILED = "swipe_failed"
    REWIND_FAILED = "rewind_failed"
    FEED_EXHAUSTED = "feed_exhausted"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    message: str
    job_id: Optional[str] = None


Notifier = Callable[[Notice], None]


def log_notice(notice: Notice) -> None:
    """Default notifier: write the notice to the log."""
    logger.info("Notice [%s]: %s", notice.kind.value, notice.message)


def safe_notify(notifier: Notifier, notice: Notice) -> None:
    """Deliver a notice without letting a broken UI callback escape."""
    try:
        notifier(notice)
    except Exception as e:
        logger.error("Notifier failed for %s: %s", notice.kind.value, e, exc_info=True)

"""Application observer slots."""

import logging
from typing import Any, Callable, Optional

from .status import StatusCode

logger = logging.getLogger(__name__)

StatusHandler = Callable[[StatusCode, Any], None]
MarketDataHandler = Callable[[dict], None]
NewsHandler = Callable[[str, Any], None]


class Observers:
    """
    Holds the optional status, market data and news handlers.

    Each slot is empty until a callable is registered; dispatch checks the
    slot before invoking it, so an empty slot turns an event into a no-op.
    """

    def __init__(self):
        self.status: Optional[StatusHandler] = None
        self.market_data: Optional[MarketDataHandler] = None
        self.news: Optional[NewsHandler] = None

    def register(self, slot: str, handler: Any) -> bool:
        """Set a handler slot. Non-callables are ignored."""
        if not callable(handler):
            logger.warning(f"Ignoring non-callable {slot} handler: {handler!r}")
            return False
        setattr(self, slot, handler)
        return True

    def notify_status(self, code: StatusCode, payload: Any = None):
        if self.status is not None:
            self.status(code, payload)

    def notify_news(self, name: str, story: Any):
        if self.news is not None:
            self.news(name, story)

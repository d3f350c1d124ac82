"""Per-paragraph debounce scheduling.

Every paragraph id gets its own timer, so a paragraph that keeps changing
never delays the analysis of another one.
"""

import asyncio
from typing import Callable, Dict, Iterable, Optional

from hyperdrafter.models.paragraph import Paragraph
from hyperdrafter.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_QUIET_PERIOD = 1.0  # seconds


class DebounceScheduler:
    """
    Turn a stream of content changes into one "ready" signal per paragraph.

    A paragraph is ready once its content has been stable, and non-blank,
    for the quiet period. Must be used from a running asyncio event loop.

    Example:
        >>> scheduler = DebounceScheduler(on_ready=dispatcher.trigger, quiet_period=1.0)
        >>> scheduler.observe("p1", "Cats are")
        >>> scheduler.observe("p1", "Cats are better than dogs.")
        >>> # ~1s later: dispatcher.trigger("p1") is called once
    """

    def __init__(
        self,
        on_ready: Callable[[str], None],
        quiet_period: float = DEFAULT_QUIET_PERIOD,
    ) -> None:
        """
        Args:
            on_ready: Called with the paragraph id when its timer expires
            quiet_period: Seconds of stable content required
        """
        self.on_ready = on_ready
        self.quiet_period = quiet_period
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._last_content: Dict[str, str] = {}
        self._closed = False

    def observe(self, paragraph_id: str, content: str) -> None:
        """
        Record the latest content of a paragraph.

        Unchanged content is ignored. Changed content restarts the
        paragraph's timer; blank content cancels it without rescheduling.
        """
        if self._closed:
            return

        if content == self._last_content.get(paragraph_id, ""):
            return

        self._cancel_timer(paragraph_id)
        self._last_content[paragraph_id] = content

        if not content.strip():
            logger.debug("debounce_cancelled_blank", paragraph_id=paragraph_id)
            return

        loop = asyncio.get_running_loop()
        self._timers[paragraph_id] = loop.call_later(self.quiet_period, self._fire, paragraph_id)
        logger.debug(
            "debounce_scheduled",
            paragraph_id=paragraph_id,
            quiet_period=self.quiet_period,
        )

    def cancel(self, paragraph_id: str) -> bool:
        """
        Cancel a pending timer but keep the remembered content.

        Used when the paragraph is analyzed right away by an explicit trigger.

        Returns:
            True if a timer was pending
        """
        pending = paragraph_id in self._timers
        self._cancel_timer(paragraph_id)
        return pending

    def forget(self, paragraph_id: str) -> None:
        """Drop a deleted paragraph: cancel its timer and its remembered content."""
        self._cancel_timer(paragraph_id)
        self._last_content.pop(paragraph_id, None)

    def sync(self, paragraphs: Iterable[Paragraph]) -> None:
        """
        Observe a full paragraph list.

        Paragraph ids that are tracked but missing from the list are forgotten.
        """
        current_ids = set()
        for paragraph in paragraphs:
            current_ids.add(paragraph.id)
            self.observe(paragraph.id, paragraph.content)

        for paragraph_id in set(self._last_content) | set(self._timers):
            if paragraph_id not in current_ids:
                self.forget(paragraph_id)

    def is_pending(self, paragraph_id: str) -> bool:
        return paragraph_id in self._timers

    @property
    def pending_ids(self) -> frozenset[str]:
        return frozenset(self._timers)

    def shutdown(self) -> None:
        """Cancel every pending timer; later events are ignored."""
        self._closed = True
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._last_content.clear()
        logger.debug("debounce_shutdown")

    def _cancel_timer(self, paragraph_id: str) -> None:
        handle: Optional[asyncio.TimerHandle] = self._timers.pop(paragraph_id, None)
        if handle is not None:
            handle.cancel()

    def _fire(self, paragraph_id: str) -> None:
        self._timers.pop(paragraph_id, None)
        if self._closed:
            return

        logger.debug("debounce_ready", paragraph_id=paragraph_id)
        try:
            self.on_ready(paragraph_id)
        except Exception as e:
            # Runs as a loop callback: there is no caller to propagate to
            logger.error(
                "debounce_ready_callback_failed",
                paragraph_id=paragraph_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

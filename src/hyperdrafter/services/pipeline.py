"""Incremental analysis pipeline wiring.

```
ParagraphStore ──change events──► AnalysisPipeline
                                    ├─ updated ─► dispatcher.content_changed()  (sync clear)
                                    │             scheduler.observe()
                                    ├─ created ─► scheduler.observe()
                                    └─ deleted ─► scheduler.forget()
                                                  dispatcher.paragraph_deleted()
DebounceScheduler ──ready──► dispatcher.trigger()
paragraph_split() ─────────► dispatcher.trigger()   (no debounce wait)
```
"""

import asyncio
from typing import List, Optional

from hyperdrafter.models.config import AnalysisConfig
from hyperdrafter.services.cancellation import CancellationToken
from hyperdrafter.services.debounce import DebounceScheduler
from hyperdrafter.services.dispatcher import AnalysisDispatcher, FailureReporter
from hyperdrafter.services.highlight_collection import HighlightCollection
from hyperdrafter.services.llm_client import LLMClient
from hyperdrafter.services.paragraph_store import ParagraphChange, ParagraphStore
from hyperdrafter.utils.logging import get_logger


logger = get_logger(__name__)


class AnalysisPipeline:
    """
    One editing session: store listener, debounce scheduler and dispatcher.

    Example:
        >>> pipeline = AnalysisPipeline(store, LLMClient(settings), config.analysis)
        >>> pipeline.start()
        >>> store.set_content("p1", "Cats are better than dogs.")
        >>> # after the quiet period, pipeline.highlights holds p1's feedback
        >>> await pipeline.shutdown()
    """

    def __init__(
        self,
        store: ParagraphStore,
        client: LLMClient,
        config: Optional[AnalysisConfig] = None,
        highlights: Optional[HighlightCollection] = None,
        failure_reporter: Optional[FailureReporter] = None,
    ) -> None:
        config = config or AnalysisConfig()

        self.store = store
        self.config = config
        self.highlights = highlights or HighlightCollection()
        self.dispatcher = AnalysisDispatcher(
            store,
            client,
            self.highlights,
            fuzzy_window=config.fuzzy_window,
            include_document_context=config.include_document_context,
            preview_length=config.preview_length,
            failure_reporter=failure_reporter,
        )
        self.scheduler = DebounceScheduler(
            on_ready=self._on_ready,
            quiet_period=config.quiet_period,
        )
        self._unsubscribe = None

    @property
    def analyzing(self) -> frozenset[str]:
        """Ids of paragraphs currently being analyzed."""
        return self.dispatcher.analyzing

    def start(self) -> None:
        """
        Subscribe to the store and schedule analysis of existing content.

        Must be called from a running event loop.
        """
        if self._unsubscribe is not None:
            return

        self._unsubscribe = self.store.subscribe(self._on_change)
        self.scheduler.sync(self.store.paragraphs())
        logger.info(
            "pipeline_started",
            paragraphs=len(self.store),
            quiet_period=self.scheduler.quiet_period,
        )

    def _on_change(self, change: ParagraphChange) -> None:
        if change.kind == "deleted":
            self.scheduler.forget(change.paragraph_id)
            self.dispatcher.paragraph_deleted(change.paragraph_id)
        elif change.kind == "updated":
            self.dispatcher.content_changed(change.paragraph_id)
            self.scheduler.observe(change.paragraph_id, change.content)
        else:
            self.scheduler.observe(change.paragraph_id, change.content)

    def _on_ready(self, paragraph_id: str) -> None:
        self.dispatcher.trigger(paragraph_id)

    def paragraph_split(self, paragraph_id: str) -> Optional[asyncio.Task]:
        """
        Analyze the paragraph the writer just left by pressing Enter.

        Skips blank paragraphs, content that is already analyzed and
        paragraphs with an analysis in flight. A pending debounce timer for
        the paragraph is cancelled since the analysis starts now.

        Returns:
            The analysis task, or None if nothing was started
        """
        paragraph = self.store.get(paragraph_id)
        if paragraph is None or paragraph.is_blank:
            return None
        if self.dispatcher.has_been_analyzed(paragraph_id, paragraph.content):
            return None
        if self.dispatcher.is_analyzing(paragraph_id):
            return None

        self.scheduler.cancel(paragraph_id)
        logger.info("analysis_triggered_by_split", paragraph_id=paragraph_id)
        return self.dispatcher.trigger(paragraph_id)

    def analyze_all(self, cancel_token: Optional[CancellationToken] = None) -> List[asyncio.Task]:
        """
        Start analysis of every non-blank paragraph right away.

        Args:
            cancel_token: Cancelling it stops every analysis started here
        """
        tasks = []
        for paragraph in self.store.paragraphs():
            if paragraph.is_blank:
                continue
            self.scheduler.cancel(paragraph.id)
            tasks.append(self.dispatcher.trigger(paragraph.id, cancel_token))
        return tasks

    async def wait_idle(self) -> None:
        """Wait for all started analyses (pending debounce timers are not waited for)."""
        await self.dispatcher.wait_idle()

    async def shutdown(self) -> None:
        """Stop listening, cancel timers and in-flight analyses."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.scheduler.shutdown()
        await self.dispatcher.shutdown()
        logger.info("pipeline_shutdown")

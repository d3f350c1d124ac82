"""Analysis dispatcher: single-flight, cancellable paragraph analysis.

## Per-paragraph lifecycle

```
Idle ──ready/trigger──► Running ──► Completed  (highlights replaced)
                           │    ├──► Cancelled  (superseded, edited, deleted)
                           │    ├──► Discarded  (content moved on during the call)
                           │    └──► Failed     (reported, never retried)
                           └──────────────────► Idle
```

**Invariants:**
- At most one Running analysis per paragraph id. Starting a new one
  cancels the previous one first.
- A result is applied only if the paragraph's content at completion equals
  the snapshot taken at dispatch. Results are ordered by snapshot, not by
  completion time, so a slow older call can never overwrite a newer one.
- Re-dispatching content recorded as last-analyzed is a no-op (no remote
  call, no mutation).
- Failures of one paragraph never touch another paragraph's state: every
  map is keyed by paragraph id and all mutation goes through this class.

All methods must be called from the event loop that owns the paragraph
store and the highlight collection.
"""

import asyncio
from typing import Callable, Dict, List, Optional, Set

from hyperdrafter.models.analysis_task import AnalysisOutcome, AnalysisTask
from hyperdrafter.models.paragraph import DocumentContext
from hyperdrafter.services.cancellation import CancellationToken
from hyperdrafter.services.exceptions import AnalysisCancelledError, ConfigurationError
from hyperdrafter.services.highlight_collection import HighlightCollection
from hyperdrafter.services.llm_client import LLMClient
from hyperdrafter.services.paragraph_store import ParagraphStore
from hyperdrafter.services.span_validator import DEFAULT_FUZZY_WINDOW, to_highlights, validate_spans
from hyperdrafter.utils.logging import bind_paragraph, get_logger


logger = get_logger(__name__)

FailureReporter = Callable[[str, BaseException], None]
StatusListener = Callable[[str, bool], None]


def log_failure(paragraph_id: str, error: BaseException) -> None:
    """Default failure reporter: log and move on."""
    logger.error(
        "analysis_failed",
        paragraph_id=paragraph_id,
        error=str(error),
        error_type=type(error).__name__,
    )


class AnalysisDispatcher:
    """
    Owns in-flight analyses and the last-analyzed registry of one session.

    Example:
        >>> dispatcher = AnalysisDispatcher(store, client, highlights)
        >>> outcome = await dispatcher.analyze("p1")
        >>> outcome
        <AnalysisOutcome.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        store: ParagraphStore,
        client: LLMClient,
        highlights: HighlightCollection,
        fuzzy_window: int = DEFAULT_FUZZY_WINDOW,
        include_document_context: bool = True,
        preview_length: int = 30,
        failure_reporter: Optional[FailureReporter] = None,
    ) -> None:
        """
        Args:
            store: Paragraph store (read only)
            client: Reasoning service client
            highlights: Highlight collection this dispatcher writes to
            fuzzy_window: Offset correction window for span validation
            include_document_context: Send the whole document with each request
            preview_length: Characters kept in highlight previews
            failure_reporter: Called with (paragraph_id, error) on failures
        """
        self.store = store
        self.client = client
        self.highlights = highlights
        self.fuzzy_window = fuzzy_window
        self.include_document_context = include_document_context
        self.preview_length = preview_length
        self.failure_reporter = failure_reporter or log_failure

        self._tasks: Dict[str, AnalysisTask] = {}
        self._last_analyzed: Dict[str, str] = {}
        self._background: Set[asyncio.Task] = set()
        self._status_listeners: List[StatusListener] = []

    # Status

    @property
    def analyzing(self) -> frozenset[str]:
        """Ids of paragraphs with an analysis in flight."""
        return frozenset(self._tasks)

    def is_analyzing(self, paragraph_id: str) -> bool:
        return paragraph_id in self._tasks

    def has_been_analyzed(self, paragraph_id: str, content: str) -> bool:
        return self._last_analyzed.get(paragraph_id) == content

    def add_status_listener(self, listener: StatusListener) -> None:
        """Register a callback (paragraph_id, is_analyzing) for status changes."""
        self._status_listeners.append(listener)

    def _notify_status(self, paragraph_id: str, analyzing: bool) -> None:
        for listener in list(self._status_listeners):
            listener(paragraph_id, analyzing)

    # Dispatch

    def trigger(
        self,
        paragraph_id: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> asyncio.Task:
        """
        Start an analysis in the background.

        The paragraph's content is captured now; if it has moved on by the
        time the task runs, the task does nothing and the debounce of that
        later edit dispatches instead.

        Configuration errors are sent to the failure reporter since there is
        no caller left to raise them to.

        Returns:
            The asyncio task running analyze(); its result is the outcome
        """
        paragraph = self.store.get(paragraph_id)
        expected = paragraph.content if paragraph is not None else None
        task = asyncio.get_running_loop().create_task(
            self._analyze_reporting(paragraph_id, cancel_token, expected),
            name=f"analysis-{paragraph_id}",
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _analyze_reporting(
        self,
        paragraph_id: str,
        cancel_token: Optional[CancellationToken],
        expected_content: Optional[str],
    ) -> AnalysisOutcome:
        try:
            return await self.analyze(paragraph_id, cancel_token, expected_content)
        except ConfigurationError as e:
            self.failure_reporter(paragraph_id, e)
            return AnalysisOutcome.FAILED

    async def analyze(
        self,
        paragraph_id: str,
        cancel_token: Optional[CancellationToken] = None,
        expected_content: Optional[str] = None,
    ) -> AnalysisOutcome:
        """
        Analyze a paragraph and apply the result if it is still current.

        Args:
            paragraph_id: Paragraph to analyze
            cancel_token: Caller's token; cancelling it cancels this analysis
            expected_content: Content the caller saw; skip if it has changed

        Returns:
            How the dispatch ended

        Raises:
            ConfigurationError: If the reasoning service is not configured
        """
        with bind_paragraph(paragraph_id):
            return await self._analyze(paragraph_id, cancel_token, expected_content)

    async def _analyze(
        self,
        paragraph_id: str,
        cancel_token: Optional[CancellationToken],
        expected_content: Optional[str],
    ) -> AnalysisOutcome:
        paragraph = self.store.get(paragraph_id)
        if paragraph is None or paragraph.is_blank:
            self.cancel(paragraph_id, reason="cleared")
            self._last_analyzed.pop(paragraph_id, None)
            self.highlights.remove_paragraph(paragraph_id)
            return AnalysisOutcome.CLEARED

        snapshot = paragraph.content
        if expected_content is not None and snapshot != expected_content:
            logger.debug("analysis_skipped_unsettled")
            return AnalysisOutcome.SKIPPED

        if self.has_been_analyzed(paragraph_id, snapshot):
            logger.debug("analysis_skipped_unchanged")
            return AnalysisOutcome.SKIPPED

        self.cancel(paragraph_id, reason="superseded")

        context = None
        if self.include_document_context:
            context = DocumentContext.from_paragraphs(self.store.paragraphs(), paragraph_id)

        token = CancellationToken.combine(cancel_token)
        record = AnalysisTask(
            paragraph_id=paragraph_id,
            snapshot_content=snapshot,
            cancellation_token=token,
        )
        record.call = asyncio.ensure_future(self.client.identify_spans(
            snapshot,
            document_context=context,
            cancel_token=token,
            request_id=f"analysis-{paragraph_id}",
        ))
        # The caller's token interrupts the remote call like our own cancel()
        token.add_callback(record.cancel)
        self._tasks[paragraph_id] = record
        self._notify_status(paragraph_id, True)

        logger.info(
            "analysis_dispatched",
            content_length=len(snapshot),
            in_flight=len(self._tasks),
        )

        try:
            response = await record.call
        except (asyncio.CancelledError, AnalysisCancelledError):
            if not token.cancelled:
                raise
            logger.info("analysis_cancelled", reason=token.reason)
            return AnalysisOutcome.CANCELLED
        except ConfigurationError:
            raise
        except Exception as e:
            self.failure_reporter(paragraph_id, e)
            return AnalysisOutcome.FAILED
        finally:
            self._finish(record)

        if token.cancelled:
            logger.info("analysis_cancelled", reason=token.reason)
            return AnalysisOutcome.CANCELLED

        current = self.store.get(paragraph_id)
        if current is None or current.content != snapshot:
            logger.warning("analysis_discarded_stale", paragraph_exists=current is not None)
            return AnalysisOutcome.DISCARDED

        spans = validate_spans(response.spans, snapshot, self.fuzzy_window)
        self.highlights.replace(
            paragraph_id,
            to_highlights(paragraph_id, spans, self.preview_length),
        )
        self._last_analyzed[paragraph_id] = snapshot

        logger.info(
            "analysis_completed",
            raw_spans=len(response.spans),
            highlights=len(spans),
        )
        return AnalysisOutcome.COMPLETED

    def _finish(self, record: AnalysisTask) -> None:
        # A superseding analysis may already own the slot
        if self._tasks.get(record.paragraph_id) is record:
            del self._tasks[record.paragraph_id]
            self._notify_status(record.paragraph_id, False)

    # Invalidation

    def cancel(self, paragraph_id: str, reason: str = "cancelled") -> bool:
        """
        Cancel the in-flight analysis of a paragraph.

        Returns:
            True if an analysis was running
        """
        record = self._tasks.pop(paragraph_id, None)
        if record is None:
            return False

        record.cancel(reason)
        logger.debug("analysis_cancel_requested", paragraph_id=paragraph_id, reason=reason)
        self._notify_status(paragraph_id, False)
        return True

    def content_changed(self, paragraph_id: str) -> None:
        """
        Invalidate a paragraph whose content was just edited.

        Synchronously removes its highlights (clearing the selection if it was
        one of them), cancels its in-flight analysis and forgets its
        last-analyzed content.
        """
        self.cancel(paragraph_id, reason="edited")
        self._last_analyzed.pop(paragraph_id, None)
        self.highlights.remove_paragraph(paragraph_id)

    def paragraph_deleted(self, paragraph_id: str) -> None:
        """Drop every trace of a deleted paragraph."""
        self.cancel(paragraph_id, reason="deleted")
        self._last_analyzed.pop(paragraph_id, None)
        self.highlights.remove_paragraph(paragraph_id)

    async def wait_idle(self) -> None:
        """Wait until every background analysis has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel all analyses and wait for their tasks to unwind."""
        for paragraph_id in list(self._tasks):
            self.cancel(paragraph_id, reason="shutdown")

        pending = list(self._background)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        logger.info("dispatcher_shutdown", cancelled_tasks=len(pending))

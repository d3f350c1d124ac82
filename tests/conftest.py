"""Shared test fixtures for all test modules."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

import pytest
import structlog

from hyperdrafter.models.highlight import Highlight
from hyperdrafter.models.span import Priority, SpanTriageResponse, SpanType


def span(text: str, start: int, end: int, **extra: Any) -> Dict[str, Any]:
    """Raw span dict as the reasoning service would send it."""
    data = {
        "text": text,
        "startOffset": start,
        "endOffset": end,
        "type": "clarity",
        "priority": "medium",
        "confidence": 0.8,
        "reasoning": "What do you mean here?",
    }
    data.update(extra)
    return data


class FakeReasoningClient:
    """
    Stand-in for LLMClient.identify_spans.

    Responses are keyed by paragraph text. A gate (asyncio.Event) keyed by
    text holds the call open until the test sets it.
    """

    def __init__(self) -> None:
        self.responses: Dict[str, Union[List[Dict[str, Any]], BaseException]] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[str] = []
        self.contexts: List[Any] = []
        self.tokens: List[Any] = []

    def gate(self, text: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[text] = event
        return event

    async def identify_spans(
        self,
        paragraph_text: str,
        document_context=None,
        cancel_token=None,
        on_partial=None,
        request_id: Optional[str] = None,
    ) -> SpanTriageResponse:
        self.calls.append(paragraph_text)
        self.contexts.append(document_context)
        self.tokens.append(cancel_token)

        gate = self.gates.get(paragraph_text)
        if gate is not None:
            await gate.wait()

        result = self.responses.get(paragraph_text, [])
        if isinstance(result, BaseException):
            raise result
        return SpanTriageResponse(spans=list(result))


@pytest.fixture
def fake_client():
    return FakeReasoningClient()


@pytest.fixture
def make_highlight():
    """Factory for highlights with sensible defaults."""
    def _make(
        start: int,
        end: int,
        idx: int = 0,
        paragraph_id: str = "p1",
        content: Optional[str] = None,
        priority: Priority = Priority.MEDIUM,
        span_type: SpanType = SpanType.CLARITY,
    ) -> Highlight:
        text = content[start:end] if content is not None else "x" * (end - start)
        return Highlight(
            id=f"highlight-{paragraph_id}-{idx}",
            paragraph_id=paragraph_id,
            type=span_type,
            priority=priority,
            start_index=start,
            end_index=end,
            text=text,
            full_text=text,
            note="note",
            confidence=0.9,
        )

    return _make


@pytest.fixture
def raw_span():
    """Factory for raw span dicts (text, start, end, **overrides)."""
    return span


@pytest.fixture(autouse=True, scope="session")
def quiet_logging():
    """Drop log output so it never mixes with CLI output under test."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
        logger_factory=structlog.ReturnLoggerFactory(),
    )
    yield
    structlog.reset_defaults()

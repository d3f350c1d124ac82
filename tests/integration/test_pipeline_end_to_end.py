"""Integration tests: store edits through debounce, dispatch and validation to highlights."""

import asyncio

import pytest
import pytest_asyncio

from hyperdrafter.models.config import AnalysisConfig
from hyperdrafter.models.paragraph import Paragraph
from hyperdrafter.models.span import Priority, SpanType
from hyperdrafter.services.overlap_resolver import render_segments
from hyperdrafter.services.paragraph_store import ParagraphStore
from hyperdrafter.services.pipeline import AnalysisPipeline


QUIET_MS = 50
QUIET = QUIET_MS / 1000
CATS = "Cats are better than dogs."


async def settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def store():
    return ParagraphStore([Paragraph(id="p1", content="")])


@pytest.fixture
def failures():
    return []


@pytest_asyncio.fixture
async def pipeline(store, fake_client, failures):
    pipeline = AnalysisPipeline(
        store,
        fake_client,
        AnalysisConfig(quiet_period_ms=QUIET_MS),
        failure_reporter=lambda pid, error: failures.append((pid, error)),
    )
    pipeline.start()
    yield pipeline
    await pipeline.shutdown()


@pytest.fixture
def cats_response(fake_client, raw_span):
    fake_client.responses[CATS] = [raw_span(
        CATS, 0, 26,
        type="factual", priority="high", confidence=0.9, reasoning="Unsupported claim",
    )]


@pytest.mark.integration
class TestPipelineEndToEnd:
    """Full pipeline against a fake reasoning service."""

    @pytest.mark.asyncio
    async def test_quiet_paragraph_gets_highlight(self, pipeline, store, fake_client, cats_response):
        store.set_content("p1", CATS)

        await asyncio.sleep(QUIET * 0.5)
        assert fake_client.calls == []

        await asyncio.sleep(QUIET * 2)
        await pipeline.wait_idle()

        assert fake_client.calls == [CATS]
        [highlight] = pipeline.highlights.for_paragraph("p1")
        assert (highlight.start_index, highlight.end_index) == (0, 26)
        assert highlight.type == SpanType.FACTUAL
        assert highlight.priority == Priority.HIGH
        assert highlight.note == "Unsupported claim"
        assert highlight.full_text == CATS

    @pytest.mark.asyncio
    async def test_typing_burst_issues_one_call(self, pipeline, store, fake_client, cats_response):
        for end in range(4, len(CATS) + 1, 4):
            store.set_content("p1", CATS[:end])
            await asyncio.sleep(QUIET / 10)
        store.set_content("p1", CATS)

        await asyncio.sleep(QUIET * 3)
        await pipeline.wait_idle()

        assert fake_client.calls == [CATS]
        assert pipeline.highlights.count("p1") == 1

    @pytest.mark.asyncio
    async def test_edit_before_response_discards_result(self, pipeline, store, fake_client, cats_response):
        gate = fake_client.gate(CATS)
        store.set_content("p1", CATS)
        await asyncio.sleep(QUIET * 2)
        assert fake_client.calls == [CATS]
        assert "p1" in pipeline.analyzing

        store.set_content("p1", CATS + " Obviously.")

        # Cleared synchronously by the edit, before any response arrives
        assert pipeline.highlights.count("p1") == 0
        assert "p1" not in pipeline.analyzing

        gate.set()
        await settle()
        assert pipeline.highlights.count("p1") == 0

    @pytest.mark.asyncio
    async def test_edit_clears_existing_highlights_immediately(
        self, pipeline, store, fake_client, cats_response
    ):
        store.set_content("p1", CATS)
        await asyncio.sleep(QUIET * 2)
        await pipeline.wait_idle()
        pipeline.highlights.select("highlight-p1-0")

        store.set_content("p1", "Cats are better than dogs!")

        assert pipeline.highlights.count("p1") == 0
        assert pipeline.highlights.selected_id is None

    @pytest.mark.asyncio
    async def test_clearing_paragraph_removes_highlights(self, pipeline, store, fake_client, cats_response):
        store.set_content("p1", CATS)
        await asyncio.sleep(QUIET * 2)
        await pipeline.wait_idle()
        assert pipeline.highlights.count("p1") == 1

        store.set_content("p1", "")
        await asyncio.sleep(QUIET * 2)

        assert pipeline.highlights.count("p1") == 0
        assert fake_client.calls == [CATS]
        assert not pipeline.scheduler.is_pending("p1")

    @pytest.mark.asyncio
    async def test_undo_to_analyzed_content_reanalyzes(self, pipeline, store, fake_client, cats_response):
        store.set_content("p1", CATS)
        await asyncio.sleep(QUIET * 2)
        await pipeline.wait_idle()

        store.set_content("p1", CATS + "!")
        store.set_content("p1", CATS)
        await asyncio.sleep(QUIET * 2)
        await pipeline.wait_idle()

        assert fake_client.calls == [CATS, CATS]
        assert pipeline.highlights.count("p1") == 1

    @pytest.mark.asyncio
    async def test_split_analyzes_immediately(self, pipeline, store, fake_client, cats_response):
        store.set_content("p1", CATS + " Birds")
        await asyncio.sleep(QUIET * 2)
        await pipeline.wait_idle()

        # Writer presses Enter after the first sentence
        store.split("p1", len(CATS), new_id="p2")
        task = pipeline.paragraph_split("p1")

        assert task is not None
        await task
        assert fake_client.calls == [CATS + " Birds", CATS]
        assert pipeline.highlights.count("p1") == 1
        assert not pipeline.scheduler.is_pending("p1")

        # Nothing new to analyze on a second Enter
        assert pipeline.paragraph_split("p1") is None

    @pytest.mark.asyncio
    async def test_paragraphs_analyzed_independently(self, pipeline, store, fake_client, raw_span, failures):
        store.set_content("p1", "Alpha claim.")
        fake_client.responses["Alpha claim."] = RuntimeError("service down")
        beta = store.insert("Beta claim here.", paragraph_id="p2")
        fake_client.responses[beta.content] = [raw_span("claim", 5, 10)]

        await asyncio.sleep(QUIET * 2)
        await pipeline.wait_idle()

        assert [pid for pid, _ in failures] == ["p1"]
        assert pipeline.highlights.count("p1") == 0
        assert pipeline.highlights.count("p2") == 1

    @pytest.mark.asyncio
    async def test_deleting_paragraph_cancels_and_clears(self, pipeline, store, fake_client, cats_response):
        fake_client.gate(CATS)
        store.set_content("p1", CATS)
        await asyncio.sleep(QUIET * 2)
        assert "p1" in pipeline.analyzing

        store.remove("p1")
        await settle()

        assert pipeline.analyzing == frozenset()
        assert len(pipeline.highlights) == 0

    @pytest.mark.asyncio
    async def test_rendered_segments_cover_paragraph(self, pipeline, store, fake_client, raw_span):
        text = "The quick brown fox jumps over the lazy dog."
        fake_client.responses[text] = [
            raw_span("quick brown", 4, 15),
            raw_span("brown fox jumps", 10, 25),   # longer, overlaps the first
            raw_span("lazy", 37, 41),              # drifted by two
        ]
        store.set_content("p1", text)
        await asyncio.sleep(QUIET * 2)
        await pipeline.wait_idle()

        segments = render_segments(text, pipeline.highlights.for_paragraph("p1"))

        assert "".join(s.text for s in segments) == text
        assert [s.text for s in segments if s.highlight is not None] == ["brown fox jumps", "lazy"]

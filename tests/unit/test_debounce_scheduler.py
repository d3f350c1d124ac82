"""Unit tests for DebounceScheduler."""

import asyncio

import pytest

from hyperdrafter.models.paragraph import Paragraph
from hyperdrafter.services.debounce import DebounceScheduler


QUIET = 0.1


@pytest.fixture
def fired():
    return []


@pytest.fixture
def scheduler(fired):
    scheduler = DebounceScheduler(on_ready=fired.append, quiet_period=QUIET)
    yield scheduler
    scheduler.shutdown()


class TestDebounceScheduler:
    """Test per-paragraph quiet-period timers."""

    @pytest.mark.asyncio
    async def test_fires_once_after_quiet_period(self, scheduler, fired):
        scheduler.observe("p1", "Cats are better than dogs.")
        assert scheduler.is_pending("p1")

        await asyncio.sleep(QUIET * 3)

        assert fired == ["p1"]
        assert not scheduler.is_pending("p1")

    @pytest.mark.asyncio
    async def test_burst_of_changes_fires_once(self, scheduler, fired):
        for text in ["C", "Ca", "Cat", "Cats", "Cats are"]:
            scheduler.observe("p1", text)
            await asyncio.sleep(QUIET / 5)

        assert fired == []
        await asyncio.sleep(QUIET * 3)
        assert fired == ["p1"]

    @pytest.mark.asyncio
    async def test_unchanged_content_does_not_restart(self, scheduler, fired):
        scheduler.observe("p1", "Same text")
        await asyncio.sleep(QUIET * 0.6)
        scheduler.observe("p1", "Same text")
        await asyncio.sleep(QUIET * 0.75)

        assert fired == ["p1"]

    @pytest.mark.asyncio
    async def test_blank_content_cancels_without_scheduling(self, scheduler, fired):
        scheduler.observe("p1", "Some text")
        scheduler.observe("p1", "   ")

        assert not scheduler.is_pending("p1")
        await asyncio.sleep(QUIET * 3)
        assert fired == []

    @pytest.mark.asyncio
    async def test_initial_empty_content_ignored(self, scheduler, fired):
        scheduler.observe("p1", "")

        assert not scheduler.is_pending("p1")

    @pytest.mark.asyncio
    async def test_paragraphs_are_independent(self, scheduler, fired):
        scheduler.observe("p1", "First paragraph")
        await asyncio.sleep(QUIET * 0.5)
        # Typing in p2 must not delay p1
        scheduler.observe("p2", "Second")
        await asyncio.sleep(QUIET * 0.7)

        assert fired == ["p1"]
        await asyncio.sleep(QUIET * 2)
        assert fired == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_cancel_keeps_content(self, scheduler, fired):
        scheduler.observe("p1", "Text")

        assert scheduler.cancel("p1") is True
        assert scheduler.cancel("p1") is False

        # Same content again is still "unchanged"
        scheduler.observe("p1", "Text")
        assert not scheduler.is_pending("p1")
        await asyncio.sleep(QUIET * 2)
        assert fired == []

    @pytest.mark.asyncio
    async def test_forget_drops_content(self, scheduler, fired):
        scheduler.observe("p1", "Text")
        scheduler.forget("p1")

        scheduler.observe("p1", "Text")
        assert scheduler.is_pending("p1")

    @pytest.mark.asyncio
    async def test_sync_schedules_and_forgets(self, scheduler, fired):
        scheduler.observe("gone", "Old paragraph")

        scheduler.sync([
            Paragraph(id="p1", content="One"),
            Paragraph(id="p2", content=""),
        ])

        assert scheduler.pending_ids == frozenset({"p1"})

    @pytest.mark.asyncio
    async def test_shutdown_cancels_timers(self, scheduler, fired):
        scheduler.observe("p1", "Text")
        scheduler.shutdown()

        await asyncio.sleep(QUIET * 2)
        assert fired == []

        scheduler.observe("p2", "Ignored after shutdown")
        assert not scheduler.is_pending("p2")

    @pytest.mark.asyncio
    async def test_callback_error_is_contained(self, fired):
        def on_ready(paragraph_id):
            fired.append(paragraph_id)
            raise RuntimeError("boom")

        scheduler = DebounceScheduler(on_ready=on_ready, quiet_period=QUIET)
        scheduler.observe("p1", "One")
        scheduler.observe("p2", "Two")

        await asyncio.sleep(QUIET * 3)

        assert sorted(fired) == ["p1", "p2"]
        scheduler.shutdown()

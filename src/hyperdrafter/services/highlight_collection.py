"""Highlight collection keyed by paragraph id.

Consumers (CLI renderer, feedback panels) read from the collection and
subscribe to change events. Highlights are only written by the analysis
dispatcher; the one consumer-side mutation is selecting a highlight.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Union

from hyperdrafter.models.highlight import Highlight
from hyperdrafter.models.span import Priority, SpanType
from hyperdrafter.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class HighlightsChanged:
    """The highlight set of one paragraph was replaced or removed."""
    paragraph_id: str
    count: int


@dataclass(frozen=True)
class SelectionChanged:
    """The selected highlight changed (None = nothing selected)."""
    highlight_id: Optional[str]


HighlightEvent = Union[HighlightsChanged, SelectionChanged]
HighlightListener = Callable[[HighlightEvent], None]


class HighlightCollection:
    """
    Current highlights of every paragraph plus the selected highlight.

    Example:
        >>> collection = HighlightCollection()
        >>> unsubscribe = collection.subscribe(print)
        >>> collection.replace("p1", highlights)
        HighlightsChanged(paragraph_id='p1', count=1)
    """

    def __init__(self) -> None:
        self._by_paragraph: Dict[str, List[Highlight]] = {}
        self._selected_id: Optional[str] = None
        self._listeners: List[HighlightListener] = []

    def subscribe(self, listener: HighlightListener) -> Callable[[], None]:
        """
        Register a listener for change events.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: HighlightEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    # Mutation (dispatcher only)

    def replace(self, paragraph_id: str, highlights: Iterable[Highlight]) -> None:
        """Replace all highlights of a paragraph (an empty list removes them)."""
        new = list(highlights)
        stray = [h.id for h in new if h.paragraph_id != paragraph_id]
        if stray:
            raise ValueError(f"Highlights {stray} do not belong to paragraph {paragraph_id}")

        previous = self.selected

        if new:
            self._by_paragraph[paragraph_id] = new
        else:
            self._by_paragraph.pop(paragraph_id, None)

        # Ids are positional, so a surviving id may now name different text
        if previous is not None and self.find(previous.id) != previous:
            self._set_selection(None)

        logger.info("highlights_replaced", paragraph_id=paragraph_id, count=len(new))
        self._emit(HighlightsChanged(paragraph_id=paragraph_id, count=len(new)))

    def remove_paragraph(self, paragraph_id: str) -> bool:
        """
        Remove a paragraph's highlights, clearing the selection if it was one of them.

        Returns:
            True if anything was removed
        """
        removed = self._by_paragraph.pop(paragraph_id, None)
        if removed is None:
            return False

        if self._selected_id is not None and any(h.id == self._selected_id for h in removed):
            self._set_selection(None)

        logger.info("highlights_removed", paragraph_id=paragraph_id, count=len(removed))
        self._emit(HighlightsChanged(paragraph_id=paragraph_id, count=0))
        return True

    def clear(self) -> None:
        """Remove every highlight."""
        for paragraph_id in list(self._by_paragraph):
            self.remove_paragraph(paragraph_id)

    def from_list(self, highlights: Iterable[Highlight]) -> None:
        """Replace the whole collection from a flat list."""
        self.clear()
        grouped: Dict[str, List[Highlight]] = {}
        for highlight in highlights:
            grouped.setdefault(highlight.paragraph_id, []).append(highlight)
        for paragraph_id, paragraph_highlights in grouped.items():
            self.replace(paragraph_id, paragraph_highlights)

    # Selection

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected(self) -> Optional[Highlight]:
        return self.find(self._selected_id) if self._selected_id else None

    def select(self, highlight_id: Optional[str]) -> None:
        """
        Select a highlight by id, or deselect with None.

        Raises:
            KeyError: If no highlight with that id exists
        """
        if highlight_id is not None and self.find(highlight_id) is None:
            raise KeyError(highlight_id)
        self._set_selection(highlight_id)

    def _set_selection(self, highlight_id: Optional[str]) -> None:
        if highlight_id == self._selected_id:
            return
        self._selected_id = highlight_id
        self._emit(SelectionChanged(highlight_id=highlight_id))

    # Queries

    def all(self) -> List[Highlight]:
        return [h for highlights in self._by_paragraph.values() for h in highlights]

    to_list = all

    def for_paragraph(self, paragraph_id: str) -> List[Highlight]:
        return list(self._by_paragraph.get(paragraph_id, []))

    def find(self, highlight_id: str) -> Optional[Highlight]:
        for highlights in self._by_paragraph.values():
            for highlight in highlights:
                if highlight.id == highlight_id:
                    return highlight
        return None

    def by_type(self, span_type: SpanType) -> List[Highlight]:
        return [h for h in self.all() if h.type == span_type]

    def by_priority(self, priority: Priority) -> List[Highlight]:
        return [h for h in self.all() if h.priority == priority]

    def has_highlights(self, paragraph_id: str) -> bool:
        return paragraph_id in self._by_paragraph

    def count(self, paragraph_id: Optional[str] = None) -> int:
        """Highlight count for one paragraph, or for the whole document."""
        if paragraph_id is not None:
            return len(self._by_paragraph.get(paragraph_id, []))
        return sum(len(highlights) for highlights in self._by_paragraph.values())

    def __len__(self) -> int:
        return self.count()

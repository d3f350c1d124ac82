"""In-memory paragraph store with change notifications.

Stands in for the editor's document model. The analysis pipeline only reads
from it and listens to its change events; the writer (CLI, tests, an editor
adapter) is the only party that mutates it.
"""

import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Literal, Optional

from hyperdrafter.models.paragraph import Paragraph
from hyperdrafter.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class ParagraphChange:
    """A paragraph was created, edited or deleted."""
    kind: Literal["created", "updated", "deleted"]
    paragraph_id: str
    content: str = ""


ParagraphListener = Callable[[ParagraphChange], None]


class ParagraphStore:
    """
    Ordered paragraphs keyed by stable id.

    Events are only emitted for real changes: setting a paragraph to the
    content it already has is silent.
    """

    def __init__(self, paragraphs: Optional[List[Paragraph]] = None) -> None:
        self._order: List[str] = []
        self._paragraphs: Dict[str, Paragraph] = {}
        self._listeners: List[ParagraphListener] = []

        for paragraph in paragraphs or []:
            if paragraph.id in self._paragraphs:
                raise ValueError(f"Duplicate paragraph id: {paragraph.id}")
            self._order.append(paragraph.id)
            self._paragraphs[paragraph.id] = paragraph

    def subscribe(self, listener: ParagraphListener) -> Callable[[], None]:
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

    def _emit(self, change: ParagraphChange) -> None:
        for listener in list(self._listeners):
            listener(change)

    def paragraphs(self) -> List[Paragraph]:
        """All paragraphs in document order."""
        return [self._paragraphs[pid] for pid in self._order]

    def get(self, paragraph_id: str) -> Optional[Paragraph]:
        return self._paragraphs.get(paragraph_id)

    def __contains__(self, paragraph_id: object) -> bool:
        return paragraph_id in self._paragraphs

    def __len__(self) -> int:
        return len(self._order)

    def insert(
        self,
        content: str = "",
        after: Optional[str] = None,
        paragraph_id: Optional[str] = None,
    ) -> Paragraph:
        """
        Insert a new paragraph.

        Args:
            content: Initial content
            after: Insert after this paragraph id (append if None)
            paragraph_id: Explicit id (a random one is generated if None)

        Returns:
            The new paragraph

        Raises:
            ValueError: If paragraph_id already exists
            KeyError: If after does not exist
        """
        pid = paragraph_id or uuid.uuid4().hex[:8]
        if pid in self._paragraphs:
            raise ValueError(f"Duplicate paragraph id: {pid}")

        if after is None:
            position = len(self._order)
        else:
            if after not in self._paragraphs:
                raise KeyError(after)
            position = self._order.index(after) + 1

        paragraph = Paragraph(id=pid, content=content)
        self._order.insert(position, pid)
        self._paragraphs[pid] = paragraph

        logger.debug("paragraph_created", paragraph_id=pid, position=position)
        self._emit(ParagraphChange(kind="created", paragraph_id=pid, content=content))
        return paragraph

    def set_content(self, paragraph_id: str, content: str) -> bool:
        """
        Replace a paragraph's content.

        Returns:
            True if the content changed

        Raises:
            KeyError: If the paragraph does not exist
        """
        current = self._paragraphs[paragraph_id]
        if current.content == content:
            return False

        self._paragraphs[paragraph_id] = Paragraph(id=paragraph_id, content=content)
        self._emit(ParagraphChange(kind="updated", paragraph_id=paragraph_id, content=content))
        return True

    def split(self, paragraph_id: str, offset: int, new_id: Optional[str] = None) -> Paragraph:
        """
        Split a paragraph at offset (what pressing Enter does).

        The text before offset stays in the original paragraph; the rest moves
        to a new paragraph inserted right after it.

        Returns:
            The new paragraph
        """
        content = self._paragraphs[paragraph_id].content
        offset = max(0, min(offset, len(content)))
        head, tail = content[:offset], content[offset:]

        self.set_content(paragraph_id, head)
        return self.insert(tail, after=paragraph_id, paragraph_id=new_id)

    def remove(self, paragraph_id: str) -> bool:
        """
        Delete a paragraph.

        Returns:
            True if the paragraph existed
        """
        if paragraph_id not in self._paragraphs:
            return False

        del self._paragraphs[paragraph_id]
        self._order.remove(paragraph_id)

        logger.debug("paragraph_deleted", paragraph_id=paragraph_id)
        self._emit(ParagraphChange(kind="deleted", paragraph_id=paragraph_id))
        return True

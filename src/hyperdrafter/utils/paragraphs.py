"""Plain-text document helpers: splitting drafts into paragraphs."""

import re

from hyperdrafter.models.paragraph import Paragraph
from hyperdrafter.services.paragraph_store import ParagraphStore


_BLANK_LINES = re.compile(r"\n[ \t]*\n+")


def split_paragraphs(text: str) -> list[str]:
    """
    Split a plain-text draft on blank lines.

    Single newlines stay inside the paragraph. Leading/trailing blank lines
    of each paragraph are dropped; empty paragraphs are skipped.

    Example:
        >>> split_paragraphs("First line\\nsame paragraph\\n\\nSecond")
        ['First line\\nsame paragraph', 'Second']
    """
    chunks = _BLANK_LINES.split(text.replace("\r\n", "\n"))
    return [chunk.strip("\n") for chunk in chunks if chunk.strip()]


def paragraph_id(position: int) -> str:
    """Positional paragraph id (1-based): p1, p2, ..."""
    return f"p{position}"


def paragraphs_from_text(text: str) -> list[Paragraph]:
    """Build positionally identified paragraphs from a draft."""
    return [
        Paragraph(id=paragraph_id(i), content=content)
        for i, content in enumerate(split_paragraphs(text), start=1)
    ]


def apply_document(store: ParagraphStore, contents: list[str]) -> None:
    """
    Bring a store in line with a re-read draft.

    Paragraphs are matched by position: existing ids get their content
    replaced, extra paragraphs are appended, and ids past the end are removed.
    """
    for i, content in enumerate(contents, start=1):
        pid = paragraph_id(i)
        if pid in store:
            store.set_content(pid, content)
        else:
            store.insert(content, paragraph_id=pid)

    position = len(contents) + 1
    while paragraph_id(position) in store:
        store.remove(paragraph_id(position))
        position += 1

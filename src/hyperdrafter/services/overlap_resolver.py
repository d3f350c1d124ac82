"""Highlight overlap resolution for non-nesting inline rendering."""

from dataclasses import dataclass
from typing import Iterable, Optional

from hyperdrafter.models.highlight import Highlight
from hyperdrafter.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class Segment:
    """A slice of paragraph text, plain or bound to exactly one highlight."""
    start: int
    end: int
    text: str
    highlight: Optional[Highlight] = None


def _sort_key(highlight: Highlight) -> tuple[int, int, int, str]:
    # Start order; ties broken by longer span, then lower numeric id
    return (highlight.start_index, -highlight.length, highlight.sequence, highlight.id)


def is_renderable(highlight: Highlight, content: str) -> bool:
    """Check a highlight still extracts non-empty, in-bounds text from content."""
    if highlight.start_index < 0 or highlight.end_index > len(content):
        return False
    if highlight.start_index >= highlight.end_index:
        return False
    return bool(content[highlight.start_index:highlight.end_index])


def resolve_overlaps(highlights: Iterable[Highlight], content: str) -> list[Highlight]:
    """
    Reduce one paragraph's highlights to a non-overlapping, start-ordered list.

    Highlights are taken in start order and accepted greedily. A highlight
    that overlaps accepted ones replaces them only if it is strictly longer
    than each of them; otherwise it is dropped. Equal-length overlaps keep
    the highlight accepted first (earlier start, then lower numeric id), so
    the result does not depend on input order.

    Args:
        highlights: Highlights of a single paragraph
        content: Current paragraph text (highlights that no longer fit are dropped)

    Returns:
        Non-overlapping highlights sorted by start_index. Given [0,10) and
        [5,20), only [5,20) survives; [0,5) and [5,10) both survive.
    """
    candidates = []
    for highlight in highlights:
        if is_renderable(highlight, content):
            candidates.append(highlight)
        else:
            logger.debug(
                "highlight_not_renderable",
                highlight_id=highlight.id,
                start_index=highlight.start_index,
                end_index=highlight.end_index,
                content_length=len(content),
            )

    accepted: list[Highlight] = []

    for candidate in sorted(candidates, key=_sort_key):
        overlapping = [a for a in accepted if candidate.overlaps(a)]

        if not overlapping:
            accepted.append(candidate)
        elif all(candidate.length > a.length for a in overlapping):
            accepted = [a for a in accepted if not candidate.overlaps(a)]
            accepted.append(candidate)
        else:
            continue

        accepted.sort(key=_sort_key)

    return accepted


def render_segments(content: str, highlights: Iterable[Highlight]) -> list[Segment]:
    """
    Split paragraph text into plain and highlighted segments.

    Concatenating the segment texts reproduces content exactly.

    Args:
        content: Current paragraph text
        highlights: Highlights of this paragraph (may overlap)

    Returns:
        Segments in text order; empty plain segments are omitted
    """
    segments: list[Segment] = []
    last_index = 0

    for highlight in resolve_overlaps(highlights, content):
        if highlight.start_index > last_index:
            segments.append(Segment(
                start=last_index,
                end=highlight.start_index,
                text=content[last_index:highlight.start_index],
            ))
        segments.append(Segment(
            start=highlight.start_index,
            end=highlight.end_index,
            text=content[highlight.start_index:highlight.end_index],
            highlight=highlight,
        ))
        last_index = highlight.end_index

    if last_index < len(content):
        segments.append(Segment(start=last_index, end=len(content), text=content[last_index:]))

    return segments

"""Terminal rendering of paragraphs and their highlights."""

from typing import Iterable, Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from hyperdrafter.models.highlight import Highlight
from hyperdrafter.models.paragraph import Paragraph
from hyperdrafter.models.span import Priority
from hyperdrafter.services.highlight_collection import HighlightCollection
from hyperdrafter.services.overlap_resolver import render_segments


PRIORITY_STYLES = {
    Priority.HIGH: "on dark_red",
    Priority.MEDIUM: "on purple4",
    Priority.LOW: "on grey30",
}

PRIORITY_LABELS = {
    Priority.HIGH: "[bold red]high[/]",
    Priority.MEDIUM: "[bold magenta]medium[/]",
    Priority.LOW: "[dim]low[/]",
}


def highlight_style(highlight: Highlight, selected_id: Optional[str] = None) -> str:
    style = PRIORITY_STYLES.get(highlight.priority, "on grey30")
    if highlight.id == selected_id:
        style += " bold underline"
    return style


def render_paragraph_text(
    paragraph: Paragraph,
    highlights: Iterable[Highlight],
    selected_id: Optional[str] = None,
) -> Text:
    """Render paragraph content with non-overlapping highlight styling."""
    text = Text()
    for segment in render_segments(paragraph.content, highlights):
        if segment.highlight is None:
            text.append(segment.text)
        else:
            text.append(segment.text, style=highlight_style(segment.highlight, selected_id))
    return text


def render_feedback(highlights: Iterable[Highlight]) -> Text:
    """Numbered feedback list, most important first."""
    ordered = sorted(highlights, key=lambda h: (h.priority.rank, h.start_index))
    lines = Text()
    for number, highlight in enumerate(ordered, start=1):
        if number > 1:
            lines.append("\n")
        lines.append_text(Text.from_markup(
            f"{number}. {PRIORITY_LABELS[highlight.priority]} "
            f"[cyan]{highlight.type.value}[/] "
        ))
        lines.append(f'"{highlight.text}" ', style="italic")
        lines.append(highlight.note)
        lines.append(f" ({highlight.confidence:.0%})", style="dim")
    return lines


def render_paragraph(
    paragraph: Paragraph,
    highlights: list[Highlight],
    analyzing: bool = False,
    selected_id: Optional[str] = None,
) -> Panel:
    """Panel with the paragraph text and its feedback list."""
    body = [render_paragraph_text(paragraph, highlights, selected_id)]
    if highlights:
        body.append(Text())
        body.append(render_feedback(highlights))

    subtitle = "analyzing..." if analyzing else f"{len(highlights)} issue(s)"
    return Panel(
        Group(*body),
        title=paragraph.id,
        title_align="left",
        subtitle=subtitle,
        subtitle_align="right",
    )


def render_document(
    console: Console,
    paragraphs: Iterable[Paragraph],
    collection: HighlightCollection,
    analyzing: frozenset[str] = frozenset(),
) -> None:
    """Print every paragraph with its highlights."""
    for paragraph in paragraphs:
        console.print(render_paragraph(
            paragraph,
            collection.for_paragraph(paragraph.id),
            analyzing=paragraph.id in analyzing,
            selected_id=collection.selected_id,
        ))

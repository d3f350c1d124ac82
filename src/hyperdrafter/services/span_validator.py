"""Span validation and offset correction.

The reasoning service usually gets the span *text* right but miscounts
characters. Every raw span is checked against the authoritative paragraph
text; spans whose offsets are off by a few characters are corrected, and
everything else is dropped. Only spans that exactly match the paragraph at
their (possibly corrected) offsets ever become highlights.
"""

from typing import Any, Iterable, Optional

from pydantic import ValidationError

from hyperdrafter.models.highlight import Highlight, preview_text
from hyperdrafter.models.span import RawSpan
from hyperdrafter.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_FUZZY_WINDOW = 5


def _as_offset(value: Any) -> Optional[int]:
    """Coerce an untrusted offset to int (bools and non-integral floats rejected)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def correct_offsets(
    content: str,
    text: str,
    start: int,
    end: int,
    window: int = DEFAULT_FUZZY_WINDOW,
) -> Optional[tuple[int, int]]:
    """
    Find exact offsets for text near (start, end).

    Tries the raw pair first, then every (start+i, end+j) for i, j in
    [-window, window], clamped to the content bounds. The first pair whose
    slice equals text wins; i is the outer loop, both ascending.

    Args:
        content: Authoritative paragraph text
        text: Span text reported by the service
        start: Reported start offset
        end: Reported end offset
        window: Maximum drift corrected per boundary

    Returns:
        (start, end) of the match, or None if text is not found in the window

    Example:
        >>> correct_offsets("0123456789foo bar baz", "foo", 12, 15)
        (10, 13)
    """
    if content[start:end] == text:
        return start, end

    for start_adjust in range(-window, window + 1):
        test_start = max(0, start + start_adjust)
        for end_adjust in range(-window, window + 1):
            test_end = min(len(content), end + end_adjust)
            if test_start >= test_end:
                continue
            if content[test_start:test_end] == text:
                return test_start, test_end

    return None


def validate_span(
    raw: Any,
    content: str,
    window: int = DEFAULT_FUZZY_WINDOW,
) -> Optional[RawSpan]:
    """
    Validate one raw span against the paragraph text.

    Steps, stopping at the first failure:
    1. text, startOffset and endOffset present; offsets numeric
    2. 0 <= startOffset < endOffset <= len(content)
    3. exact match at the reported offsets, or
    4. bounded fuzzy correction within +/- window characters
    5. type, priority and confidence conform to the typed model

    Args:
        raw: Span object from the service (untrusted)
        content: Authoritative paragraph text
        window: Fuzzy correction window

    Returns:
        RawSpan with exact offsets, or None if the span is dropped
    """
    if not isinstance(raw, dict):
        return None

    text = raw.get("text")
    start = _as_offset(raw.get("startOffset"))
    end = _as_offset(raw.get("endOffset"))

    if not isinstance(text, str) or not text or start is None or end is None:
        logger.debug("span_dropped_missing_fields", span=raw)
        return None

    if start < 0 or end > len(content) or start >= end:
        logger.debug(
            "span_dropped_out_of_bounds",
            start_offset=start,
            end_offset=end,
            content_length=len(content),
        )
        return None

    corrected = correct_offsets(content, text, start, end, window)
    if corrected is None:
        logger.debug(
            "span_dropped_text_mismatch",
            text=text,
            start_offset=start,
            end_offset=end,
            window=window,
        )
        return None

    if corrected != (start, end):
        logger.debug(
            "span_offsets_corrected",
            text=text,
            original=(start, end),
            corrected=corrected,
        )

    try:
        return RawSpan.model_validate({
            **raw,
            "startOffset": corrected[0],
            "endOffset": corrected[1],
        })
    except ValidationError as e:
        logger.debug("span_dropped_invalid_fields", span=raw, error=str(e))
        return None


def validate_spans(
    raw_spans: Iterable[Any],
    content: str,
    window: int = DEFAULT_FUZZY_WINDOW,
) -> list[RawSpan]:
    """
    Validate and correct a batch of raw spans, dropping invalid ones.

    Args:
        raw_spans: Span objects from the service
        content: Authoritative paragraph text
        window: Fuzzy correction window

    Returns:
        Spans guaranteed to satisfy content[start:end] == text
    """
    raw_list = list(raw_spans)
    valid = [
        span for span in (validate_span(raw, content, window) for raw in raw_list)
        if span is not None
    ]

    if len(valid) < len(raw_list):
        logger.warning(
            "spans_dropped",
            received=len(raw_list),
            accepted=len(valid),
        )

    return valid


def to_highlights(
    paragraph_id: str,
    spans: Iterable[RawSpan],
    preview_length: int = 30,
) -> list[Highlight]:
    """
    Convert validated spans into highlights for one paragraph.

    Args:
        paragraph_id: Paragraph the spans were validated against
        spans: Output of validate_spans()
        preview_length: Characters kept in the preview text

    Returns:
        Highlights with ids highlight-<paragraph_id>-<n>
    """
    return [
        Highlight(
            id=f"highlight-{paragraph_id}-{idx}",
            paragraph_id=paragraph_id,
            type=span.type,
            priority=span.priority,
            start_index=span.start_offset,
            end_index=span.end_offset,
            text=preview_text(span.text, preview_length),
            full_text=span.text,
            note=span.reasoning,
            confidence=span.confidence,
        )
        for idx, span in enumerate(spans)
    ]

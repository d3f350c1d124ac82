"""Tolerant parsers for streamed reasoning-service output.

The service is asked for a single JSON document ({"spans": [...]}), but the
text it produces may be wrapped in prose, cut off mid-stream, or contain
stray control characters. These helpers recover as much as possible:

- extract_json_object() isolates the first balanced {...} object
- parse_partial_spans() scans the "spans" array for complete span objects,
  ignoring an incomplete trailing fragment
- parse_span_response() combines both: full parse first, partial scan as
  fallback, empty result if nothing is recoverable
"""

import json
import re
from typing import Any, Optional

from hyperdrafter.models.span import SpanTriageResponse
from hyperdrafter.utils.logging import get_logger


logger = get_logger(__name__)

_SPANS_ARRAY_START = re.compile(r'"spans"\s*:\s*\[')


def extract_json_object(content: str) -> Optional[str]:
    """
    Return the first balanced top-level JSON object in content.

    Braces inside string literals are ignored.

    Args:
        content: Raw model output (may include prose before/after the JSON)

    Returns:
        The object text, or None if no complete object is present

    Example:
        >>> extract_json_object('Sure! {"spans": []} Hope that helps.')
        '{"spans": []}'
    """
    start = content.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(content)):
        char = content[i]

        if escaped:
            escaped = False
            continue
        if char == "\\" and in_string:
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return content[start:i + 1]

    return None


def parse_partial_spans(content: str) -> list[dict[str, Any]]:
    """
    Extract complete span objects from a possibly truncated response.

    Locates the "spans": [ array and walks it character by character,
    tracking string literals and brace depth. Every balanced {...} at depth
    zero is parsed; objects that fail to parse, or lack text/startOffset/
    endOffset, are skipped. Scanning stops at the closing ] of the array or
    at the end of input, so an incomplete trailing object is discarded.

    Args:
        content: Accumulated model output, complete or not

    Returns:
        Span dicts in the order they appear (empty if no spans array found)

    Example:
        >>> parse_partial_spans('{"spans": [{"text": "a", "startOffset": 0, "endOffset": 1}, {"te')
        [{'text': 'a', 'startOffset': 0, 'endOffset': 1}]
    """
    match = _SPANS_ARRAY_START.search(content)
    if not match:
        return []

    spans: list[dict[str, Any]] = []
    depth = 0
    in_string = False
    escaped = False
    object_start = -1

    for i in range(match.end(), len(content)):
        char = content[i]

        if escaped:
            escaped = False
            continue
        if char == "\\" and in_string:
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == "{":
            if depth == 0:
                object_start = i
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                span = _load_span_object(content[object_start:i + 1])
                if span is not None:
                    spans.append(span)
            elif depth < 0:
                break
        elif char == "]" and depth == 0:
            break

    return spans


def _load_span_object(text: str) -> Optional[dict[str, Any]]:
    try:
        span = json.loads(text, strict=False)
    except json.JSONDecodeError as e:
        logger.debug("partial_span_unparseable", fragment=text, error=str(e))
        return None

    if not isinstance(span, dict):
        return None
    if not span.get("text") or "startOffset" not in span or "endOffset" not in span:
        return None
    return span


def parse_span_response(content: str) -> SpanTriageResponse:
    """
    Parse the full model output into an untrusted span payload.

    Never raises: unparseable output yields an empty span list, which the
    pipeline treats as "no issues found".

    Args:
        content: Complete model output text

    Returns:
        SpanTriageResponse with raw span dicts
    """
    object_text = extract_json_object(content.strip())
    if object_text is not None:
        try:
            # strict=False tolerates raw control characters inside strings
            parsed = json.loads(object_text, strict=False)
        except json.JSONDecodeError as e:
            logger.warning(
                "span_response_malformed",
                error=str(e),
                content_length=len(content),
            )
            parsed = None

        if isinstance(parsed, dict) and isinstance(parsed.get("spans"), list):
            return SpanTriageResponse(
                spans=[span for span in parsed["spans"] if isinstance(span, dict)]
            )

    spans = parse_partial_spans(content)
    logger.debug(
        "span_response_partial_parse",
        recovered_spans=len(spans),
        content_length=len(content),
    )
    return SpanTriageResponse(spans=spans)

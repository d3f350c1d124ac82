"""Pydantic data models for HyperDrafter."""

from hyperdrafter.models.paragraph import Paragraph
from hyperdrafter.models.span import Priority, RawSpan, SpanTriageResponse, SpanType
from hyperdrafter.models.highlight import Highlight

__all__ = [
    "Highlight",
    "Paragraph",
    "Priority",
    "RawSpan",
    "SpanTriageResponse",
    "SpanType",
]

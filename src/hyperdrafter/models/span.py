"""Pydantic models for spans returned by the reasoning service."""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Any


class SpanType(str, Enum):
    """Issue categories a span can be flagged with."""

    EXPANSION = "expansion"
    STRUCTURE = "structure"
    FACTUAL = "factual"
    LOGIC = "logic"
    CLARITY = "clarity"
    EVIDENCE = "evidence"
    BASIC = "basic"


class Priority(str, Enum):
    """Three-level issue priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Ordinal rank (0 = most important)."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class RawSpan(BaseModel):
    """
    A span identified by the reasoning service.

    Field names on the wire are camelCase (startOffset/endOffset); they are
    accepted through aliases. Offsets are only trustworthy once the span has
    passed through the span validator.
    """

    text: str = Field(
        ...,
        min_length=1,
        description="Exact paragraph text the span covers"
    )

    start_offset: int = Field(
        ...,
        ge=0,
        alias="startOffset",
        description="Start character offset (inclusive)"
    )

    end_offset: int = Field(
        ...,
        ge=0,
        alias="endOffset",
        description="End character offset (exclusive)"
    )

    type: SpanType = Field(
        ...,
        description="Issue category"
    )

    priority: Priority = Field(
        ...,
        description="Issue priority"
    )

    confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Service confidence (0.0-1.0)"
    )

    reasoning: str = Field(
        default="",
        description="Question or insight for the writer"
    )

    model_config = {"populate_by_name": True}


class SpanTriageResponse(BaseModel):
    """Untrusted span payload as parsed from the service output."""

    spans: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Raw span objects; not yet validated against the paragraph"
    )

"""Highlight model: a validated span anchored to a paragraph."""

from pydantic import BaseModel, Field, model_validator

from hyperdrafter.models.span import Priority, SpanType


class Highlight(BaseModel):
    """Validated, offset-corrected span ready for display.

    At creation time content[start_index:end_index] == full_text for the
    paragraph the span was validated against.
    """

    id: str = Field(
        ...,
        description="Highlight identifier (highlight-<paragraph_id>-<n>)"
    )

    paragraph_id: str = Field(
        ...,
        description="Paragraph the highlight belongs to"
    )

    type: SpanType = Field(
        ...,
        description="Issue category"
    )

    priority: Priority = Field(
        ...,
        description="Issue priority"
    )

    start_index: int = Field(
        ...,
        ge=0,
        description="Start character index (inclusive)"
    )

    end_index: int = Field(
        ...,
        ge=0,
        description="End character index (exclusive)"
    )

    text: str = Field(
        ...,
        description="Truncated preview of the highlighted text"
    )

    full_text: str = Field(
        ...,
        description="Complete highlighted text"
    )

    note: str = Field(
        default="",
        description="Reasoning shown to the writer"
    )

    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Service confidence (0.0-1.0)"
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_interval(self) -> "Highlight":
        if self.start_index >= self.end_index:
            raise ValueError(
                f"start_index ({self.start_index}) must be before end_index ({self.end_index})"
            )
        return self

    @property
    def length(self) -> int:
        return self.end_index - self.start_index

    @property
    def sequence(self) -> int:
        """Numeric suffix of the id, or -1 if the id has none."""
        _, _, suffix = self.id.rpartition("-")
        return int(suffix) if suffix.isdigit() else -1

    def overlaps(self, other: "Highlight") -> bool:
        """Check whether the half-open intervals intersect."""
        return not (self.end_index <= other.start_index or self.start_index >= other.end_index)


def preview_text(text: str, max_length: int = 30) -> str:
    """Truncate text for previews, marking truncation with '...'."""
    return text[:max_length] + ("..." if len(text) > max_length else "")

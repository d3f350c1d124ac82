"""Paragraph model: the unit of analysis."""

from pydantic import BaseModel, Field


class Paragraph(BaseModel):
    """A paragraph of the document being edited.

    Identity is stable across edits; content is replaced wholesale.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Stable paragraph identifier"
    )

    content: str = Field(
        default="",
        description="Current paragraph text"
    )

    model_config = {"frozen": True}

    @property
    def is_blank(self) -> bool:
        """True when the paragraph has no non-whitespace content."""
        return not self.content.strip()


class DocumentContext(BaseModel):
    """Whole-document context sent along with a paragraph analysis."""

    paragraphs: list[Paragraph] = Field(
        default_factory=list,
        description="Non-empty paragraphs of the document, in order"
    )

    target_paragraph_id: str = Field(
        ...,
        description="Id of the paragraph being analyzed"
    )

    model_config = {"frozen": True}

    @classmethod
    def from_paragraphs(cls, paragraphs: list[Paragraph], target_paragraph_id: str) -> "DocumentContext":
        """Build context from a paragraph list, dropping blank paragraphs."""
        return cls(
            paragraphs=[p for p in paragraphs if not p.is_blank],
            target_paragraph_id=target_paragraph_id,
        )

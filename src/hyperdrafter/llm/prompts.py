"""Span triage prompt templates and builders.

All prompt construction for the reasoning service goes through this module.
"""

from textwrap import dedent
from typing import Optional

from hyperdrafter.models.paragraph import DocumentContext
from hyperdrafter.models.span import Priority, SpanType


SPAN_TYPES = "|".join(t.value for t in SpanType)
PRIORITIES = "|".join(p.value for p in Priority)
SPAN_TYPE_LIST = ", ".join(t.value for t in SpanType)
PRIORITY_LIST = ", ".join(p.value for p in Priority)


def build_span_triage_system_prompt() -> str:
    """Build the system prompt describing the task and output contract."""
    return dedent(f"""
        You are a thoughtful writing coach that helps writers think more deeply about their
        ideas and improve the structure of their arguments. Focus on high-value feedback that
        helps the writer develop their thinking, not basic proofreading.

        Identify specific text spans in the target paragraph that would benefit from deeper
        thinking or structural improvement:

        HIGH PRIORITY (focus on these first):
        - expansion: Vague claims, unsupported statements, or ideas that need more development
        - structure: Poor flow, missing transitions, illogical organization
        - factual: Questionable claims, missing evidence, or assertions that need support
        - logic: Conclusions that don't follow from premises, missing steps in reasoning

        MEDIUM PRIORITY:
        - clarity: Genuinely confusing or ambiguous statements that impede understanding
        - evidence: Claims that would benefit from examples, data, or citations

        LOW PRIORITY (only flag if no higher-priority issues exist):
        - basic: Grammar, spelling, or simple style problems

        For each span you identify:
        1. Extract the EXACT text (must match character-for-character, including spaces and punctuation)
        2. Calculate character offsets within the target paragraph:
           - startOffset: position where your span begins (0-based)
           - endOffset: position where your span ends (exclusive)
           - Example: In "Hello world", "world" starts at position 6 and ends at position 11
        3. Categorize: {SPAN_TYPE_LIST}
        4. Set priority: {PRIORITY_LIST}
        5. Rate your confidence (0.0-1.0)
        6. Provide reasoning that helps the writer think deeper

        RULES:
        - Only analyze the target paragraph; other paragraphs are context
        - No overlapping spans - each character should only be in one span
        - Be selective and focus on spans that genuinely help the writer

        Respond with valid JSON in this exact format:
        {{
          "spans": [
            {{
              "text": "exact text from the paragraph",
              "startOffset": 0,
              "endOffset": 10,
              "type": "{SPAN_TYPES}",
              "priority": "{PRIORITIES}",
              "confidence": 0.85,
              "reasoning": "Question or insight that helps the writer think deeper"
            }}
          ]
        }}

        CRITICAL:
        - Use only standard ASCII quotes (")
        - Escape any quotes in text or reasoning with \\"
        - Do not include line breaks in reasoning text
        - Keep reasoning under 100 characters

        If no significant issues are found, return: {{"spans": []}}
    """).strip()


def build_span_triage_prompt(
    paragraph_text: str,
    document_context: Optional[DocumentContext] = None,
) -> str:
    """Build the user prompt for one paragraph.

    Args:
        paragraph_text: Text of the paragraph to analyze
        document_context: Optional surrounding document; the target paragraph
            is marked with target="true"

    Returns:
        Prompt string
    """
    parts = []

    if document_context is not None and len(document_context.paragraphs) > 1:
        parts.append("<document>")
        for paragraph in document_context.paragraphs:
            target = ' target="true"' if paragraph.id == document_context.target_paragraph_id else ""
            parts.append(f'<paragraph id="{xml_escape(paragraph.id)}"{target}>')
            parts.append(paragraph.content)
            parts.append("</paragraph>")
        parts.append("</document>")
        parts.append("")

    parts.append("<target_paragraph>")
    parts.append(paragraph_text)
    parts.append("</target_paragraph>")

    return "\n".join(parts)


def xml_escape(text: str) -> str:
    """Escape XML special characters.

    Args:
        text: Text to escape

    Returns:
        Escaped text safe for XML attributes/content
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )

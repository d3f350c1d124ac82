"""Configuration models for HyperDrafter."""

from pydantic import BaseModel, Field, HttpUrl
from pathlib import Path
from typing import Literal
import os
import stat


DEFAULT_MODEL = "claude-3-5-haiku-20241022"


def check_permissions(path: Path) -> None:
    """Refuse config files readable by group or others (the file holds an API key).

    Raises:
        PermissionError: If file permissions are too open
    """
    mode = os.stat(path).st_mode
    if mode & (stat.S_IRWXG | stat.S_IRWXO):
        raise PermissionError(
            f"Config file has overly permissive permissions: {oct(mode)}\n"
            f"Run: chmod 600 {path}"
        )


class LLMConfig(BaseModel):
    """Configuration for the reasoning service connection."""

    provider: Literal["anthropic", "openai"] = Field(
        default="anthropic",
        description="API flavour: Anthropic Messages API or OpenAI-compatible chat completions"
    )

    endpoint: HttpUrl = Field(
        default="https://api.anthropic.com/v1",
        description="API base URL (the /messages or /chat/completions path is appended)"
    )

    api_key: str = Field(
        default="",
        description="API key for authentication (checked at request time)"
    )

    model: str = Field(
        default=DEFAULT_MODEL,
        description="Model identifier (e.g., 'claude-3-5-haiku-20241022', 'gpt-4o-mini')"
    )

    max_tokens: int = Field(
        default=1024,
        ge=64,
        description="Maximum tokens the service may generate per paragraph"
    )

    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Sampling temperature"
    )

    stream: bool = Field(
        default=True,
        description="Request an incrementally streamed response instead of a single JSON body"
    )

    model_config = {"frozen": True}


class AnalysisConfig(BaseModel):
    """Configuration for the incremental analysis pipeline."""

    quiet_period_ms: int = Field(
        default=1000,
        ge=0,
        description="Milliseconds of stable content before a paragraph is analyzed"
    )

    fuzzy_window: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Maximum offset drift (in characters) corrected per span boundary"
    )

    include_document_context: bool = Field(
        default=True,
        description="Send the other paragraphs of the document along with the target"
    )

    preview_length: int = Field(
        default=30,
        ge=1,
        description="Characters kept in a highlight's preview text"
    )

    model_config = {"frozen": True}

    @property
    def quiet_period(self) -> float:
        """Quiet period in seconds."""
        return self.quiet_period_ms / 1000.0


class Config(BaseModel):
    """Root configuration for HyperDrafter."""

    llm: LLMConfig = Field(default_factory=LLMConfig, description="Reasoning service settings")
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig, description="Pipeline settings")

    model_config = {"frozen": True}

"""Reasoning service client with SSE streaming support."""

import httpx
import json
from typing import Any, AsyncIterator, Callable, Dict, Optional, Union
import asyncio

from hyperdrafter.llm.prompts import build_span_triage_prompt, build_span_triage_system_prompt
from hyperdrafter.llm.streaming import parse_partial_spans, parse_span_response
from hyperdrafter.models.config import LLMConfig
from hyperdrafter.models.paragraph import DocumentContext
from hyperdrafter.models.span import SpanTriageResponse
from hyperdrafter.services.cancellation import CancellationToken
from hyperdrafter.services.exceptions import ConfigurationError, ReasoningServiceError
from hyperdrafter.utils.logging import get_logger


logger = get_logger(__name__)

ANTHROPIC_VERSION = "2023-06-01"

SettingsProvider = Callable[[], LLMConfig]
PartialSpansCallback = Callable[[list[dict[str, Any]]], None]


def _extract_content_from_anthropic_event(data: Dict[str, Any]) -> str | None:
    """
    Extract text from an Anthropic Messages API streaming event.

    Text arrives in events like:
    {
        "type": "content_block_delta",
        "index": 0,
        "delta": {"type": "text_delta", "text": "..."}
    }

    Args:
        data: Parsed JSON event payload

    Returns:
        Text fragment if present, None otherwise

    Raises:
        ReasoningServiceError: If the event is an error event
    """
    event_type = data.get("type")
    if event_type == "error":
        error = data.get("error") or {}
        raise ReasoningServiceError(
            error.get("message", "stream error"),
            error_type=error.get("type", "unknown"),
        )
    if event_type == "content_block_delta":
        delta = data.get("delta") or {}
        text = delta.get("text")
        if isinstance(text, str):
            return text
    return None


def _extract_content_from_openai_chunk(data: Dict[str, Any]) -> str | None:
    """
    Extract content from OpenAI-style streaming chunk.

    OpenAI-compatible servers return chunks like:
    {
        "choices": [{
            "delta": {"content": "..."},
            "finish_reason": null
        }]
    }

    Args:
        data: Parsed JSON chunk from OpenAI API

    Returns:
        Content string if present, None otherwise
    """
    try:
        if "choices" in data and len(data["choices"]) > 0:
            choice = data["choices"][0]
            if "delta" in choice and "content" in choice["delta"]:
                return choice["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        pass
    return None


def _extract_message_text(config: LLMConfig, data: Dict[str, Any]) -> str:
    """Extract the generated text from a non-streamed response body."""
    if config.provider == "anthropic":
        blocks = data.get("content") or []
        return "".join(
            block.get("text", "") for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )

    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


class LLMClient:
    """
    HTTP client for the span-triage reasoning service.

    Supports the Anthropic Messages API and OpenAI-compatible chat completion
    APIs, in streamed (SSE) or single-response mode. Settings are read from
    the settings provider on every call, so credential and model changes take
    effect on the next request. Requests are never retried.
    """

    def __init__(self, settings: Union[LLMConfig, SettingsProvider]):
        """
        Initialize client.

        Args:
            settings: LLMConfig, or a zero-argument callable returning the
                current LLMConfig
        """
        if isinstance(settings, LLMConfig):
            self._settings: SettingsProvider = lambda: settings
        else:
            self._settings = settings
        self.timeout = httpx.Timeout(
            connect=10.0,
            read=60.0,  # Per-read timeout for streaming
            write=10.0,
            pool=10.0
        )

    def current_settings(self) -> LLMConfig:
        """
        Read the settings for a request about to be made.

        Raises:
            ConfigurationError: If no API key is configured
        """
        config = self._settings()
        if not config.api_key:
            raise ConfigurationError("llm.api_key", "API key not configured")
        return config

    def _build_request(
        self,
        config: LLMConfig,
        prompt: str,
        system_prompt: str,
        stream: bool,
    ) -> tuple[str, Dict[str, str], Dict[str, Any]]:
        base_url = str(config.endpoint).rstrip("/")

        if config.provider == "anthropic":
            url = base_url + "/messages"
            headers = {
                "x-api-key": config.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            }
            payload: Dict[str, Any] = {
                "model": config.model,
                "max_tokens": config.max_tokens,
                "temperature": config.temperature,
                "system": system_prompt,
                "messages": [{"role": "user", "content": prompt}],
                "stream": stream,
            }
        else:
            url = base_url + "/chat/completions"
            headers = {"Authorization": f"Bearer {config.api_key}"}
            payload = {
                "model": config.model,
                "max_tokens": config.max_tokens,
                "temperature": config.temperature,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt}
                ],
                "stream": stream,
            }

        return url, headers, payload

    @staticmethod
    def _resolve_request_id(request_id: Optional[str]) -> str:
        # Fall back to the asyncio task name
        if request_id:
            return request_id
        current_task = asyncio.current_task()
        task_name = current_task.get_name() if current_task else None
        if task_name and task_name != "None":
            return task_name
        return "unknown"

    async def _stream_text(
        self,
        config: LLMConfig,
        prompt: str,
        system_prompt: str,
        cancel_token: Optional[CancellationToken],
        request_id: str,
    ) -> AsyncIterator[str]:
        """Yield generated text fragments from an SSE response."""
        url, headers, payload = self._build_request(config, prompt, system_prompt, stream=True)
        extract = (
            _extract_content_from_anthropic_event
            if config.provider == "anthropic"
            else _extract_content_from_openai_chunk
        )

        logger.info(
            "llm_request_started",
            request_id=request_id,
            model=config.model,
            endpoint=str(config.endpoint),
            provider=config.provider,
            prompt_length=len(prompt),
            stream=True,
        )
        logger.debug("llm_request_payload", request_id=request_id, payload=payload)

        fragment_count = 0

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            async with client.stream("POST", url, json=payload, headers=headers) as response:
                response.raise_for_status()

                async for line in response.aiter_lines():
                    if cancel_token is not None:
                        cancel_token.raise_if_cancelled()

                    if not line.startswith("data: "):
                        continue  # Blank separators and "event:" lines

                    json_line = line[6:]
                    if json_line == "[DONE]":
                        logger.debug("llm_response_sse_done", request_id=request_id)
                        break

                    try:
                        data = json.loads(json_line)
                    except json.JSONDecodeError as e:
                        logger.error(
                            "llm_malformed_json",
                            request_id=request_id,
                            line=line,
                            error=str(e)
                        )
                        continue

                    if not isinstance(data, dict):
                        continue

                    fragment = extract(data)
                    if fragment:
                        fragment_count += 1
                        yield fragment

        logger.info(
            "llm_request_completed",
            request_id=request_id,
            fragment_count=fragment_count,
        )

    async def _complete_text(
        self,
        config: LLMConfig,
        prompt: str,
        system_prompt: str,
        request_id: str,
    ) -> str:
        """Return the generated text from a single JSON response."""
        url, headers, payload = self._build_request(config, prompt, system_prompt, stream=False)

        logger.info(
            "llm_request_started",
            request_id=request_id,
            model=config.model,
            endpoint=str(config.endpoint),
            provider=config.provider,
            prompt_length=len(prompt),
            stream=False,
        )

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()

        if isinstance(data, dict) and data.get("type") == "error":
            error = data.get("error") or {}
            raise ReasoningServiceError(
                error.get("message", "request failed"),
                error_type=error.get("type", "unknown"),
            )

        text = _extract_message_text(config, data if isinstance(data, dict) else {})
        logger.info("llm_request_completed", request_id=request_id, content_length=len(text))
        return text

    async def stream_spans(
        self,
        paragraph_text: str,
        document_context: Optional[DocumentContext] = None,
        cancel_token: Optional[CancellationToken] = None,
        request_id: Optional[str] = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Stream raw span objects as soon as each one is complete.

        Spans are untrusted: run them through the span validator before use.

        Args:
            paragraph_text: Paragraph to analyze
            document_context: Optional whole-document context
            cancel_token: Cancellation checked between streamed lines
            request_id: Optional identifier for logging

        Yields:
            Raw span dicts

        Raises:
            ConfigurationError: If no API key is configured
            AnalysisCancelledError: If cancel_token fires mid-stream
            httpx.HTTPError: On network or HTTP errors

        Example:
            >>> async for span in client.stream_spans("Cats are better than dogs."):
            ...     print(span["text"], span["startOffset"])
        """
        if not paragraph_text.strip():
            return

        config = self.current_settings()
        request_id = self._resolve_request_id(request_id)

        accumulated = ""
        yielded = 0
        async for fragment in self._stream_text(
            config,
            build_span_triage_prompt(paragraph_text, document_context),
            build_span_triage_system_prompt(),
            cancel_token,
            request_id,
        ):
            accumulated += fragment
            spans = parse_partial_spans(accumulated)
            for span in spans[yielded:]:
                yield span
            yielded = max(yielded, len(spans))

    async def identify_spans(
        self,
        paragraph_text: str,
        document_context: Optional[DocumentContext] = None,
        cancel_token: Optional[CancellationToken] = None,
        on_partial: Optional[PartialSpansCallback] = None,
        request_id: Optional[str] = None,
    ) -> SpanTriageResponse:
        """
        Ask the reasoning service which spans of a paragraph need attention.

        Args:
            paragraph_text: Paragraph to analyze
            document_context: Optional whole-document context
            cancel_token: Cancellation checked between streamed lines and
                before parsing
            on_partial: Called with all spans recovered so far whenever a new
                complete span arrives (streaming mode only)
            request_id: Optional identifier for logging

        Returns:
            SpanTriageResponse with raw, unvalidated spans (empty if the
            output could not be parsed)

        Raises:
            ConfigurationError: If no API key is configured
            AnalysisCancelledError: If cancel_token fires
            httpx.HTTPError: On network or HTTP errors
            ReasoningServiceError: If the service reports an error
        """
        if not paragraph_text.strip():
            return SpanTriageResponse()

        config = self.current_settings()
        request_id = self._resolve_request_id(request_id)
        prompt = build_span_triage_prompt(paragraph_text, document_context)
        system_prompt = build_span_triage_system_prompt()

        if config.stream:
            content = ""
            seen = 0
            async for fragment in self._stream_text(
                config, prompt, system_prompt, cancel_token, request_id
            ):
                content += fragment
                if on_partial is not None:
                    partial = parse_partial_spans(content)
                    if len(partial) > seen:
                        seen = len(partial)
                        on_partial(partial)
        else:
            content = await self._complete_text(config, prompt, system_prompt, request_id)

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        logger.debug("llm_response_content", request_id=request_id, content=content)
        response = parse_span_response(content)
        logger.info(
            "llm_spans_parsed",
            request_id=request_id,
            span_count=len(response.spans),
        )
        return response

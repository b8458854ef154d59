"""Anthropic-backed text-generation client for the AI-assisted resolver tier.

Wraps the Anthropic SDK with schema-constrained output via forced tool use,
automatic retry on transient errors, and loguru-based call logging.
Implements the :class:`~mapstudio.llm.protocols.TextGenerator` capability.
"""

from __future__ import annotations

import json
import time
from typing import Any

import anthropic
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_TIMEOUT_SECONDS = 60.0
_TOOL_NAME = "emit_structured_json"


class StudioLLMClient:
    """Anthropic API client returning JSON that matches a supplied schema.

    The response schema is sent as a tool ``input_schema`` and the model is
    forced to call that tool, so the returned JSON conforms to the schema.

    Usage::

        client = StudioLLMClient()
        raw = client.generate_structured_json(
            hint="Generate source-to-target mapping suggestions.",
            response_schema={"type": "object", "properties": {...}},
            context_json='{"sourceFields": [...], "targetFields": [...]}',
        )
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_tokens: int = 4096,
        temperature: float = 0.1,
    ) -> None:
        """Initialize the Anthropic client.

        Args:
            api_key: Optional API key. If None, reads from ANTHROPIC_API_KEY env var.
            model: Claude model ID used for every call.
            timeout: Per-request timeout in seconds. A timeout surfaces as
                ``anthropic.APITimeoutError`` after retries are exhausted.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature (0.0-1.0).
        """
        self._client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=30),
        retry=retry_if_exception_type(
            (
                anthropic.APITimeoutError,
                anthropic.APIConnectionError,
                anthropic.RateLimitError,
            )
        ),
        reraise=True,
    )
    def generate_structured_json(
        self,
        hint: str,
        response_schema: dict[str, Any],
        context_json: str,
    ) -> str:
        """Make a schema-constrained LLM call and return the JSON text.

        Args:
            hint: Task instruction, sent as the system prompt.
            response_schema: JSON Schema the output must conform to.
            context_json: JSON payload with the data the model works on.

        Returns:
            JSON text of the tool input produced by the model.

        Raises:
            anthropic.BadRequestError: On invalid request (not retried).
            anthropic.APITimeoutError: After 3 retry attempts.
            anthropic.APIConnectionError: After 3 retry attempts.
            anthropic.RateLimitError: After 3 retry attempts.
            ValueError: If the response carries no tool_use block.
        """
        start = time.monotonic()

        response = self._client.messages.create(  # type: ignore[call-overload]
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system=hint,
            messages=[{"role": "user", "content": context_json}],
            tools=[
                {
                    "name": _TOOL_NAME,
                    "description": "Return the structured result.",
                    "input_schema": response_schema,
                }
            ],
            tool_choice={"type": "tool", "name": _TOOL_NAME},
        )
        elapsed = time.monotonic() - start

        logger.info(
            "LLM call | model={model} temp={temp} "
            "input_tokens={inp} output_tokens={out} latency={lat:.2f}s",
            model=self._model,
            temp=self._temperature,
            inp=response.usage.input_tokens,
            out=response.usage.output_tokens,
            lat=elapsed,
        )

        for block in response.content:
            if block.type == "tool_use" and block.name == _TOOL_NAME:
                return json.dumps(block.input)

        raise ValueError(
            f"No tool_use block found in response for {_TOOL_NAME}. "
            f"Response content types: {[b.type for b in response.content]}"
        )

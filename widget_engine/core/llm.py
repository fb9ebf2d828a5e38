"""Text generation client and LLM output cleanup utilities."""

import json
import re
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from anthropic import AsyncAnthropic
from pydantic import BaseModel

from widget_engine.core.config import get_settings
from widget_engine.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


class GenerationResult(BaseModel):
    """Outcome of one text generation call."""

    success: bool
    response: str | None = None
    error: str | None = None


# Opaque async text generation service: prompt in, GenerationResult out.
TextGenerator = Callable[[str], Awaitable[GenerationResult]]


async def generate_text(prompt: str) -> GenerationResult:
    """
    Send a single prompt to the configured Anthropic model.

    Failures are reported through ``success=False`` rather than raised.
    Retries and backoff are left to the Anthropic client.

    Args:
        prompt: Full prompt text

    Returns:
        GenerationResult with the concatenated text blocks of the reply
    """
    try:
        settings = get_settings()
        client = AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)

        response = await client.messages.create(
            model=settings.RESTRUCTURE_MODEL,
            max_tokens=settings.RESTRUCTURE_MAX_TOKENS,
            temperature=settings.RESTRUCTURE_TEMPERATURE,
            messages=[{"role": "user", "content": prompt}],
        )
    except Exception as e:
        logger.warning(f"Text generation failed: {e}")
        return GenerationResult(success=False, error=str(e) or type(e).__name__)

    text = "".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    )
    logger.debug(f"Text generation returned {len(text)} chars (prompt {len(prompt)} chars)")
    return GenerationResult(success=True, response=text)


_JSON_FENCE = re.compile(r"```json\s*")
_BARE_FENCE = re.compile(r"```\s*")


def extract_json_text(raw_output: str) -> str:
    """Strip wrapper text around a JSON object in LLM output.

    Removes every ```json / ``` fence, then slices from the first "{" to
    the last "}" when both are present. Prose before or after the object
    ("Sure, here you go:") is dropped.
    """
    cleaned = raw_output.strip()
    cleaned = _JSON_FENCE.sub("", cleaned)
    cleaned = _BARE_FENCE.sub("", cleaned)

    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first != -1 and last != -1:
        cleaned = cleaned[first : last + 1]
    return cleaned


def parse_llm_json(raw_output: str, model: type[T]) -> T:
    """
    Parse LLM output as JSON and validate against a Pydantic model.

    Args:
        raw_output: Raw string from LLM response
        model: Pydantic model class to validate against

    Returns:
        Validated Pydantic model instance

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        pydantic.ValidationError: If parsed JSON doesn't match schema
    """
    parsed = json.loads(extract_json_text(raw_output))
    return model.model_validate(parsed)


def parse_llm_json_dict(raw_output: str) -> dict[str, Any]:
    """
    Parse LLM output as a JSON object, returning a raw dict.

    Use this when the raw candidate is needed before Pydantic validation.
    For direct-to-model parsing, use parse_llm_json() instead.

    Args:
        raw_output: Raw string from LLM response

    Returns:
        Parsed dict from JSON

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        ValueError: If the JSON is not an object
    """
    parsed = json.loads(extract_json_text(raw_output))
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed

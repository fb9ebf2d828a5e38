"""Restructure dashboard content into validated widget JSON with an LLM.

Two entry points with different failure policies:

- ``restructure_to_json`` converts existing markdown. It never raises: when
  the model call fails or returns something that does not validate, the
  original markdown comes back wrapped in a single text widget.
  ``restructure_markdown`` returns the same response together with the
  failure reason, for callers that need to tell the two apart.
- ``generate_structured_content`` invents widgets from project facts. There
  is no original content to fall back to, so any failure raises
  ``StructuredContentError``.

Both make exactly one call to the text generator; retries belong to the
generation client.

Usage:
    from widget_engine.chains.restructure_dashboard import restructure_to_json

    structured = await restructure_to_json(markdown, "trialOverview", "trialCoordinator", project_id)
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from widget_engine.chains.dashboard_prompts import (
    build_restructure_prompt,
    build_structured_content_prompt,
)
from widget_engine.core.llm import (
    TextGenerator,
    generate_text,
    parse_llm_json,
    parse_llm_json_dict,
)
from widget_engine.core.logging import get_logger, log_with_context
from widget_engine.core.schemas_widgets import (
    DashboardMetadata,
    StructuredDashboardResponse,
    TextContent,
    TextWidget,
    parse_structured_response,
)

logger = get_logger(__name__)

FALLBACK_SUMMARY = "Original content (restructuring failed)"


class StructuredContentError(RuntimeError):
    """Structured content generation failed (service error or invalid output)."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_fallback_response(markdown: str, tab_type: str, persona: str) -> StructuredDashboardResponse:
    """Minimal valid response wrapping the original markdown verbatim."""
    return StructuredDashboardResponse(
        metadata=DashboardMetadata(
            tab_type=tab_type or "general",
            persona=persona or "trialCoordinator",
            title=f"{tab_type} Content",
            generated_at=_now_iso(),
        ),
        widgets=[
            TextWidget(
                id="text-fallback",
                title="Content",
                order=0,
                content=TextContent(markdown=markdown, summary=FALLBACK_SUMMARY),
            )
        ],
    )


@dataclass
class RestructureResult:
    """A restructured response plus the reason it fell back, if it did."""

    structured: StructuredDashboardResponse
    error: str | None = None

    @property
    def fallback(self) -> bool:
        return self.error is not None


async def _generate_raw(prompt: str, generate: TextGenerator) -> str:
    """One generator call.

    Raises:
        StructuredContentError: If the service reports failure or returns nothing
    """
    result = await generate(prompt)
    if not result.success or not result.response:
        raise StructuredContentError(result.error or "Text generation returned no response")
    return result.response


async def restructure_markdown(
    markdown: str,
    tab_type: str,
    persona: str,
    project_id: str,
    *,
    generate: TextGenerator | None = None,
) -> RestructureResult:
    """
    Restructure free-form markdown, reporting whether the fallback was used.

    Args:
        markdown: Content to restructure
        tab_type: Tab the content belongs to
        persona: Persona the content was written for
        project_id: Project the content belongs to (logging only)
        generate: Text generation service (defaults to the Anthropic client)

    Returns:
        RestructureResult; ``error`` is set when the text-widget fallback was returned
    """
    generate = generate or generate_text
    prompt = build_restructure_prompt(markdown)

    try:
        candidate = parse_llm_json_dict(await _generate_raw(prompt, generate))
        structured = parse_structured_response(candidate)
    except (StructuredContentError, json.JSONDecodeError, ValidationError, ValueError) as e:
        log_with_context(
            logger,
            logging.WARNING,
            f"Restructuring failed, falling back to text widget: {e}",
            project_id=project_id,
            tab_type=tab_type,
            persona=persona,
        )
        return RestructureResult(
            structured=build_fallback_response(markdown, tab_type, persona),
            error=str(e) or type(e).__name__,
        )
    except Exception as e:
        logger.exception(f"Unexpected restructuring error for tab {tab_type}: {e}")
        return RestructureResult(
            structured=build_fallback_response(markdown, tab_type, persona),
            error=str(e) or type(e).__name__,
        )

    log_with_context(
        logger,
        logging.INFO,
        f"Restructured content into {len(structured.widgets)} widgets",
        project_id=project_id,
        tab_type=tab_type,
        persona=persona,
    )
    return RestructureResult(structured=structured)


async def restructure_to_json(
    markdown: str,
    tab_type: str,
    persona: str,
    project_id: str,
    *,
    generate: TextGenerator | None = None,
) -> StructuredDashboardResponse:
    """
    Restructure free-form markdown into a validated structured response.

    Never raises; see ``restructure_markdown`` for the arguments.

    Returns:
        The model's validated response, or the text-widget fallback
    """
    result = await restructure_markdown(markdown, tab_type, persona, project_id, generate=generate)
    return result.structured


async def generate_structured_content(
    tab_type: str,
    persona: str,
    project_info: dict[str, Any],
    project_id: str,
    *,
    generate: TextGenerator | None = None,
) -> StructuredDashboardResponse:
    """
    Generate dashboard widgets for a tab directly from project facts.

    Args:
        tab_type: Tab to generate for
        persona: Persona viewpoint
        project_info: Project facts, rendered as "key: value" lines
        project_id: Project UUID (logging only)
        generate: Text generation service (defaults to the Anthropic client)

    Returns:
        Validated structured response

    Raises:
        StructuredContentError: On service failure, unparseable or invalid output
    """
    generate = generate or generate_text
    prompt = build_structured_content_prompt(tab_type, persona, project_info)

    try:
        structured = parse_llm_json(await _generate_raw(prompt, generate), StructuredDashboardResponse)
    except StructuredContentError:
        logger.error(f"Structured content generation failed for tab {tab_type}")
        raise
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Structured content for tab {tab_type} was not a valid response: {e}")
        raise StructuredContentError(f"Invalid structured response format: {e}") from e

    log_with_context(
        logger,
        logging.INFO,
        f"Generated {len(structured.widgets)} structured widgets",
        project_id=project_id,
        tab_type=tab_type,
        persona=persona,
    )
    return structured

"""API endpoints for project dashboard widgets."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query
from pydantic import Field

from widget_engine.chains.restructure_dashboard import (
    StructuredContentError,
    generate_structured_content,
    restructure_to_json,
)
from widget_engine.core.dashboard_parser import parse_tab_content
from widget_engine.core.logging import get_logger
from widget_engine.core.schemas_widgets import Persona, WireModel, dump_widget
from widget_engine.core.widget_mapper import parse_result_to_records, structured_to_records
from widget_engine.db.dashboard_widgets import list_dashboard_widgets, replace_tab_widgets

logger = get_logger(__name__)

router = APIRouter(
    prefix="/projects/{project_id}/dashboard",
    tags=["dashboard"],
)


class DashboardContentRequest(WireModel):
    user_id: str = Field(..., min_length=1)
    tab_type: str = Field(..., min_length=1)
    content: str
    persona: Persona = "trialCoordinator"
    use_structured: bool = Field(False, description="Restructure with the LLM instead of the markdown parser")


class GenerateStructuredRequest(WireModel):
    user_id: str = Field(..., min_length=1)
    tab_type: str = Field(..., min_length=1)
    persona: Persona
    project_info: dict[str, Any] = Field(default_factory=dict)


@router.post("/content")
async def save_dashboard_content(project_id: UUID, request: DashboardContentRequest) -> dict[str, Any]:
    """Turn tab markdown into widgets and replace the tab's stored widgets."""
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="content must not be empty")

    try:
        if request.use_structured:
            structured = await restructure_to_json(
                request.content, request.tab_type, request.persona, str(project_id)
            )
            # Stored rows are keyed by the requested tab, whatever the model wrote
            structured.metadata.tab_type = request.tab_type
            widgets = structured.widgets
            records = structured_to_records(structured, str(project_id), request.user_id)
            mode = "structured"
        else:
            result = parse_tab_content(request.tab_type, request.content)
            widgets = result.widgets
            records = parse_result_to_records(result, str(project_id), request.user_id)
            mode = "parser"

        replace_tab_widgets(str(project_id), request.tab_type, records)

        return {
            "success": True,
            "widgetsCreated": len(records),
            "widgets": [dump_widget(w) for w in widgets],
            "mode": mode,
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to save dashboard content for project {project_id}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/generate-structured")
async def generate_structured(project_id: UUID, request: GenerateStructuredRequest) -> dict[str, Any]:
    """Generate widgets for a tab from project facts and store them."""
    try:
        structured = await generate_structured_content(
            request.tab_type, request.persona, request.project_info, str(project_id)
        )
    except StructuredContentError as e:
        raise HTTPException(status_code=502, detail=f"Structured content generation failed: {e}") from e

    try:
        structured.metadata.tab_type = request.tab_type
        records = structured_to_records(structured, str(project_id), request.user_id)
        replace_tab_widgets(str(project_id), request.tab_type, records)
    except Exception as e:
        logger.exception(f"Failed to store structured widgets for project {project_id}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    return {
        "success": True,
        "widgetsCreated": len(records),
        "widgets": [dump_widget(w) for w in structured.widgets],
        "metadata": structured.metadata.model_dump(mode="json", by_alias=True, exclude_none=True),
    }


@router.get("")
async def get_dashboard_widgets(
    project_id: UUID,
    tab_type: str | None = Query(None, description="Filter by tab type"),
) -> list[dict[str, Any]]:
    """List stored widgets for a project."""
    try:
        return list_dashboard_widgets(str(project_id), tab_type=tab_type)
    except Exception as e:
        logger.exception(f"Failed to list dashboard widgets for project {project_id}")
        raise HTTPException(status_code=500, detail=str(e)) from e

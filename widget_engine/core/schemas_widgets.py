"""Pydantic schemas for dashboard widgets.

A widget is one self-contained unit of dashboard content. Six variants share
``{id, type, title, order}`` and differ in their ``content`` payload; the
``type`` tag decides which content fields are mandatory.

Field names are snake_case in Python and camelCase on the wire
(``diagramType``, ``tabType``, ``generatedAt``...), which is the shape the
restructuring prompt asks the model for.

StructuredDashboardResponse is the gate for untrusted model output: a
candidate either validates completely or is rejected. There is no partial
recovery of individual widgets.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, TypeGuard, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

# =============================================================================
# Enumerations
# =============================================================================

WidgetType = Literal["diagram", "kpi", "table", "timeline", "list", "text"]

DiagramType = Literal[
    "gantt",
    "flowchart",
    "sequenceDiagram",
    "erDiagram",
    "classDiagram",
    "stateDiagram",
    "pie",
    "journey",
    "gitgraph",
    "mindmap",
    "timeline",
]

KPIUnit = Literal["number", "percentage", "days", "count", "currency"]

KPIStatus = Literal["on-track", "at-risk", "critical", "unknown"]

KPITrend = Literal["up", "down", "stable"]

MilestoneStatus = Literal["completed", "in-progress", "upcoming", "delayed"]

ItemPriority = Literal["high", "medium", "low"]

ListType = Literal["checklist", "bullet", "numbered", "requirements"]

Persona = Literal["trialCoordinator", "regulatoryAdvisor"]

TabType = Literal[
    "trialOverview",
    "taskChecklists",
    "teamWorkflows",
    "trialTimeline",
    "qualityMetrics",
    "protocolRequirements",
    "documentControl",
    "complianceDiagrams",
    "riskControls",
    "auditPreparation",
    "smartAlerts",
    "general",
]

TAB_DISPLAY_NAMES: dict[str, str] = {
    "trialOverview": "Trial Overview",
    "taskChecklists": "Task Checklists",
    "teamWorkflows": "Team Workflows",
    "trialTimeline": "Trial Timeline",
    "qualityMetrics": "Quality Metrics",
    "protocolRequirements": "Protocol Requirements",
    "documentControl": "Document Control",
    "complianceDiagrams": "Compliance Diagrams",
    "riskControls": "Risk & Controls",
    "auditPreparation": "Audit Preparation",
    "smartAlerts": "Smart Alerts",
    "general": "General",
}

# Lowercase spelling -> canonical diagram type
_DIAGRAM_TYPES: dict[str, str] = {t.lower(): t for t in get_args(DiagramType)}
_DIAGRAM_TYPES.update({"graph": "flowchart", "statediagram-v2": "stateDiagram"})

_KPI_STATUSES = frozenset(get_args(KPIStatus))


def get_tab_display_name(tab_type: str) -> str:
    """Display name for a tab type, falling back to the raw tab string."""
    return TAB_DISPLAY_NAMES.get(tab_type, tab_type)


def _hyphenate(raw: str) -> str:
    return re.sub(r"[\s_]+", "-", raw.strip().lower())


def normalize_kpi_status(raw: str) -> KPIStatus:
    """Map a free-text status ("On Track", "at_risk") onto KPIStatus.

    Unrecognised spellings become "unknown".
    """
    status = _hyphenate(raw)
    return status if status in _KPI_STATUSES else "unknown"  # type: ignore[return-value]


def normalize_diagram_type(raw: str) -> str | None:
    """Canonical diagram type for a declared type token, or None if unknown."""
    return _DIAGRAM_TYPES.get(raw.strip().lower())


# =============================================================================
# Content models
#
# Content checks are presence checks: a field the widget type needs must be
# there, but its value is kept exactly as received. The Literal vocabularies
# above describe what the prompt asks for and what the parser emits; model
# output outside them ("percent", "pending", "quadrantChart") is accepted.
# =============================================================================

Scalar = Union[int, float, str]


class WireModel(BaseModel):
    """Base for models serialised with camelCase keys.

    Unknown keys are kept so a validated model dumps back to what the model
    produced.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class DiagramContent(WireModel):
    diagram_type: str = Field(..., min_length=1)
    diagram_code: str = Field(..., min_length=1)
    description: str | None = None


class KPIContent(WireModel):
    # Must be present; null and non-numeric values ("92%") are allowed
    value: Scalar | None
    target: Scalar | None = None
    unit: str = Field(..., min_length=1)
    status: str | None = None
    trend: str | None = None
    description: str | None = None


class TableContent(WireModel):
    headers: list[Any]
    rows: list[Any]
    description: str | None = None


class Milestone(WireModel):
    name: str
    date: str
    status: str | None = None
    description: str | None = None
    dependencies: list[str] | None = None


class TimelineContent(WireModel):
    milestones: list[Milestone]


class ListItem(WireModel):
    text: str
    checked: bool | None = None
    priority: str | None = None
    category: str | None = None


class ListContent(WireModel):
    # Models sometimes emit ["a", "b"] instead of [{"text": "a"}, ...]
    items: list[Union[ListItem, str]]
    list_type: str | None = None


class TextContent(WireModel):
    markdown: str
    summary: str | None = None


# =============================================================================
# Widgets
# =============================================================================


class WidgetBase(WireModel):
    """Fields shared by every widget variant."""

    id: str | None = None
    title: str = Field(..., min_length=1)
    order: int = Field(..., description="Zero-based rendering rank")


class DiagramWidget(WidgetBase):
    type: Literal["diagram"] = "diagram"
    content: DiagramContent


class KPIWidget(WidgetBase):
    type: Literal["kpi"] = "kpi"
    content: KPIContent


class TableWidget(WidgetBase):
    type: Literal["table"] = "table"
    content: TableContent


class TimelineWidget(WidgetBase):
    type: Literal["timeline"] = "timeline"
    content: TimelineContent


class ListWidget(WidgetBase):
    type: Literal["list"] = "list"
    content: ListContent


class TextWidget(WidgetBase):
    type: Literal["text"] = "text"
    content: TextContent


Widget = Annotated[
    Union[DiagramWidget, KPIWidget, TableWidget, TimelineWidget, ListWidget, TextWidget],
    Field(discriminator="type"),
]


# =============================================================================
# Responses
# =============================================================================


class DashboardMetadata(WireModel):
    tab_type: str = Field(..., min_length=1)
    persona: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    generated_at: str | None = None


class StructuredDashboardResponse(WireModel):
    """Validated output of the AI restructuring pipeline."""

    metadata: DashboardMetadata
    widgets: list[Widget]


class ParseResult(WireModel):
    """Output of the deterministic markdown parser."""

    tab_type: str
    widgets: list[Widget]


# =============================================================================
# Validation gate
# =============================================================================


def parse_structured_response(candidate: Any) -> StructuredDashboardResponse:
    """Validate an untrusted candidate into a StructuredDashboardResponse.

    Raises:
        pydantic.ValidationError: If any part of the candidate is malformed
    """
    return StructuredDashboardResponse.model_validate(candidate)


def validate_structured_response(candidate: Any) -> TypeGuard[dict[str, Any]]:
    """Return True iff the candidate is a complete, well-formed structured response.

    Rejects non-objects, missing metadata/widgets, empty metadata fields,
    widgets without type/title/order, widgets missing their type-specific
    content, and unknown widget types.
    """
    try:
        parse_structured_response(candidate)
    except ValidationError:
        return False
    return True


def dump_widget(widget: BaseModel) -> dict[str, Any]:
    """JSON-ready camelCase dict for a widget (None fields omitted)."""
    return widget.model_dump(mode="json", by_alias=True, exclude_none=True)

"""Flatten widgets into persistence-ready dashboard widget records."""

import json
from collections.abc import Iterable
from typing import Any

from pydantic import Field

from widget_engine.core.schemas_widgets import (
    ParseResult,
    StructuredDashboardResponse,
    Widget,
    WireModel,
    dump_widget,
)


class DashboardWidgetRecord(WireModel):
    """One stored dashboard widget, scoped to a project and user."""

    project_id: str
    user_id: str
    tab_type: str
    widget_type: str
    title: str
    content: dict[str, Any] = Field(default_factory=dict)
    raw_content: str
    order: int


def widgets_to_records(
    widgets: Iterable[Widget],
    tab_type: str,
    project_id: str,
    user_id: str,
) -> list[DashboardWidgetRecord]:
    """
    Map widgets to records one-to-one.

    List position and each widget's ``order`` are kept as given; callers that
    need render order sort by ``order`` themselves.
    """
    records = []
    for widget in widgets:
        payload = dump_widget(widget)
        records.append(
            DashboardWidgetRecord(
                project_id=project_id,
                user_id=user_id,
                tab_type=tab_type,
                widget_type=widget.type,
                title=widget.title,
                content=payload.get("content", {}),
                raw_content=json.dumps(payload),
                order=widget.order,
            )
        )
    return records


def structured_to_records(
    structured: StructuredDashboardResponse,
    project_id: str,
    user_id: str,
) -> list[DashboardWidgetRecord]:
    """Records for a validated structured response, tagged with its metadata tab type."""
    return widgets_to_records(structured.widgets, structured.metadata.tab_type, project_id, user_id)


def parse_result_to_records(
    result: ParseResult,
    project_id: str,
    user_id: str,
) -> list[DashboardWidgetRecord]:
    """Records for deterministic parser output."""
    return widgets_to_records(result.widgets, result.tab_type, project_id, user_id)


def record_to_row(record: DashboardWidgetRecord) -> dict[str, Any]:
    """snake_case row for the dashboard widgets table."""
    return record.model_dump(mode="json")

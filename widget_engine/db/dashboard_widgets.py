"""Dashboard widget database operations."""

from collections.abc import Sequence
from typing import Any

from widget_engine.core.config import get_settings
from widget_engine.core.logging import get_logger
from widget_engine.core.widget_mapper import DashboardWidgetRecord, record_to_row
from widget_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def _table():
    return get_supabase().table(get_settings().DASHBOARD_WIDGETS_TABLE)


def insert_dashboard_widgets(records: Sequence[DashboardWidgetRecord]) -> int:
    """
    Insert dashboard widget records.

    Args:
        records: Records from the widget mapper

    Returns:
        Number of rows inserted
    """
    if not records:
        return 0

    try:
        response = _table().insert([record_to_row(r) for r in records]).execute()
        inserted_count = len(response.data) if response.data else 0
        logger.info(
            f"Inserted {inserted_count} dashboard widgets",
            extra={"project_id": records[0].project_id},
        )
        return inserted_count

    except Exception as e:
        logger.error(f"Failed to insert dashboard widgets: {e}")
        raise


def replace_tab_widgets(
    project_id: str,
    tab_type: str,
    records: Sequence[DashboardWidgetRecord],
) -> list[dict[str, Any]]:
    """
    Replace every stored widget of one project tab.

    Args:
        project_id: Project UUID
        tab_type: Tab whose widgets are replaced
        records: New records (may be empty, which clears the tab)

    Returns:
        Inserted rows as returned by the database
    """
    try:
        _table().delete().eq("project_id", project_id).eq("tab_type", tab_type).execute()

        if not records:
            logger.info(f"Cleared {tab_type} widgets", extra={"project_id": project_id})
            return []

        response = _table().insert([record_to_row(r) for r in records]).execute()
        rows = response.data or []
        logger.info(
            f"Replaced {tab_type} widgets with {len(rows)} rows",
            extra={"project_id": project_id},
        )
        return rows

    except Exception as e:
        logger.error(f"Failed to replace {tab_type} widgets for project {project_id}: {e}")
        raise


def list_dashboard_widgets(project_id: str, tab_type: str | None = None) -> list[dict[str, Any]]:
    """
    List stored widgets for a project, optionally for one tab.

    Args:
        project_id: Project UUID
        tab_type: Optional tab filter

    Returns:
        Rows ordered by widget order
    """
    try:
        query = _table().select("*").eq("project_id", project_id)
        if tab_type:
            query = query.eq("tab_type", tab_type)

        response = query.order("order").execute()
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list dashboard widgets for project {project_id}: {e}")
        raise

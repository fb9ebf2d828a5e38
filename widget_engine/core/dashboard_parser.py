"""Deterministic markdown parser for dashboard tab content.

Turns free-form markdown produced for a trial tab into typed dashboard
widgets without calling a model. Five independent passes run over the same
text in a fixed order:

1. diagrams   - fenced code blocks (untagged, ``mermaid`` or ``diagram``)
2. KPIs       - ``**Label:** value[/target][(status)]`` and ``Label: value...``
3. tables     - contiguous pipe-table blocks
4. timeline   - ``<event>: <Month YYYY | YYYY-MM-DD>`` lines, one widget total
5. lists      - a heading directly followed by more than two bullet lines

Each pass is a pure function ``(content, next_order) -> (widgets, next_order)``
so it can be tested on its own. Orders are assigned by pass, not by position
in the document: all diagrams first, then KPIs, tables, the timeline and
lists. Passes are not mutually exclusive; a line such as
``Database Lock: 2026-07-01`` is claimed by both the KPI and timeline passes.

Usage:
    from widget_engine.core.dashboard_parser import parse_tab_content

    result = parse_tab_content("qualityMetrics", markdown)
"""

import re

from widget_engine.core.logging import get_logger
from widget_engine.core.schemas_widgets import (
    DiagramContent,
    DiagramWidget,
    KPIContent,
    KPIWidget,
    ListContent,
    ListItem,
    ListWidget,
    Milestone,
    ParseResult,
    TableContent,
    TableWidget,
    TextContent,
    TextWidget,
    TimelineContent,
    TimelineWidget,
    Widget,
    get_tab_display_name,
    normalize_diagram_type,
    normalize_kpi_status,
)

logger = get_logger(__name__)

# =============================================================================
# Patterns
# =============================================================================

# Any fenced block, so that blocks with other info strings (```json) are
# consumed whole instead of their closing fence opening a new block.
_FENCED_BLOCK = re.compile(
    r"^[ \t]*```[ \t]*([\w-]*)[^\n]*\n(.*?)^[ \t]*```[ \t]*$",
    re.MULTILINE | re.DOTALL,
)
_DIAGRAM_TAGS = frozenset({"", "mermaid", "diagram"})
_DIAGRAM_DECLARATION = re.compile(
    r"^(graph|flowchart|sequenceDiagram|classDiagram|stateDiagram(?:-v2)?|erDiagram"
    r"|journey|gantt|pie|gitgraph|mindmap|timeline)",
    re.IGNORECASE,
)

_HEADING = re.compile(r"^[ \t]*#{1,6}[ \t]+(.+?)[ \t#]*$", re.MULTILINE)

_NUMBER = r"(\d+(?:\.\d+)?)"
_KPI_TAIL = rf"[ \t]*{_NUMBER}[ \t]*(?:/[ \t]*{_NUMBER})?[ \t]*(?:\(([^)\n]+)\))?"
_KPI_LINE = re.compile(
    rf"\*\*([^*\n]+?):\*\*{_KPI_TAIL}"  # **Label:** 125 / 500 (on-track)
    rf"|(\w+(?:[ \t]+\w+)*):{_KPI_TAIL}"  # Label: 125 / 500 (on-track)
)

_TABLE_LINE = re.compile(r"^[ \t]*\|.*\|[ \t]*$")
_TABLE_SEPARATOR = re.compile(r"^[ \t]*\|?[ \t:|-]+\|?[ \t]*$")

_MONTH_YEAR = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?[ \t]+\d{4}"
_ISO_DATE = r"\d{4}-\d{2}-\d{2}"
_MILESTONE_LINE = re.compile(
    rf"^[ \t]*(?:\*\*|[-*]|\d+\.)?[ \t]*(.+?):(?:\*\*)?[ \t]*({_MONTH_YEAR}|{_ISO_DATE})",
    re.IGNORECASE | re.MULTILINE,
)

_LIST_LINE = re.compile(r"^[ \t]*([*-]|\d+\.)[ \t]+(.+?)[ \t]*$")
_CHECKBOX = re.compile(r"^\[([ xX])\][ \t]*(.*)$")

# Lists shorter than this are treated as incidental, not as widgets
_MIN_LIST_ITEMS = 3


def _last_heading(text: str) -> str | None:
    """Text of the last markdown heading in ``text``, if any."""
    headings = [h.strip() for h in _HEADING.findall(text) if h.strip()]
    return headings[-1] if headings else None


def _widget_id(widget_type: str, order: int) -> str:
    return f"{widget_type}-{order}"


# =============================================================================
# Pass 1: diagrams
# =============================================================================


def extract_diagrams(content: str, next_order: int = 0) -> tuple[list[Widget], int]:
    """Extract fenced diagram blocks.

    The title comes from the nearest heading between the previous fenced
    block and this one, else ``"{Type} Diagram"``.
    """
    widgets: list[Widget] = []
    previous_end = 0

    for match in _FENCED_BLOCK.finditer(content):
        tag = match.group(1).lower()
        code = match.group(2).strip()
        segment = content[previous_end : match.start()]
        previous_end = match.end()

        if tag not in _DIAGRAM_TAGS or not code:
            continue

        declared = _DIAGRAM_DECLARATION.match(code)
        diagram_type = (normalize_diagram_type(declared.group(1)) if declared else None) or "flowchart"
        title = _last_heading(segment) or f"{diagram_type.capitalize()} Diagram"

        widgets.append(
            DiagramWidget(
                id=_widget_id("diagram", next_order),
                title=title,
                order=next_order,
                content=DiagramContent(diagram_type=diagram_type, diagram_code=code),
            )
        )
        next_order += 1

    return widgets, next_order


# =============================================================================
# Pass 2: KPIs
# =============================================================================


def extract_kpis(content: str, next_order: int = 0) -> tuple[list[Widget], int]:
    """Extract label/value pairs with an optional target and status.

    Without an explicit status, a KPI is on-track when it has a target and
    meets it, at-risk otherwise.
    """
    widgets: list[Widget] = []

    for match in _KPI_LINE.finditer(content):
        if match.group(1) is not None:
            label, value, target, status = match.group(1, 2, 3, 4)
        else:
            label, value, target, status = match.group(5, 6, 7, 8)

        label = label.strip()
        if not label:
            continue

        value_num = float(value)
        target_num = float(target) if target is not None else None
        if status:
            kpi_status = normalize_kpi_status(status)
        elif target_num is not None and value_num >= target_num:
            kpi_status = "on-track"
        else:
            kpi_status = "at-risk"

        widgets.append(
            KPIWidget(
                id=_widget_id("kpi", next_order),
                title=label,
                order=next_order,
                content=KPIContent(
                    value=value_num,
                    target=target_num,
                    unit="number",
                    status=kpi_status,
                ),
            )
        )
        next_order += 1

    return widgets, next_order


# =============================================================================
# Pass 3: tables
# =============================================================================


def _split_cells(line: str) -> list[str]:
    row = line.strip()
    if row.startswith("|"):
        row = row[1:]
    if row.endswith("|"):
        row = row[:-1]
    return [cell.strip() for cell in row.split("|")]


def _unique_headers(cells: list[str]) -> list[str]:
    headers: list[str] = []
    used: set[str] = set()
    for idx, cell in enumerate(cells, 1):
        base = cell or f"Column {idx}"
        name, n = base, 1
        while name in used:
            n += 1
            name = f"{base} ({n})"
        used.add(name)
        headers.append(name)
    return headers


def _build_table(block: list[str], preceding: str, order: int) -> TableWidget | None:
    rows = [line for line in block if not (_TABLE_SEPARATOR.match(line) and "-" in line)]
    if len(rows) < 2:
        return None

    headers = _unique_headers(_split_cells(rows[0]))
    data = []
    for row in rows[1:]:
        cells = _split_cells(row)
        # Ragged rows: missing cells become "", surplus cells are dropped
        data.append({h: cells[i] if i < len(cells) else "" for i, h in enumerate(headers)})

    return TableWidget(
        id=_widget_id("table", order),
        title=_last_heading(preceding) or "Data Table",
        order=order,
        content=TableContent(headers=headers, rows=data),
    )


def extract_tables(content: str, next_order: int = 0) -> tuple[list[Widget], int]:
    """Extract markdown pipe tables (header row plus at least one data row)."""
    widgets: list[Widget] = []
    block: list[str] = []
    block_start = 0
    position = 0

    # Trailing "" flushes a table that ends the document
    for line in content.splitlines(keepends=True) + [""]:
        stripped = line.rstrip("\r\n")
        if line and _TABLE_LINE.match(stripped):
            if not block:
                block_start = position
            block.append(stripped)
        elif block:
            table = _build_table(block, content[:block_start], next_order)
            if table is not None:
                widgets.append(table)
                next_order += 1
            block = []
        position += len(line)

    return widgets, next_order


# =============================================================================
# Pass 4: timeline
# =============================================================================


def extract_timeline(content: str, next_order: int = 0) -> tuple[list[Widget], int]:
    """Collect every dated line in the document into one "Key Milestones" widget."""
    milestones = []
    for match in _MILESTONE_LINE.finditer(content):
        name = match.group(1).strip().strip("*").strip()
        if name:
            milestones.append(Milestone(name=name, date=match.group(2).strip(), status="upcoming"))

    if not milestones:
        return [], next_order

    widget = TimelineWidget(
        id=_widget_id("timeline", next_order),
        title="Key Milestones",
        order=next_order,
        content=TimelineContent(milestones=milestones),
    )
    return [widget], next_order + 1


# =============================================================================
# Pass 5: lists
# =============================================================================


def _list_item(text: str) -> tuple[ListItem, bool]:
    box = _CHECKBOX.match(text)
    if box:
        return ListItem(text=box.group(2).strip(), checked=box.group(1).lower() == "x"), True
    return ListItem(text=text), False


def extract_lists(content: str, next_order: int = 0) -> tuple[list[Widget], int]:
    """Extract bullet/numbered/checkbox runs that directly follow a heading."""
    widgets: list[Widget] = []
    lines = content.splitlines()

    for i, line in enumerate(lines):
        heading = _HEADING.match(line)
        if not heading or not heading.group(1).strip():
            continue

        markers: list[str] = []
        items: list[ListItem] = []
        is_checklist = False
        for candidate in lines[i + 1 :]:
            bullet = _LIST_LINE.match(candidate)
            if not bullet:
                break
            item, boxed = _list_item(bullet.group(2))
            if item.text:
                markers.append(bullet.group(1))
                items.append(item)
                is_checklist = is_checklist or boxed

        if len(items) < _MIN_LIST_ITEMS:
            continue

        if is_checklist:
            list_type = "checklist"
        elif markers[0][0].isdigit():
            list_type = "numbered"
        else:
            list_type = "bullet"

        widgets.append(
            ListWidget(
                id=_widget_id("list", next_order),
                title=heading.group(1).strip(),
                order=next_order,
                content=ListContent(items=items, list_type=list_type),
            )
        )
        next_order += 1

    return widgets, next_order


# =============================================================================
# Entry point
# =============================================================================

_PASSES = (extract_diagrams, extract_kpis, extract_tables, extract_timeline, extract_lists)


def parse_tab_content(tab_type: str, content: str) -> ParseResult:
    """
    Parse tab markdown into dashboard widgets.

    Never raises. When no pass finds structured content, the whole input is
    wrapped in a single text widget titled after the tab.

    Args:
        tab_type: Tab key (e.g. "trialOverview"); unknown keys are allowed
        content: Raw markdown

    Returns:
        ParseResult with at least one widget and orders 0..n-1
    """
    content = content or ""
    widgets: list[Widget] = []
    next_order = 0

    for extract in _PASSES:
        found, next_order = extract(content, next_order)
        widgets.extend(found)

    if not widgets:
        widgets.append(
            TextWidget(
                id=_widget_id("text", 0),
                title=get_tab_display_name(tab_type) or "Content",
                order=0,
                content=TextContent(markdown=content),
            )
        )

    logger.debug(f"Parsed {len(widgets)} widgets from {len(content)} chars for tab {tab_type}")
    return ParseResult(tab_type=tab_type, widgets=widgets)

"""Tests for the deterministic dashboard markdown parser."""

from widget_engine.core.dashboard_parser import (
    extract_diagrams,
    extract_kpis,
    extract_lists,
    extract_tables,
    extract_timeline,
    parse_tab_content,
)


def _of_type(result, widget_type):
    return [w for w in result.widgets if w.type == widget_type]


class TestKPIs:
    def test_bold_kpis_with_targets(self):
        result = parse_tab_content("qualityMetrics", "**Enrollment:** 125 / 500\n**Sites:** 10 / 20")

        assert [w.type for w in result.widgets] == ["kpi", "kpi"]
        first, second = result.widgets
        assert (first.content.value, first.content.target) == (125, 500)
        assert (second.content.value, second.content.target) == (10, 20)
        assert [first.order, second.order] == [0, 1]

    def test_labels_and_explicit_status(self):
        content = """
## Key Metrics

**Enrollment Progress:** 125 / 500 (on-track)
**Site Activation:** 15 / 25 sites
**Query Resolution Time:** 7 days
"""
        kpis = _of_type(parse_tab_content("qualityMetrics", content), "kpi")

        titles = [w.title for w in kpis]
        assert titles == ["Enrollment Progress", "Site Activation", "Query Resolution Time"]
        assert kpis[0].content.status == "on-track"
        assert kpis[2].content.value == 7
        assert kpis[2].content.target is None

    def test_status_inferred_from_target(self):
        widgets, _ = extract_kpis("**Met:** 20 / 20\n**Missed:** 5 / 20\n**Untargeted:** 5")
        assert [w.content.status for w in widgets] == ["on-track", "at-risk", "at-risk"]

    def test_free_text_status_is_normalised(self):
        widgets, _ = extract_kpis("**Enrollment:** 125 / 500 (On Track)\n**Queries:** 4 (behind)")
        assert widgets[0].content.status == "on-track"
        assert widgets[1].content.status == "unknown"

    def test_plain_label_form(self):
        widgets, next_order = extract_kpis("Screen Failures: 12 / 40", next_order=3)
        assert widgets[0].title == "Screen Failures"
        assert widgets[0].order == 3
        assert widgets[0].id == "kpi-3"
        assert next_order == 4

    def test_incomplete_kpi_line_is_ignored(self):
        widgets, _ = extract_kpis("**Enrollment:** pending")
        assert widgets == []


class TestDiagrams:
    def test_title_from_preceding_heading(self):
        content = "## My Diagram\n```mermaid\ngantt\n  title X\n```"
        result = parse_tab_content("trialTimeline", content)

        assert len(result.widgets) == 1
        diagram = result.widgets[0]
        assert diagram.type == "diagram"
        assert diagram.content.diagram_type == "gantt"
        assert diagram.title == "My Diagram"

    def test_multiple_diagrams_use_nearest_heading(self):
        content = """
# Workflows

## Enrollment Workflow

```mermaid
flowchart TD
    A[Screen Patient] --> B{Eligible?}
    B -->|Yes| C[Enroll]
```

## SAE Reporting

```mermaid
sequenceDiagram
    Coordinator->>PI: Report SAE
```
"""
        diagrams = _of_type(parse_tab_content("teamWorkflows", content), "diagram")

        assert [d.content.diagram_type for d in diagrams] == ["flowchart", "sequenceDiagram"]
        assert [d.title for d in diagrams] == ["Enrollment Workflow", "SAE Reporting"]

    def test_graph_maps_to_flowchart_and_default_title(self):
        widgets, _ = extract_diagrams("```\ngraph TD\n    A --> B\n```")
        assert widgets[0].content.diagram_type == "flowchart"
        assert widgets[0].title == "Flowchart Diagram"

    def test_undeclared_diagram_defaults_to_flowchart(self):
        widgets, _ = extract_diagrams("```diagram\nA --> B\n```")
        assert widgets[0].content.diagram_type == "flowchart"

    def test_other_languages_and_empty_blocks_are_skipped(self):
        content = '```json\n{"a": 1}\n```\n\n```mermaid\n```\n\n```mermaid\npie\n    "A": 1\n```'
        widgets, _ = extract_diagrams(content)
        assert len(widgets) == 1
        assert widgets[0].content.diagram_type == "pie"

    def test_diagram_code_is_kept(self):
        content = "```mermaid\ngantt\n    title LUMA-201 Trial Timeline\n```"
        widgets, _ = extract_diagrams(content)
        assert "LUMA-201" in widgets[0].content.diagram_code


class TestTables:
    def test_table_rows_keyed_by_header(self):
        content = """
## Site Performance

| Site | Enrolled | Target | Status |
|------|----------|--------|--------|
| UCSF | 25 | 30 | On Track |
| MD Anderson | 18 | 25 | Behind |
| Mayo Clinic | 22 | 20 | Ahead |
"""
        tables = _of_type(parse_tab_content("trialOverview", content), "table")

        assert len(tables) == 1
        table = tables[0]
        assert table.title == "Site Performance"
        assert table.content.headers == ["Site", "Enrolled", "Target", "Status"]
        assert len(table.content.rows) == 3
        assert table.content.rows[0]["Site"] == "UCSF"
        assert table.content.rows[1]["Status"] == "Behind"

    def test_ragged_rows_are_padded_and_truncated(self):
        widgets, _ = extract_tables("| A | B |\n|---|---|\n| 1 |\n| 2 | 3 | 4 |")
        assert widgets[0].content.rows == [{"A": "1", "B": ""}, {"A": "2", "B": "3"}]

    def test_blank_and_duplicate_headers(self):
        widgets, _ = extract_tables("| | Name | Name |\n|---|---|---|\n| 1 | a | b |")
        assert widgets[0].content.headers == ["Column 1", "Name", "Name (2)"]
        assert widgets[0].title == "Data Table"

    def test_header_only_table_is_ignored(self):
        widgets, _ = extract_tables("| A | B |\n|---|---|")
        assert widgets == []

    def test_separate_tables(self):
        content = "## One\n| A |\n|---|\n| 1 |\n\n## Two\n| B |\n|---|\n| 2 |\n"
        widgets, next_order = extract_tables(content)
        assert [w.title for w in widgets] == ["One", "Two"]
        assert [w.order for w in widgets] == [0, 1]
        assert next_order == 2


class TestTimeline:
    def test_single_milestone_widget(self):
        content = """
## Key Milestones

- Protocol Finalized: Jan 2025
- First Site Initiation: Feb 2025
- First Patient In (FPI): Mar 2025
- Database Lock: 2026-07-01
"""
        timelines = _of_type(parse_tab_content("trialTimeline", content), "timeline")

        assert len(timelines) == 1
        milestones = timelines[0].content.milestones
        assert timelines[0].title == "Key Milestones"
        assert [m.name for m in milestones] == [
            "Protocol Finalized",
            "First Site Initiation",
            "First Patient In (FPI)",
            "Database Lock",
        ]
        assert milestones[2].date == "Mar 2025"
        assert milestones[3].date == "2026-07-01"
        assert all(m.status == "upcoming" for m in milestones)

    def test_bold_milestone_names_are_unwrapped(self):
        widgets, _ = extract_timeline("**Last Patient In:** March 2026")
        assert widgets[0].content.milestones[0].name == "Last Patient In"

    def test_no_dates_no_widget(self):
        widgets, next_order = extract_timeline("Nothing dated here", next_order=5)
        assert widgets == []
        assert next_order == 5


class TestLists:
    def test_bullet_list_after_heading(self):
        content = """
## Pre-Study Checklist
- IRB submission prepared
- Site contracts executed
- Staff training completed
- Pharmacy setup done
"""
        lists = _of_type(parse_tab_content("taskChecklists", content), "list")

        assert len(lists) == 1
        assert lists[0].title == "Pre-Study Checklist"
        assert lists[0].content.list_type == "bullet"
        assert "IRB submission prepared" in [item.text for item in lists[0].content.items]

    def test_checkbox_items(self):
        content = "## Setup\n- [x] IRB approved\n- [ ] Contracts signed\n- [ ] Staff trained"
        widgets, _ = extract_lists(content)

        assert widgets[0].content.list_type == "checklist"
        assert [i.checked for i in widgets[0].content.items] == [True, False, False]
        assert widgets[0].content.items[0].text == "IRB approved"

    def test_numbered_list(self):
        widgets, _ = extract_lists("## Steps\n1. Screen\n2. Consent\n3. Enroll")
        assert widgets[0].content.list_type == "numbered"
        assert [i.text for i in widgets[0].content.items] == ["Screen", "Consent", "Enroll"]

    def test_two_items_is_not_a_list(self):
        widgets, _ = extract_lists("## Short\n- one\n- two")
        assert widgets == []

    def test_list_without_heading_is_ignored(self):
        widgets, _ = extract_lists("- one\n- two\n- three")
        assert widgets == []

    def test_list_must_directly_follow_heading(self):
        widgets, _ = extract_lists("## Tasks\n\n- a\n- b\n- c")
        assert widgets == []

    def test_list_stops_at_first_non_item(self):
        widgets, _ = extract_lists("## Tasks\n- a\n- b\n- c\nSome prose\n- d")
        assert len(widgets[0].content.items) == 3


class TestParseTabContent:
    def test_empty_content_yields_one_text_widget(self):
        result = parse_tab_content("test", "")

        assert len(result.widgets) == 1
        widget = result.widgets[0]
        assert widget.type == "text"
        assert widget.order == 0
        assert widget.title == "test"
        assert widget.content.markdown == ""

    def test_plain_text_falls_back_to_tab_titled_text_widget(self):
        content = "This is some plain text without any structured data.\nJust narrative content."
        result = parse_tab_content("trialOverview", content)

        assert len(result.widgets) == 1
        assert result.widgets[0].type == "text"
        assert result.widgets[0].title == "Trial Overview"
        assert "plain text" in result.widgets[0].content.markdown

    def test_mixed_content(self):
        content = """
# Trial Overview

## Timeline

```mermaid
gantt
    title Timeline
    dateFormat YYYY-MM-DD
```

## Metrics

**Enrollment:** 50 / 100
**Sites:** 10 / 20

## Site List

| Site | Status |
|------|--------|
| Site A | Active |
| Site B | Pending |

## Tasks
- Complete IRB submission
- Train staff
- Setup pharmacy
"""
        result = parse_tab_content("trialOverview", content)

        assert [w.type for w in result.widgets] == ["diagram", "kpi", "kpi", "table", "list"]
        assert result.tab_type == "trialOverview"

    def test_orders_assigned_by_pass(self):
        content = "| A | B |\n|---|---|\n| 1 | 2 |\n\n**KPI:** 100\n\n```mermaid\ngraph TD\n    A --> B\n```"
        result = parse_tab_content("test", content)

        assert [w.type for w in result.widgets] == ["diagram", "kpi", "table"]
        assert [w.order for w in result.widgets] == [0, 1, 2]
        assert [w.id for w in result.widgets] == ["diagram-0", "kpi-1", "table-2"]

    def test_orders_are_contiguous(self):
        content = """
## Flow
```mermaid
flowchart LR
    A --> B
```
**Enrollment:** 10 / 20
- First Patient In: 2025-03-01
## Steps
- a
- b
- c
"""
        result = parse_tab_content("trialOverview", content)
        assert [w.order for w in result.widgets] == list(range(len(result.widgets)))

    def test_parsing_is_deterministic(self):
        content = "## Metrics\n**Enrollment:** 125 / 500\n| A |\n|---|\n| 1 |"
        first = parse_tab_content("qualityMetrics", content)
        second = parse_tab_content("qualityMetrics", content)
        assert first.model_dump() == second.model_dump()

    def test_none_content_is_treated_as_empty(self):
        result = parse_tab_content("general", None)
        assert result.widgets[0].type == "text"
        assert result.widgets[0].title == "General"

"""Prompt templates for structured dashboard generation.

The template describes the widget JSON contract enforced by
``widget_engine.core.schemas_widgets``. The enumerations are read from the
schema's Literal types and the worked example validates against it, so the
prompt and the validator cannot drift apart.
"""

import json
from typing import Any, get_args

from widget_engine.core.schemas_widgets import (
    DiagramType,
    ItemPriority,
    KPIStatus,
    KPITrend,
    KPIUnit,
    ListType,
    MilestoneStatus,
    Persona,
    WidgetType,
    get_tab_display_name,
)


def _choices(literal) -> str:
    return " | ".join(f'"{value}"' for value in get_args(literal))


EXAMPLE_RESPONSE: dict = {
    "metadata": {
        "tabType": "trialOverview",
        "persona": "trialCoordinator",
        "title": "LUMA-201 Trial Overview",
        "generatedAt": "2025-01-15T09:00:00Z",
    },
    "widgets": [
        {
            "id": "diagram-timeline",
            "type": "diagram",
            "title": "Trial Timeline",
            "order": 0,
            "content": {
                "diagramType": "gantt",
                "diagramCode": (
                    "gantt\n    title LUMA-201 Trial Timeline\n    dateFormat YYYY-MM-DD\n"
                    "    section Pre-Study\n    Protocol Finalized: 2025-01-15, 30d"
                ),
                "description": "Major trial phases",
            },
        },
        {
            "id": "kpi-enrollment",
            "type": "kpi",
            "title": "Enrollment Progress",
            "order": 1,
            "content": {
                "value": 125,
                "target": 500,
                "unit": "count",
                "status": "on-track",
                "trend": "up",
                "description": "Subjects enrolled against target",
            },
        },
        {
            "id": "table-sites",
            "type": "table",
            "title": "Site Performance",
            "order": 2,
            "content": {
                "headers": ["Site", "Enrolled", "Target", "Status"],
                "rows": [
                    {"Site": "UCSF", "Enrolled": "25", "Target": "30", "Status": "On Track"},
                    {"Site": "MD Anderson", "Enrolled": "18", "Target": "25", "Status": "Behind"},
                ],
                "description": "Enrollment by site",
            },
        },
        {
            "id": "timeline-milestones",
            "type": "timeline",
            "title": "Key Milestones",
            "order": 3,
            "content": {
                "milestones": [
                    {
                        "name": "First Patient In",
                        "date": "2025-03-01",
                        "status": "upcoming",
                        "description": "First subject enrolled",
                        "dependencies": ["IRB Approval", "Site Activation"],
                    }
                ]
            },
        },
        {
            "id": "list-prestudy",
            "type": "list",
            "title": "Pre-Study Checklist",
            "order": 4,
            "content": {
                "items": [
                    {"text": "IRB submission prepared", "checked": True, "priority": "high"},
                    {"text": "Site contracts executed", "checked": False, "priority": "high"},
                ],
                "listType": "checklist",
            },
        },
        {
            "id": "text-summary",
            "type": "text",
            "title": "Summary",
            "order": 5,
            "content": {
                "markdown": "Enrollment is ahead of plan at 3 of 5 sites.",
                "summary": "Enrollment ahead of plan",
            },
        },
    ],
}


STRUCTURED_OUTPUT_TEMPLATE = f"""IMPORTANT: You MUST return your response as valid JSON following this exact structure.

Top level:
- "metadata": {{"tabType": string, "persona": {_choices(Persona)}, "title": string, "generatedAt": ISO-8601 string}}
- "widgets": array of widgets

Every widget has "id" (unique string), "type" ({_choices(WidgetType)}), "title" (non-empty), "order" (0, 1, 2, ... in display order) and a "content" object:
- diagram: {{"diagramType": {_choices(DiagramType)}, "diagramCode": Mermaid source, "description"?: string}}
- kpi: {{"value": number, "target"?: number, "unit": {_choices(KPIUnit)}, "status": {_choices(KPIStatus)}, "trend"?: {_choices(KPITrend)}, "description"?: string}}
- table: {{"headers": [string], "rows": [{{header: value}}], "description"?: string}}
- timeline: {{"milestones": [{{"name": string, "date": "YYYY-MM-DD", "status": {_choices(MilestoneStatus)}, "description"?: string, "dependencies"?: [string]}}]}}
- list: {{"items": [{{"text": string, "checked"?: boolean, "priority"?: {_choices(ItemPriority)}, "category"?: string}}], "listType": {_choices(ListType)}}}
- text: {{"markdown": string, "summary"?: string}}

Example:
{json.dumps(EXAMPLE_RESPONSE, indent=2)}

RULES:
1. Return ONLY valid JSON - no markdown, no code blocks, no explanatory text
2. Include multiple widget types (diagrams, KPIs, tables, timelines, lists) for a comprehensive dashboard
3. Use real data from the information provided
4. Escape Mermaid diagram source as a JSON string (use \\n for newlines)
5. Keep KPI values realistic for the project timeline and scope
6. Set status indicators (on-track, at-risk, critical) from a logical assessment
7. Give checklist items priority levels
8. Use ISO dates (YYYY-MM-DD)
9. Give every widget a unique id (e.g. "diagram-1", "kpi-enrollment", "table-sites")
"""


RESTRUCTURE_INSTRUCTIONS = """ANALYSIS INSTRUCTIONS:
1. Extract ALL diagrams (mermaid code blocks) as diagram widgets
2. Identify KPIs (numbers with targets/goals) as kpi widgets
3. Extract tables (markdown tables) as table widgets
4. Find milestones/dates as timeline widgets
5. Extract checklists, process steps and important lists as list widgets
6. Capture remaining important text as text widgets

CRITICAL: Return ONLY the JSON object. No markdown formatting, no explanations, no code blocks.
Start your response with { and end with }"""


TAB_WIDGET_GUIDANCE: dict[str, str] = {
    "trialOverview": """- Gantt diagram showing trial phases
- KPIs: enrollment progress, site activation, timeline status
- Table: site list with status
- Timeline: key milestones
- Checklist: trial setup tasks and study startup steps""",
    "trialTimeline": """- Gantt chart with all phases
- Timeline widget with critical path milestones
- KPIs: days to first patient, enrollment rate
- Table: milestone tracker with dates and status
- Numbered list: sequential process steps""",
    "taskChecklists": """- Multiple list widgets (pre-study, enrollment, safety, closeout)
- Flowchart: approval and review process
- KPIs: checklist completion percentage
- Timeline: task deadlines""",
    "teamWorkflows": """- Flowchart diagrams for each team process
- Sequence diagram for team handoffs
- Checklist: workflow checkpoints
- Timeline: workflow milestones""",
    "qualityMetrics": """- KPIs: query rate, SAE reporting timeliness, enrollment forecast accuracy
- Table: metrics dashboard with targets and actuals
- Diagram: quality metrics framework flowchart""",
    "protocolRequirements": """- Requirements list widgets grouped by category
- Table: inclusion/exclusion criteria
- Flowchart: eligibility screening
- KPIs: protocol deviation count""",
    "documentControl": """- Table: document inventory with versions and expiration
- Checklist: required documents
- Flowchart: document review and approval process
- ER diagram: document relationships
- KPIs: document compliance percentage""",
    "complianceDiagrams": """- Multiple flowchart diagrams (ICF workflow, SAE reporting, data integrity)
- Checklist: compliance requirements
- Timeline: regulatory submission schedule""",
    "riskControls": """- Table: risk register with likelihood, impact and owner
- KPIs: open risks, overdue mitigations
- Flowchart: risk escalation path
- Checklist: control activities""",
    "auditPreparation": """- Checklist: inspection readiness items
- Table: audit findings and CAPA status
- Timeline: audit schedule
- KPIs: readiness percentage""",
    "smartAlerts": """- List: active alerts with priority
- KPIs: alerts by severity
- Table: alert log with owner and due date""",
}


def build_restructure_prompt(markdown: str) -> str:
    """Prompt asking the model to restructure existing markdown into widgets."""
    return f"""You are a data restructuring agent. Your task is to analyze the following clinical trial content and extract structured data for a dashboard.

{STRUCTURED_OUTPUT_TEMPLATE}

Original Content to Restructure:
---
{markdown}
---

{RESTRUCTURE_INSTRUCTIONS}
"""


def build_structured_content_prompt(
    tab_type: str,
    persona: str,
    project_info: dict[str, Any],
) -> str:
    """Prompt asking the model to invent widgets for a tab from project facts."""
    project_info_str = "\n".join(f"{key}: {value}" for key, value in project_info.items())
    guidance = TAB_WIDGET_GUIDANCE.get(
        tab_type, "- A balanced mix of diagrams, KPIs, tables, timelines and lists"
    )

    return f"""You are a clinical trial dashboard content generator. Generate comprehensive, structured dashboard content for a clinical trial.

{STRUCTURED_OUTPUT_TEMPLATE}

Project Information:
{project_info_str}

Tab Type: {tab_type} ({get_tab_display_name(tab_type)})
Persona: {persona}

REQUIREMENTS:
1. Generate AT LEAST 5-10 widgets covering different aspects
2. Include at least one Mermaid diagram (gantt for timelines, flowchart for workflows, etc.)
3. Extract or calculate realistic KPIs based on project scope
4. Create actionable checklists and requirements
5. Include timeline milestones with dependencies
6. Add tables showing site performance, metrics, or requirements
7. Use real project data where available, make realistic estimates where needed
8. Ensure all data is consistent (dates align, totals match, etc.)

WIDGETS TO INCLUDE FOR THIS TAB:
{guidance}

CRITICAL: Return ONLY the JSON object. No markdown, no code blocks, no explanations.
"""

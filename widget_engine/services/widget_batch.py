"""Batch widget generation from a multi-persona response log.

The log is plain text exported from the content agents. Each persona section
starts with an ``Agent Persona`` line; each tab starts with a line holding
the tab name followed (blank lines aside) by a line that is exactly
``Refresh``. Everything after that until the next tab or persona is the tab's
markdown:

    Agent Persona: Trial Coordinator
    Trial Overview
    Refresh
    ## Enrollment
    ...
    Task Checklists
    Refresh
    ...

Every (persona, tab) pair is restructured in turn and the combined widgets
are written to one JSON artifact. A pair that raises contributes no widgets;
a pair that fell back contributes its text widget. Both are reported as
failures in the returned report, and neither aborts the batch.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from widget_engine.chains.restructure_dashboard import restructure_markdown
from widget_engine.core.config import get_settings
from widget_engine.core.llm import TextGenerator
from widget_engine.core.logging import get_logger
from widget_engine.core.schemas_widgets import WireModel, dump_widget
from widget_engine.core.widget_mapper import widgets_to_records

logger = get_logger(__name__)

PERSONA_MARKER = "Agent Persona"
TAB_MARKER = "Refresh"

# First matching substring wins, so "Quality Checklist Overview" is an overview tab
TAB_TYPE_RULES: list[tuple[str, str]] = [
    ("overview", "trialOverview"),
    ("checklist", "taskChecklists"),
    ("workflow", "teamWorkflows"),
    ("timeline", "trialTimeline"),
    ("quality", "qualityMetrics"),
    ("document", "documentControl"),
    ("compliance", "complianceDiagrams"),
    ("risk", "riskControls"),
    ("audit", "auditPreparation"),
    ("alert", "smartAlerts"),
]


class ParsedTab(WireModel):
    tab_name: str
    content: str = ""


class ParsedPersona(WireModel):
    persona_name: str
    tabs: list[ParsedTab] = Field(default_factory=list)


class TabOutcome(WireModel):
    """Result of restructuring one (persona, tab) pair."""

    persona_name: str
    tab_name: str
    tab_type: str
    persona: str
    widget_count: int = 0
    error: str | None = None
    fallback: bool = Field(False, description="Widgets are the text fallback, not a restructuring")

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchGenerationResult(BaseModel):
    generated_at: str
    widgets: list[dict[str, Any]] = Field(default_factory=list)
    db_widgets: list[dict[str, Any]] = Field(default_factory=list)
    outcomes: list[TabOutcome] = Field(default_factory=list)

    @property
    def failures(self) -> list[TabOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def artifact(self) -> dict[str, Any]:
        """The JSON document written to the output file."""
        return {
            "generatedAt": self.generated_at,
            "widgets": self.widgets,
            "dbWidgets": self.db_widgets,
        }


# =============================================================================
# Log parsing
# =============================================================================


def _drop_tab_name_line(buffer: list[str], tab_name: str) -> None:
    """Remove the next tab's name line (and trailing blanks) from a buffer."""
    while buffer and not buffer[-1].strip():
        buffer.pop()
    if buffer and buffer[-1].strip() == tab_name:
        buffer.pop()


def parse_llm_responses(file_path: str | Path) -> list[ParsedPersona]:
    """
    Split a response log into personas and their tabs.

    Tabs that appear before any persona line are dropped.

    Args:
        file_path: UTF-8 text log

    Returns:
        Personas in file order, each with its tabs in file order
    """
    lines = Path(file_path).read_text(encoding="utf-8").splitlines()

    personas: list[ParsedPersona] = []
    persona: ParsedPersona | None = None
    tab: ParsedTab | None = None
    buffer: list[str] = []

    def close_tab() -> None:
        nonlocal tab, buffer
        if tab is not None and persona is not None:
            tab.content = "\n".join(buffer).strip()
            persona.tabs.append(tab)
        tab = None
        buffer = []

    def close_persona() -> None:
        nonlocal persona
        close_tab()
        if persona is not None:
            personas.append(persona)
        persona = None

    for idx, raw in enumerate(lines):
        line = raw.strip()

        if line.startswith(PERSONA_MARKER):
            close_persona()
            persona = ParsedPersona(persona_name=line)
            continue

        if line == TAB_MARKER:
            name_line = next(
                (lines[j].strip() for j in range(idx - 1, -1, -1) if lines[j].strip()),
                None,
            )
            if name_line is not None:
                _drop_tab_name_line(buffer, name_line)
                close_tab()
                tab = ParsedTab(tab_name=name_line)
                continue

        if tab is not None:
            buffer.append(raw)

    close_persona()
    return personas


def map_persona(persona_name: str) -> str:
    """Persona enum value for a free-text persona header."""
    return "regulatoryAdvisor" if "regulatory" in persona_name.lower() else "trialCoordinator"


def map_tab_type(tab_name: str) -> str:
    """Tab type for a free-text tab name, "general" when nothing matches."""
    lowered = tab_name.lower()
    for needle, tab_type in TAB_TYPE_RULES:
        if needle in lowered:
            return tab_type
    return "general"


# =============================================================================
# Batch driver
# =============================================================================


async def generate_widgets_from_file(
    input_path: str | Path,
    output_path: str | Path,
    project_id: str,
    *,
    user_id: str | None = None,
    generate: TextGenerator | None = None,
) -> BatchGenerationResult:
    """
    Restructure every tab in a response log and write the widget artifact.

    Pairs are processed sequentially, one generation call each.

    Args:
        input_path: Response log to read
        output_path: JSON file to write ({generatedAt, widgets, dbWidgets})
        project_id: Project the records are stamped with
        user_id: User the records are stamped with (defaults to BATCH_USER_ID)
        generate: Text generation service passed through to the restructurer

    Returns:
        BatchGenerationResult with the artifact content and one outcome per pair
    """
    user_id = user_id or get_settings().BATCH_USER_ID

    logger.info(f"Parsing response log: {input_path}")
    personas = parse_llm_responses(input_path)

    result = BatchGenerationResult(generated_at=datetime.now(timezone.utc).isoformat())

    for parsed_persona in personas:
        persona = map_persona(parsed_persona.persona_name)
        logger.info(f"Processing persona: {parsed_persona.persona_name} ({persona})")

        for tab in parsed_persona.tabs:
            tab_type = map_tab_type(tab.tab_name)
            outcome = TabOutcome(
                persona_name=parsed_persona.persona_name,
                tab_name=tab.tab_name,
                tab_type=tab_type,
                persona=persona,
            )

            try:
                restructured = await restructure_markdown(
                    tab.content, tab_type, persona, project_id, generate=generate
                )
                widgets = restructured.structured.widgets
                annotated = [
                    dump_widget(widget)
                    | {
                        "sourcePersona": parsed_persona.persona_name,
                        "sourceTab": tab.tab_name,
                        "tabType": tab_type,
                    }
                    for widget in widgets
                ]
                records = widgets_to_records(widgets, tab_type, project_id, user_id)
            except Exception as e:
                logger.warning(f"Failed to process tab {tab.tab_name!r} for {parsed_persona.persona_name!r}: {e}")
                outcome.error = str(e) or type(e).__name__
                result.outcomes.append(outcome)
                continue

            # Fallback widgets are kept in the artifact but the pair is reported as failed
            if restructured.fallback:
                outcome.error = restructured.error
                outcome.fallback = True

            result.widgets.extend(annotated)
            result.db_widgets.extend(r.model_dump(mode="json", by_alias=True) for r in records)
            outcome.widget_count = len(annotated)
            result.outcomes.append(outcome)
            logger.info(f"  {tab.tab_name}: {len(annotated)} widgets ({tab_type})")

    output = Path(output_path)
    output.write_text(json.dumps(result.artifact(), indent=2), encoding="utf-8")

    logger.info(
        f"Wrote {len(result.widgets)} widgets to {output} "
        f"({len(result.outcomes)} tabs, {len(result.failures)} failed)"
    )
    return result

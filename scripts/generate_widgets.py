"""Generate dashboard widgets from an exported agent response log.

Parses every persona/tab section of the log, restructures each tab into
widgets with the LLM and writes {generatedAt, widgets, dbWidgets} to a JSON
file. Optionally stores the records in the dashboard widgets table.

Usage:
    uv run python scripts/generate_widgets.py --input <log.txt> \
        --output <widgets.json> --project-id <id> [--save]

Examples:
    # Write the artifact only
    uv run python scripts/generate_widgets.py --input LLMResponses.txt \
        --output /tmp/widgets.json --project-id 634647e8-a22a-4b6f-b42a-452659620bc4

    # Also insert the records into Supabase
    uv run python scripts/generate_widgets.py --input LLMResponses.txt \
        --output /tmp/widgets.json --project-id 634647e8-a22a-4b6f-b42a-452659620bc4 --save
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure widget_engine is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


async def run_batch(input_path: str, output_path: str, project_id: str, save: bool) -> int:
    from widget_engine.core.widget_mapper import DashboardWidgetRecord
    from widget_engine.db.dashboard_widgets import insert_dashboard_widgets
    from widget_engine.services.widget_batch import generate_widgets_from_file

    if not Path(input_path).is_file():
        print(f"ERROR: input file not found: {input_path}")
        return 1

    print(f"\n{'='*60}")
    print(f"Generating widgets from {input_path}...")
    result = await generate_widgets_from_file(input_path, output_path, project_id)

    for outcome in result.outcomes:
        if outcome.fallback:
            status = f"FALLBACK ({outcome.error}): {outcome.widget_count} widgets"
        elif outcome.error:
            status = f"FAILED: {outcome.error}"
        else:
            status = f"{outcome.widget_count} widgets"
        print(f"  [{outcome.persona}] {outcome.tab_name} -> {outcome.tab_type}: {status}")

    print(f"\n  Total widgets: {len(result.widgets)}")
    print(f"  Output: {output_path}")

    if save and result.db_widgets:
        records = [DashboardWidgetRecord.model_validate(row) for row in result.db_widgets]
        inserted = insert_dashboard_widgets(records)
        print(f"  Saved {inserted} records for project {project_id}")

    return 1 if result.failures else 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate dashboard widgets from an agent response log."
    )
    parser.add_argument("--input", required=True, metavar="PATH", help="Response log to parse")
    parser.add_argument("--output", required=True, metavar="PATH", help="JSON file to write")
    parser.add_argument("--project-id", required=True, help="Project UUID stamped on every record")
    parser.add_argument("--save", action="store_true", help="Insert the records into the database")

    args = parser.parse_args()

    sys.exit(asyncio.run(run_batch(
        input_path=args.input,
        output_path=args.output,
        project_id=args.project_id,
        save=args.save,
    )))


if __name__ == "__main__":
    main()

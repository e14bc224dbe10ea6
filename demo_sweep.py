"""
End-to-end demo of the posture monitoring pipeline.

This script:
1. Loads and validates configuration
2. Seeds in-memory stores with device CSV uploads for three patients
3. Runs one roster sweep
4. Prints the resulting warning states

Run with: uv run python demo_sweep.py
"""

import asyncio
from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.ingest.csv_measurements import parse_measurement_lines
from adapters.storage.memory import (
    InMemoryPatientRoster,
    InMemorySampleStore,
    InMemoryWarningStateStore,
)
from bedwatch.config import get_config, print_config_summary, validate_config
from bedwatch.domain.models import WarningLevel
from bedwatch.services import PostureEvaluationService, configure_logging

console = Console()

LEVEL_STYLES = {
    WarningLevel.STABLE: "green",
    WarningLevel.CAUTION: "yellow",
    WarningLevel.RISK: "bold red",
}


def build_upload(
    end: datetime, minutes: int, moved_minutes_ago: int | None = None
) -> list[str]:
    """One CSV line per minute; optionally shift weight onto sensor 1 for good."""
    lines = []
    for offset in range(minutes, -1, -1):
        measured_at = end - timedelta(minutes=offset)
        shifted = moved_minutes_ago is not None and offset <= moved_minutes_ago
        weights = [1300.0, 900.0, 900.0, 900.0] if shifted else [1000.0] * 4
        lines.append(
            f"22.5,45,36.6,{','.join(f'{w:.1f}' for w in weights)},{measured_at.isoformat()}"
        )
    return lines


async def main() -> None:
    console.print(Panel.fit("Posture Monitoring Demo", style="bold blue"))

    validate_config()
    print_config_summary()
    config = get_config()
    configure_logging(config.logging)

    now = datetime.now(UTC).replace(second=0, microsecond=0)
    roster = InMemoryPatientRoster([101, 102, 103])
    samples = InMemorySampleStore(roster)
    warnings = InMemoryWarningStateStore()

    # 101 turned 30 minutes ago, 102 has not moved for two hours, 103 has no device data
    samples.ingest(101, parse_measurement_lines(build_upload(now, 120, moved_minutes_ago=30)))
    samples.ingest(102, parse_measurement_lines(build_upload(now, 120)))

    service = PostureEvaluationService(roster, samples, warnings, config)
    report = await service.run_sweep()

    table = Table(title="Sweep results")
    table.add_column("Patient")
    table.add_column("Outcome")
    table.add_column("Level")
    table.add_column("Last movement")
    table.add_column("Description")

    for evaluated in report.evaluated:
        style = LEVEL_STYLES[evaluated.level]
        last_move = evaluated.last_confirmed_movement_at
        table.add_row(
            str(evaluated.patient_code),
            "evaluated",
            f"[{style}]{evaluated.level.name}[/{style}]",
            last_move.strftime("%H:%M") if last_move else "-",
            evaluated.warning_state.description,
        )
    for skipped in report.skipped:
        table.add_row(str(skipped.patient_code), "skipped", "-", "-", skipped.reason.value)
    for failure in report.failures:
        table.add_row(str(failure.patient_code), "[red]failed[/red]", "-", "-", failure.message)

    console.print(table)
    console.print(f"Sweep took {report.duration_seconds:.3f}s")


if __name__ == "__main__":
    asyncio.run(main())

"""Storage for normalized records and dashboard results."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

import polars as pl
from loguru import logger

from .constants import JSON_INDENT, LogMessage, TrainingType
from .models import DashboardData, TrainingRecord


def _plain_row(record: TrainingRecord) -> dict[str, Any]:
    """Record as a flat dict with enum members replaced by their values."""
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in record.to_dict().items()
    }


class DashboardStorage:
    """Handles saving records and dashboards to disk."""

    def save_records_csv(
        self,
        *,
        records: Sequence[TrainingRecord],
        filepath: Path | str,
    ) -> Path | None:
        """Save canonical records to a CSV file using Polars.

        One row per record, columns in field order. Refresher records are
        sorted by operator id and indicator so an operator's KPIs sit together.

        Args:
            records: Records of a single training type.
            filepath: Path where the CSV file should be saved.

        Returns:
            Path | None: The written path, or None when there was nothing to save.
        """
        filepath = Path(filepath)

        if not records:
            logger.warning("No records to save to CSV")
            return None

        df = pl.DataFrame([_plain_row(record) for record in records])
        if records[0].kind == TrainingType.REFRESHER:
            df = df.sort(["id", "indicator"], maintain_order=True)

        filepath.parent.mkdir(parents=True, exist_ok=True)
        df.write_csv(filepath)

        logger.success(LogMessage.SAVED_RECORDS.format(len(df), filepath))
        return filepath

    def save_dashboard(
        self,
        *,
        dashboard: DashboardData,
        filepath: Path | str,
    ) -> Path:
        """Save a dashboard (records plus analysis) to a JSON file.

        Args:
            dashboard: Dashboard to serialize.
            filepath: Path where the JSON file should be saved.
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with filepath.open("w", encoding="utf-8") as f:
            json.dump(
                dashboard.to_dict(),
                f,
                indent=JSON_INDENT,
                ensure_ascii=False,
                default=str,
            )

        logger.success(LogMessage.SAVED_DASHBOARD.format(filepath))
        return filepath

    def save_feedback(
        self,
        *,
        feedback: Sequence[tuple[TrainingRecord, str]],
        filepath: Path | str,
    ) -> Path:
        """Save generated feedback as a Markdown document, one section per record."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        sections = []
        for record, text in feedback:
            title = record.name
            if record.kind == TrainingType.REFRESHER:
                title = f"{title} ({record.indicator})"
            sections.append(f"## {title}\n\n{text.strip()}\n")

        filepath.write_text("# Feedbacks\n\n" + "\n".join(sections), encoding="utf-8")
        logger.success(f"Saved {len(feedback)} feedbacks to {filepath}")
        return filepath

"""Tests for CSV/JSON exports and the generated reports."""

import asyncio
import json

import polars as pl
import pytest

from trainlytics.analyzers import TrainingAnalyzer
from trainlytics.constants import TrainingType
from trainlytics.models import DashboardData, FilterState
from trainlytics.reports import ReportGenerator, report_stem
from trainlytics.samples import initial_sample, refresher_sample
from trainlytics.storage import DashboardStorage


@pytest.fixture
def initial_dashboard():
    records = initial_sample()
    analysis = asyncio.run(TrainingAnalyzer().analyze_initial(records))
    return DashboardData(
        class_name="Turma Março",
        kind=TrainingType.INITIAL,
        records=records,
        analysis=analysis,
        is_in_progress=analysis.is_in_progress,
    )


@pytest.fixture
def refresher_dashboard():
    records = refresher_sample()
    analysis = asyncio.run(TrainingAnalyzer().analyze_refresher(records))
    return DashboardData(
        class_name="Reciclagem Abril",
        kind=TrainingType.REFRESHER,
        records=records,
        analysis=analysis,
    )


def test_report_stem():
    assert report_stem("Turma Março / 2024") == "Turma_Março_2024"
    assert report_stem("???") == "relatorio"


def test_save_records_csv(tmp_path, refresher_dashboard):
    path = DashboardStorage().save_records_csv(
        records=list(reversed(refresher_dashboard.records)),
        filepath=tmp_path / "out" / "records.csv",
    )

    df = pl.read_csv(path, infer_schema_length=0)
    assert df.height == 3
    assert df["kind"].to_list() == ["refresher"] * 3
    assert df["id"].to_list() == ["1001", "1001", "1002"]
    assert df["indicator"].to_list()[:2] == ["NPS", "TMA"]


def test_save_records_csv_with_no_records(tmp_path):
    assert DashboardStorage().save_records_csv(records=[], filepath=tmp_path / "x.csv") is None
    assert not (tmp_path / "x.csv").exists()


def test_save_dashboard_json(tmp_path, initial_dashboard):
    path = DashboardStorage().save_dashboard(
        dashboard=initial_dashboard, filepath=tmp_path / "dashboard.json"
    )
    data = json.loads(path.read_text(encoding="utf-8"))

    assert data["class_name"] == "Turma Março"
    assert data["kind"] == "initial"
    assert len(data["records"]) == 4
    assert data["records"][3]["status"] == "dropped"
    assert "performanceScore" in data["analysis"]


def test_save_feedback_markdown(tmp_path):
    records = refresher_sample()
    path = DashboardStorage().save_feedback(
        feedback=[(records[0], "Bom trabalho.\n")],
        filepath=tmp_path / "feedback.md",
    )
    text = path.read_text(encoding="utf-8")

    assert text.startswith("# Feedbacks")
    assert "## Ricardo Alves (TMA)" in text
    assert "Bom trabalho." in text


def test_initial_records_keep_their_order(tmp_path):
    records = initial_sample()
    storage = DashboardStorage()

    csv_path = storage.save_records_csv(records=records, filepath=tmp_path / "records.csv")
    md_path = storage.save_feedback(
        feedback=[(records[0], "Continue assim.")], filepath=tmp_path / "feedback.md"
    )

    df = pl.read_csv(csv_path, infer_schema_length=0)
    assert df["name"].to_list() == [record.name for record in records]
    assert f"## {records[0].name}\n" in md_path.read_text(encoding="utf-8")


def test_initial_summary(initial_dashboard):
    summary = ReportGenerator(initial_dashboard).summary()

    assert summary["total_records"] == 4
    assert summary["current_day"] == 12
    assert summary["approval_rate"] == pytest.approx(50.0)
    assert summary["stats"]["turnover_count"] == 1
    assert summary["at_risk"] == ["Carlos Rocha", "Marcos Viana"]
    assert [group["count"] for group in summary["attendance_groups"]] == [1, 2, 1]


def test_summary_respects_filters(initial_dashboard):
    summary = ReportGenerator(initial_dashboard, FilterState(instructor="Carlos")).summary()

    assert summary["total_records"] == 1
    assert summary["current_day"] == 5
    assert summary["filters"]["instructor"] == "Carlos"


def test_refresher_summary(refresher_dashboard):
    summary = ReportGenerator(refresher_dashboard).summary()

    assert summary["stats"]["passed"] == 3
    assert summary["quadrants"]["stars"] == 3
    assert [entry["indicator"] for entry in summary["indicators"]] == [
        "Conversão",
        "NPS",
        "TMA",
    ]


def test_markdown_mentions_filters_and_analysis(refresher_dashboard):
    text = ReportGenerator(refresher_dashboard, FilterState(indicator="NPS")).render_markdown()

    assert text.startswith("# Relatório de Impacto")
    assert "**Filtros:** Indicador: NPS" in text
    assert refresher_dashboard.analysis.summary in text


def test_generate_all(tmp_path, initial_dashboard, refresher_dashboard):
    for dashboard in (initial_dashboard, refresher_dashboard):
        paths = ReportGenerator(dashboard).generate_all(tmp_path)

        stem = report_stem(dashboard.class_name)
        assert paths["markdown"] == tmp_path / f"{stem}.md"
        assert paths["json"] == tmp_path / f"{stem}_summary.json"
        assert paths["pdf"].read_bytes().startswith(b"%PDF")
        assert json.loads(paths["json"].read_text(encoding="utf-8"))["kind"] == dashboard.kind

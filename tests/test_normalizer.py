"""Tests for turning raw sheet rows into canonical records."""

from datetime import date

import pytest

from trainlytics.constants import StudentStatus, TrainingType
from trainlytics.ingestor import ingest
from trainlytics.models import ParsedSheet
from trainlytics.normalizer import (
    classify_status,
    coerce_number,
    derive_attendance,
    derive_grade,
    normalize,
    parse_number,
    resolve_column,
)

TODAY = date(2024, 3, 15)


@pytest.mark.parametrize(
    "value,expected",
    [
        (8, 8.0),
        (7.25, 7.25),
        ("8,5", 8.5),
        ("180 seg", 180.0),
        ("  9.0 ", 9.0),
        ("-3", -3.0),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
        (float("nan"), None),
    ],
)
def test_parse_number(value, expected):
    assert parse_number(value) == expected


def test_coerce_number_defaults_to_zero():
    assert coerce_number("n/a") == 0.0
    assert coerce_number("12") == 12.0


def test_resolve_column_takes_leftmost_match():
    headers = ["nota prova", "observações", "obs gerais"]
    assert resolve_column(headers, ("observações", "obs")) == 1
    assert resolve_column(headers, ("meta",)) is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Ativo", StudentStatus.ACTIVE),
        ("DESISTENTE", StudentStatus.DROPPED),
        ("dropped out", StudentStatus.DROPPED),
        ("Demitido", StudentStatus.DISMISSED),
        ("em licença", StudentStatus.ACTIVE),
    ],
)
def test_classify_status(raw, expected):
    assert classify_status(raw) == expected


def test_derive_attendance_counts_markers_and_last_filled_day():
    headers = ["nome", "dia 1", "dia 2", "dia 3", "dia 4", "day 5"]
    row = ["Ana", "P", "Falta", None, " ausente ", "a"]

    absences, days_filled = derive_attendance(headers, row)

    assert absences == 3
    assert days_filled == 5


def test_derive_attendance_ignores_non_exact_day_headers():
    headers = ["dia 1 (seg)", "dia 10"]
    row = ["F", "F"]

    assert derive_attendance(headers, row) == (1, 10)


def test_derive_grade_averages_parseable_scores():
    headers = ["nome", "nota av 1", "nota av 2", "nota av 3"]
    row = ["Ana", 8, "9,0", "—"]

    assert derive_grade(headers, row) == pytest.approx(8.5)


def test_derive_grade_without_scores():
    assert derive_grade(["nome", "nota av 1"], ["Ana", None]) == 0.0


def test_normalize_initial_rows(initial_workbook):
    records = normalize(ingest(initial_workbook, TrainingType.INITIAL), TrainingType.INITIAL)

    assert [record.name for record in records] == ["João Silva", "Maria Lima", "Pedro Reis"]

    joao, maria, pedro = records
    assert joao.grade == pytest.approx(8.5)
    assert joao.absences == 1
    assert joao.days_filled == 3
    assert joao.status == StudentStatus.ACTIVE
    assert joao.participation == "Alta"
    assert joao.observations == "Proativo"

    assert maria.grade == pytest.approx(6.0)
    assert maria.absences == 1
    assert maria.days_filled == 1
    assert maria.status == StudentStatus.DROPPED
    assert maria.participation == "Não Informado"

    assert pedro.instructor == "Padrão"
    assert pedro.status == StudentStatus.ACTIVE
    assert pedro.grade == 0.0
    assert pedro.days_filled == 0
    assert pedro.observations == ""


def test_normalize_refresher_rows(refresher_workbook):
    sheet = ingest(refresher_workbook, TrainingType.REFRESHER)
    records = normalize(sheet, TrainingType.REFRESHER, today=TODAY)

    assert len(records) == 3
    tma, nps, fernanda = records

    assert tma.id == "1001"
    assert tma.indicator == "TMA"
    assert (tma.target, tma.pre_result, tma.evaluation, tma.post_result) == (
        180,
        220,
        9.0,
        175,
    )
    assert tma.observations == "Reduziu o TMA"
    assert nps.id == tma.id

    assert fernanda.id == "N/A"
    assert fernanda.supervisor == "N/A"
    assert fernanda.date == "15/03/2024"
    assert fernanda.theme == "Reciclagem Padrão"
    assert fernanda.instructor == "Padrão"
    assert fernanda.indicator == "Geral"
    assert fernanda.target == 0.0
    assert fernanda.pre_result == 8.5
    assert fernanda.evaluation == 0.0
    assert fernanda.post_result == 22


def test_normalize_is_idempotent_for_a_fixed_day(refresher_workbook):
    sheet = ingest(refresher_workbook, TrainingType.REFRESHER)

    first = normalize(sheet, TrainingType.REFRESHER, today=TODAY)
    second = normalize(sheet, TrainingType.REFRESHER, today=TODAY)

    assert first == second


def test_normalize_without_name_column_yields_no_records():
    sheet = ParsedSheet(
        sheet_name="Dados",
        header_row_index=0,
        headers=["instrutor", "nota av 1"],
        rows=[["Ana", 9]],
    )
    assert normalize(sheet, TrainingType.INITIAL) == []

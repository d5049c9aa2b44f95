"""Tests for workbook decoding, sheet selection and header detection."""

import pytest

from trainlytics.constants import TrainingType
from trainlytics.errors import EmptySheetError, FileReadError, ParseError
from trainlytics.ingestor import (
    build_header_lookup,
    ingest,
    read_file_bytes,
    resolve_header_row,
    select_sheet,
)
from trainlytics.normalizer import normalize

from .conftest import workbook_bytes


def test_select_sheet_prefers_data_sheet():
    assert select_sheet(["Instruções de Uso", "Resumo", "Dados da Turma"]) == "Dados da Turma"


def test_select_sheet_skips_instruction_sheets():
    assert select_sheet(["Instruções", "User Guide", "Planilha1"]) == "Planilha1"


def test_select_sheet_falls_back_to_first():
    assert select_sheet(["Instruções", "Guide"]) == "Instruções"


def test_select_sheet_without_sheets():
    with pytest.raises(EmptySheetError):
        select_sheet([])


def test_resolve_header_row_skips_title_rows():
    grid = [
        ["Relatório de Reciclagem", None],
        [None, None],
        ["Matrícula", "Resultado Pré"],
        ["1", 10],
    ]
    assert resolve_header_row(grid, TrainingType.REFRESHER) == 2


def test_resolve_header_row_defaults_to_first_row():
    grid = [["a", "b"], [1, 2]]
    assert resolve_header_row(grid, TrainingType.INITIAL) == 0


def test_build_header_lookup_normalizes_cells():
    assert build_header_lookup(["  Nome Completo ", None, "DIA 1"]) == [
        "nome completo",
        "",
        "dia 1",
    ]


def test_ingest_initial_workbook(initial_workbook):
    sheet = ingest(initial_workbook, TrainingType.INITIAL)

    assert sheet.sheet_name == "Dados da Turma"
    assert sheet.header_row_index == 1
    assert sheet.headers[0] == "nome completo"
    assert "dia 3" in sheet.headers
    assert len(sheet.rows) == 4
    assert sheet.rows[0][0] == "João Silva"


def test_ingest_refresher_workbook(refresher_workbook):
    sheet = ingest(refresher_workbook, TrainingType.REFRESHER)

    assert sheet.header_row_index == 0
    assert sheet.headers[6] == "indicador (kpi)"
    assert len(sheet.rows) == 4


def test_ingest_empty_sheet():
    data = workbook_bytes({"Dados": []})
    with pytest.raises(EmptySheetError):
        ingest(data, TrainingType.INITIAL)


def test_ingest_rejects_non_workbook_bytes():
    with pytest.raises(ParseError):
        ingest(b"definitely not a spreadsheet", TrainingType.INITIAL)


def test_read_file_bytes(tmp_path):
    path = tmp_path / "turma.xlsx"
    path.write_bytes(b"abc")
    assert read_file_bytes(path) == b"abc"


def test_read_file_bytes_missing_file(tmp_path):
    with pytest.raises(FileReadError):
        read_file_bytes(tmp_path / "missing.xlsx")


def test_ingest_keeps_na_like_text():
    data = workbook_bytes(
        {
            "Dados": [
                ["Nome", "Instrutor", "Observações", "Dia 1", "Dia 2", "Dia 3"],
                ["NA", "N/A", "N/A", "Presente", "Falta", "NA"],
                ["Bruna Reis", None, "", "Presente", None, None],
            ]
        }
    )

    sheet = ingest(data, TrainingType.INITIAL)

    assert sheet.rows[0] == ["NA", "N/A", "N/A", "Presente", "Falta", "NA"]
    assert sheet.rows[1] == ["Bruna Reis", None, None, "Presente", None, None]

    records = normalize(sheet, TrainingType.INITIAL)
    assert [record.name for record in records] == ["NA", "Bruna Reis"]
    assert records[0].days_filled == 3
    assert records[0].absences == 1
    assert records[0].observations == "N/A"

"""Shared fixtures: in-memory workbooks and record factories."""

import io
from typing import Any

import pytest
from openpyxl import Workbook

from trainlytics.constants import StudentStatus
from trainlytics.models import InitialTrainingRecord, RefresherRecord


def workbook_bytes(sheets: dict[str, list[list[Any]]]) -> bytes:
    """Serialize sheets (name -> rows) into xlsx bytes, in the given order."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def make_student(
    name: str = "Ana Souza",
    *,
    instructor: str = "Carla",
    grade: float = 8.0,
    absences: int = 0,
    days_filled: int = 10,
    status: StudentStatus = StudentStatus.ACTIVE,
    participation: str = "Alta",
    observations: str = "",
) -> InitialTrainingRecord:
    return InitialTrainingRecord(
        name=name,
        instructor=instructor,
        grade=grade,
        absences=absences,
        days_filled=days_filled,
        status=status,
        participation=participation,
        observations=observations,
    )


def make_operator(
    name: str = "Ricardo Alves",
    *,
    id: str = "1001",
    indicator: str = "NPS",
    target: float = 75,
    pre_result: float = 60,
    post_result: float = 80,
    evaluation: float = 9.0,
    instructor: str = "Silva",
) -> RefresherRecord:
    return RefresherRecord(
        id=id,
        name=name,
        supervisor="Roberto",
        date="10/11/2023",
        theme="Atendimento",
        instructor=instructor,
        indicator=indicator,
        target=target,
        pre_result=pre_result,
        post_result=post_result,
        evaluation=evaluation,
        observations="",
    )


@pytest.fixture
def initial_rows():
    headers = [
        "Nome Completo",
        "Instrutor",
        "Status Atual",
        "Nível Participação",
        "Observações",
        "Nota Av 1",
        "Nota Av 2",
        "Dia 1",
        "Dia 2",
        "Dia 3",
    ]
    return [
        ["Turma Março"],
        headers,
        ["João Silva", "Ana", "Ativo", "Alta", "Proativo", 8, 9, "Presente", "Falta", "P"],
        ["Maria Lima", "Ana", "Desistente", None, None, 6, "x", "F", None, None],
        [None, "Ana", "Ativo", None, None, 10, 10, None, None, None],
        ["  Pedro Reis ", None, None, "Média", "  ", None, None, None, None, None],
    ]


@pytest.fixture
def initial_workbook(initial_rows):
    return workbook_bytes(
        {"Instruções de Uso": [["GUIA"]], "Dados da Turma": initial_rows}
    )


@pytest.fixture
def refresher_rows():
    headers = [
        "Matrícula",
        "Nome do Operador",
        "Supervisor",
        "Data",
        "Tema do Treinamento",
        "Instrutor",
        "Indicador (KPI)",
        "Meta",
        "Resultado Pré",
        "Nota Prova (0-10)",
        "Resultado Pós",
        "Observações do Instrutor",
    ]
    return [
        headers,
        ["1001", "Ricardo Alves", "Roberto", "10/11/2023", "Atendimento", "Silva",
         "TMA", 180, 220, 9.0, 175, "Reduziu o TMA"],
        ["1001", "Ricardo Alves", "Roberto", "10/11/2023", "Atendimento", "Silva",
         "NPS", 75, 60, 9.0, 80, None],
        [None, "Fernanda Costa", None, None, None, None, None, "abc", "8,5", None, 22, None],
        [None, None, None, None, None, None, "TMA", 180, 200, 8, 190, None],
    ]


@pytest.fixture
def refresher_workbook(refresher_rows):
    return workbook_bytes({"Dados para Importação": refresher_rows})

"""Downloadable spreadsheet templates for both training types.

Each workbook has an instructions sheet followed by a data sheet whose
header row is recognized by the ingestor and normalizer as-is.
"""

import io
from datetime import date
from pathlib import Path
from typing import Any, Final

from loguru import logger
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .constants import (
    DATE_FORMAT,
    MAX_ASSESSMENTS,
    PROGRAM_DAYS,
    LogMessage,
    TrainingType,
)

INSTRUCTIONS_SHEET: Final[str] = "Instruções de Uso"
DATA_SHEET_NAMES: Final[dict[TrainingType, str]] = {
    TrainingType.INITIAL: "Dados da Turma",
    TrainingType.REFRESHER: "Dados para Importação",
}
TEMPLATE_FILE_NAMES: Final[dict[TrainingType, str]] = {
    TrainingType.INITIAL: "Modelo_Formacao_Inicial_Corp.xlsx",
    TrainingType.REFRESHER: "Modelo_Reciclagem_Padrao_Corp.xlsx",
}
BRAND_COLORS: Final[dict[TrainingType, str]] = {
    TrainingType.INITIAL: "4F46E5",
    TrainingType.REFRESHER: "059669",
}

INSTRUCTION_SECTION_MARKERS: Final[tuple[str, ...]] = (
    ":",
    "OBJETIVO",
    "REGRAS",
    "DICIONÁRIO",
    "DICA",
)

INITIAL_INSTRUCTIONS: Final[list[list[str]]] = [
    ["GUIA DE PREENCHIMENTO - FORMAÇÃO INICIAL (ONBOARDING)"],
    [],
    ["OBJETIVO:"],
    [
        "Acompanhar a curva de aprendizado, engajamento e assiduidade dos novos "
        f"colaboradores durante os primeiros {PROGRAM_DAYS} dias."
    ],
    [],
    ["REGRAS DE VALIDAÇÃO:"],
    ["1. Status", "Preencha com: 'Ativo', 'Desistente' ou 'Demitido'."],
    [
        "2. Presença",
        f"Para cada dia (1 a {PROGRAM_DAYS}), informe: 'Presente', 'Falta', "
        "'Atestado' ou deixe vazio (futuro).",
    ],
    [
        "3. Avaliações",
        "Notas de provas teóricas ou práticas (0 a 10). A média esperada é 8.0.",
    ],
    [
        "4. Participação",
        "Avaliação qualitativa do instrutor: 'Alta', 'Média' ou 'Baixa'.",
    ],
]

REFRESHER_INSTRUCTIONS: Final[list[list[str]]] = [
    ["GUIA DE PREENCHIMENTO - RECICLAGEM OPERACIONAL"],
    [],
    ["OBJETIVO:"],
    [
        "Esta planilha alimenta a Inteligência Artificial para mensurar o ROI "
        "(Retorno sobre Investimento) do treinamento."
    ],
    ["Preencha os dados com atenção para garantir a precisão da análise."],
    [],
    ["DICIONÁRIO DE DADOS:"],
    ["1. Matrícula/ID", "Identificador único do colaborador no sistema de RH."],
    [
        "2. Indicador",
        "Nome da métrica operacional impactada (Ex: TMA, NPS, Conversão, Qualidade).",
    ],
    ["3. Meta", "O objetivo numérico estipulado para aquele indicador."],
    ["4. Pré-Reciclagem", "Resultado médio do operador ANTES do treinamento."],
    [
        "5. Avaliação (Prova)",
        "Nota obtida na prova de conhecimento aplicada no treinamento (0 a 10).",
    ],
    ["6. Pós-Reciclagem", "Resultado médio do operador APÓS o treinamento."],
    [],
    ["DICA IMPORTANTE:"],
    [
        "Se um operador possui múltiplos indicadores (ex: TMA e Qualidade), insira "
        "duas linhas para o mesmo operador,"
    ],
    ["alterando apenas a coluna 'Indicador' e seus respectivos valores."],
]

INITIAL_HEADERS: Final[list[str]] = [
    "Nome Completo",
    "Instrutor",
    "Status Atual",
    "Nível Participação",
    "Observações Comportamentais",
    *[f"Nota Av {n}" for n in range(1, MAX_ASSESSMENTS + 1)],
    *[f"Dia {n}" for n in range(1, PROGRAM_DAYS + 1)],
]
INITIAL_WIDTHS: Final[list[int]] = [35, 20, 15, 18, 50] + [10] * MAX_ASSESSMENTS + [8] * PROGRAM_DAYS

REFRESHER_HEADERS: Final[list[str]] = [
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
REFRESHER_WIDTHS: Final[list[int]] = [15, 30, 20, 15, 25, 20, 15, 10, 15, 18, 15, 50]


def _initial_examples() -> list[list[Any]]:
    attendance = ["Presente", "Presente", "Falta", "Presente", "Presente"]
    return [
        [
            "João Silva",
            "Ana Oliveira",
            "Ativo",
            "Alta",
            "Perfil proativo, boa curva de aprendizado e ajuda os colegas.",
            8.5,
            9.0,
            7.5,
            None,
            None,
            *attendance,
            *[None] * (PROGRAM_DAYS - len(attendance)),
        ]
    ]


def _refresher_examples(today: date) -> list[list[Any]]:
    day = today.strftime(DATE_FORMAT)
    operator = ["102030", "Carlos Lima", "Coord. Roberto", day]
    session = ["Técnicas de Atendimento", "Instrutor Silva"]
    return [
        [*operator, *session, "TMA (seg)", 180, 240, 9.0, 190,
         "Melhorou a agilidade na navegação do sistema."],
        [*operator, *session, "NPS", 75, 60, 9.0, 80,
         "Demonstrou maior empatia nas simulações."],
    ]


def _style_instructions(ws: Worksheet, brand_color: str) -> None:
    ws.column_dimensions["A"].width = 30
    ws.column_dimensions["B"].width = 80
    ws["A1"].font = Font(name="Calibri", size=18, bold=True, color=brand_color)

    section_fill = PatternFill(fill_type="solid", start_color="F1F5F9", end_color="F1F5F9")
    for row in ws.iter_rows(min_row=2, max_col=1):
        cell = row[0]
        if isinstance(cell.value, str) and any(
            marker in cell.value for marker in INSTRUCTION_SECTION_MARKERS
        ):
            cell.font = Font(name="Calibri", bold=True, color="1E293B")
            cell.fill = section_fill


def _style_data(ws: Worksheet, brand_color: str, widths: list[int]) -> None:
    header_fill = PatternFill(fill_type="solid", start_color=brand_color, end_color=brand_color)
    header_border = Border(
        bottom=Side(style="medium", color="FFFFFF"),
        right=Side(style="thin", color="FFFFFF"),
    )
    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = Font(name="Calibri", size=12, bold=True, color="FFFFFF")
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = header_border

    even_fill = PatternFill(fill_type="solid", start_color="F8FAFC", end_color="F8FAFC")
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            if cell.value is None:
                continue
            if cell.row % 2 == 1:
                cell.fill = even_fill
            cell.font = Font(name="Calibri", size=11, color="334155")
            horizontal = "center" if isinstance(cell.value, (int, float)) else "left"
            cell.alignment = Alignment(horizontal=horizontal, vertical="center")

    for index, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(index)].width = width


def build_template(training_type: TrainingType, *, today: date | None = None) -> Workbook:
    """Build the template workbook for a training type.

    Args:
        training_type: Which template to build.
        today: Date written in the refresher example rows.

    Returns:
        Workbook: Instructions sheet first, data sheet second.
    """
    brand_color = BRAND_COLORS[training_type]
    if training_type == TrainingType.REFRESHER:
        instructions = REFRESHER_INSTRUCTIONS
        headers, widths = REFRESHER_HEADERS, REFRESHER_WIDTHS
        examples = _refresher_examples(today or date.today())
    else:
        instructions = INITIAL_INSTRUCTIONS
        headers, widths = INITIAL_HEADERS, INITIAL_WIDTHS
        examples = _initial_examples()

    wb = Workbook()
    ws_instructions = wb.active
    ws_instructions.title = INSTRUCTIONS_SHEET
    for line in instructions:
        ws_instructions.append(line)
    _style_instructions(ws_instructions, brand_color)

    ws_data = wb.create_sheet(DATA_SHEET_NAMES[training_type])
    ws_data.append(headers)
    for example in examples:
        ws_data.append(example)
    _style_data(ws_data, brand_color, widths)

    return wb


def template_bytes(training_type: TrainingType, *, today: date | None = None) -> bytes:
    """Serialize the template workbook to xlsx bytes."""
    buffer = io.BytesIO()
    build_template(training_type, today=today).save(buffer)
    return buffer.getvalue()


def save_template(training_type: TrainingType, path: Path | str | None = None) -> Path:
    """Write the template workbook to disk.

    Args:
        training_type: Which template to write.
        path: Destination file; defaults to the template's standard file name
            in the current directory.

    Returns:
        Path: Where the workbook was written.
    """
    destination = Path(path) if path else Path(TEMPLATE_FILE_NAMES[training_type])
    destination.parent.mkdir(parents=True, exist_ok=True)
    build_template(training_type).save(destination)
    logger.success(LogMessage.SAVED_TEMPLATE.format(training_type, destination))
    return destination

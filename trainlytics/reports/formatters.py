"""Utilities for formatting dashboard values in reports."""

from typing import Final

from ..constants import Quadrant, StudentStatus

STATUS_LABELS: Final[dict[StudentStatus, str]] = {
    StudentStatus.ACTIVE: "Ativo",
    StudentStatus.DROPPED: "Desistente",
    StudentStatus.DISMISSED: "Demitido",
}

QUADRANT_LABELS: Final[dict[Quadrant, str]] = {
    Quadrant.STARS: "Estrelas",
    Quadrant.PRACTICAL: "Práticos",
    Quadrant.THEORETICAL: "Teóricos",
    Quadrant.CRITICAL: "Críticos",
}

QUADRANT_DESCRIPTIONS: Final[dict[Quadrant, str]] = {
    Quadrant.STARS: "Dominam o conteúdo e entregam resultado. Podem ser padrinhos.",
    Quadrant.PRACTICAL: "Entregam resultado mas foram mal na prova. Revisar conceitos.",
    Quadrant.THEORETICAL: "Foram bem na prova mas não entregam. Falta atitude ou confiança.",
    Quadrant.CRITICAL: "Precisam de reciclagem urgente ou desligamento.",
}

ATTENDANCE_LABELS: Final[dict[str, str]] = {
    "perfect": "Assiduidade 100%",
    "regular": "1 a 3 faltas",
    "critical": "Mais de 3 faltas",
}


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"


def format_signed_percentage(value: float) -> str:
    """Evolution with an explicit sign, e.g. ``+12.5%`` or ``-3.0%``."""
    return f"{value:+.1f}%"


def format_number(value: float) -> str:
    """Compact rendering of KPI results: integers without decimals."""
    return f"{value:g}"


def escape_markup(text: str) -> str:
    """Escape characters reportlab paragraphs treat as markup."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

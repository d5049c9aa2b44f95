"""Built-in sample datasets for trying the dashboards without a spreadsheet."""

from typing import Final

from .constants import CohortStatus, StudentStatus, TrainingType
from .models import InitialTrainingRecord, RefresherRecord

INITIAL_SAMPLE_NAME: Final[str] = "Turma Exemplo - Formação"
REFRESHER_SAMPLE_NAME: Final[str] = "Turma Exemplo - Reciclagem"

# The initial sample cohort is mid-program
INITIAL_SAMPLE_STATUS: Final[CohortStatus] = CohortStatus.IN_PROGRESS


def initial_sample() -> list[InitialTrainingRecord]:
    return [
        InitialTrainingRecord(
            name="Carlos Rocha",
            instructor="Ana",
            grade=7.5,
            absences=2,
            days_filled=12,
            status=StudentStatus.ACTIVE,
            participation="Média",
            observations="Mostra interesse, mas falta base técnica em Excel.",
        ),
        InitialTrainingRecord(
            name="Juliana Lima",
            instructor="Ana",
            grade=9.5,
            absences=0,
            days_filled=12,
            status=StudentStatus.ACTIVE,
            participation="Alta",
            observations="Perfil de liderança excelente, ajuda os colegas.",
        ),
        InitialTrainingRecord(
            name="Marcos Viana",
            instructor="Ana",
            grade=4.5,
            absences=5,
            days_filled=12,
            status=StudentStatus.ACTIVE,
            participation="Baixa",
            observations="Muitas distrações durante as aulas. Baixo rendimento nas provas.",
        ),
        InitialTrainingRecord(
            name="Beatriz Souza",
            instructor="Carlos",
            grade=8.0,
            absences=1,
            days_filled=5,
            status=StudentStatus.DROPPED,
            participation="Média",
            observations="Desistiu por motivos pessoais de saúde.",
        ),
    ]


def refresher_sample() -> list[RefresherRecord]:
    common = {
        "supervisor": "Roberto",
        "date": "10/11/2023",
        "instructor": "Silva",
    }
    return [
        RefresherRecord(
            id="1001",
            name="Ricardo Alves",
            theme="Atendimento",
            indicator="TMA",
            target=180,
            pre_result=220,
            evaluation=9.0,
            post_result=175,
            observations="Reduziu o TMA drasticamente.",
            **common,
        ),
        RefresherRecord(
            id="1001",
            name="Ricardo Alves",
            theme="Atendimento",
            indicator="NPS",
            target=75,
            pre_result=60,
            evaluation=9.0,
            post_result=80,
            observations="Melhorou empatia.",
            **common,
        ),
        RefresherRecord(
            id="1002",
            name="Fernanda Costa",
            theme="Vendas",
            indicator="Conversão",
            target=20,
            pre_result=15,
            evaluation=9.5,
            post_result=22,
            observations="Ótima argumentação.",
            **common,
        ),
    ]


def sample_records(
    training_type: TrainingType,
) -> tuple[str, list[InitialTrainingRecord] | list[RefresherRecord]]:
    """Class name and records of the sample for a training type."""
    if training_type == TrainingType.REFRESHER:
        return REFRESHER_SAMPLE_NAME, refresher_sample()
    return INITIAL_SAMPLE_NAME, initial_sample()

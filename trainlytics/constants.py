"""Constants and enumerations for training analytics."""

from enum import StrEnum
from typing import Final


# Narrative service configuration
DEFAULT_AI_MODEL: Final[str] = "gpt-5-mini"
DEFAULT_FEEDBACK_MODEL: Final[str] = "gpt-5-mini"
DEFAULT_AI_CONCURRENCY: Final[int] = 5
DEFAULT_AI_RATE_PER_SECOND: Final[int] = 2
DEFAULT_AI_MAX_RETRIES: Final[int] = 3
AI_TIMEOUT_SECONDS: Final[float] = 60.0
AI_CONNECT_TIMEOUT_SECONDS: Final[float] = 10.0
MODEL_ENV_VAR: Final[str] = "TRAINLYTICS_MODEL"

# Payload limits sent to the narrative service
OBSERVATION_PREVIEW_CHARS: Final[int] = 100
REFRESHER_PAYLOAD_MAX_CHARS: Final[int] = 30000

# Program shape
PROGRAM_DAYS: Final[int] = 21
MAX_ASSESSMENTS: Final[int] = 5

# Business thresholds
APPROVAL_GRADE: Final[float] = 8.0
ABSENCE_RISK_THRESHOLD: Final[int] = 3
CRITICAL_ABSENCES_ABOVE: Final[int] = 3
THEORY_HIGH_GRADE: Final[float] = 8.5
CLASSROOM_EVAL_TARGET: Final[float] = 9.0
CHART_TOP_LIMIT: Final[int] = 30
HIGHLIGHT_LIMIT: Final[int] = 3
ITEMS_PER_PAGE: Final[int] = 10

# Sentinel used by every filter dimension
ALL: Final[str] = "all"

# Defaults applied by the normalizer
DEFAULT_INSTRUCTOR: Final[str] = "Padrão"
DEFAULT_PARTICIPATION: Final[str] = "Não Informado"
DEFAULT_OPERATOR_ID: Final[str] = "N/A"
DEFAULT_OPERATOR_NAME: Final[str] = "Desconhecido"
DEFAULT_SUPERVISOR: Final[str] = "N/A"
DEFAULT_THEME: Final[str] = "Reciclagem Padrão"
DEFAULT_INDICATOR: Final[str] = "Geral"
DEFAULT_STATUS_TEXT: Final[str] = "ativo"
DATE_FORMAT: Final[str] = "%d/%m/%Y"
AGGREGATE_INDICATOR_LABEL: Final[str] = "Média Geral"

# Output
JSON_INDENT: Final[int] = 2
EMPTY_STRING: Final[str] = ""
EXIT_CODE_ERROR: Final[int] = 1
DEFAULT_OUTPUT_DIR: Final[str] = "output"


class TrainingType(StrEnum):
    """Kinds of training a spreadsheet can describe."""

    INITIAL = "initial"
    REFRESHER = "refresher"


class StudentStatus(StrEnum):
    """Lifecycle status of a student in an onboarding cohort."""

    ACTIVE = "active"
    DROPPED = "dropped"
    DISMISSED = "dismissed"


class CohortStatus(StrEnum):
    """Declared progress of an onboarding cohort."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Severity(StrEnum):
    """Qualitative tier of a metric interpretation."""

    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"
    NEUTRAL = "neutral"


class MetricKind(StrEnum):
    """Metrics the presenter can interpret."""

    GRADE = "grade"
    ABSENTEEISM = "absenteeism"
    TURNOVER = "turnover"
    ACTIVE = "active"
    EVOLUTION = "evolution"
    PASSED = "passed"
    EVAL = "eval"
    SCORE = "score"


class KpiDrilldown(StrEnum):
    """KPI cards that open a list of the records behind them."""

    ABSENTEEISM = "absenteeism"
    TURNOVER = "turnover"
    ACTIVE = "active"


class FilterDimension(StrEnum):
    """Dimensions of the dashboard filter bar."""

    STUDENT_OR_OPERATOR = "student_or_operator"
    INSTRUCTOR = "instructor"
    INDICATOR = "indicator"


class Quadrant(StrEnum):
    """Theory-vs-practice buckets of refresher records."""

    STARS = "stars"
    PRACTICAL = "practical"
    THEORETICAL = "theoretical"
    CRITICAL = "critical"


# Sheet selection
DATA_SHEET_KEYWORD: Final[str] = "dados"
INSTRUCTION_SHEET_KEYWORDS: Final[tuple[str, ...]] = ("instru", "guide")

# Header-row detection
HEADER_ROW_KEYWORDS: Final[dict[TrainingType, tuple[str, ...]]] = {
    TrainingType.REFRESHER: ("resultado", "pré", "tema", "indicador"),
    TrainingType.INITIAL: ("nome", "name", "instrutor", "participação"),
}

# Column resolution, initial training
INITIAL_NAME_KEYWORDS: Final[tuple[str, ...]] = ("nome", "name")
INITIAL_INSTRUCTOR_KEYWORDS: Final[tuple[str, ...]] = ("instrutor", "instructor")
INITIAL_STATUS_KEYWORDS: Final[tuple[str, ...]] = ("status",)
INITIAL_PARTICIPATION_KEYWORDS: Final[tuple[str, ...]] = (
    "participação",
    "participacao",
)
INITIAL_OBSERVATION_KEYWORDS: Final[tuple[str, ...]] = (
    "observação",
    "obs",
    "observações",
)
DAY_HEADER_TEMPLATES: Final[tuple[str, ...]] = ("dia {}", "day {}")
GRADE_HEADER_TEMPLATES: Final[tuple[str, ...]] = ("av {}", "nota {}", "av. {}")
ABSENCE_MARKERS: Final[frozenset[str]] = frozenset(
    {"ausente", "falta", "f", "absent", "a"}
)
DROPPED_STATUS_KEYWORDS: Final[tuple[str, ...]] = ("desist", "drop")
DISMISSED_STATUS_KEYWORDS: Final[tuple[str, ...]] = ("demit", "dismiss")

# Column resolution, refresher training
REFRESHER_ID_KEYWORDS: Final[tuple[str, ...]] = ("matrícula", "matricula", "id")
REFRESHER_NAME_KEYWORDS: Final[tuple[str, ...]] = ("nome", "operador")
REFRESHER_SUPERVISOR_KEYWORDS: Final[tuple[str, ...]] = ("supervisor",)
REFRESHER_DATE_KEYWORDS: Final[tuple[str, ...]] = ("data",)
REFRESHER_THEME_KEYWORDS: Final[tuple[str, ...]] = ("tema",)
REFRESHER_INSTRUCTOR_KEYWORDS: Final[tuple[str, ...]] = ("instrutor",)
REFRESHER_INDICATOR_KEYWORDS: Final[tuple[str, ...]] = (
    "indicador",
    "kpi",
    "métrica",
)
REFRESHER_TARGET_KEYWORDS: Final[tuple[str, ...]] = ("meta", "target", "alvo")
REFRESHER_PRE_KEYWORDS: Final[tuple[str, ...]] = ("pré", "pre")
REFRESHER_EVALUATION_KEYWORDS: Final[tuple[str, ...]] = (
    "avaliação",
    "avaliacao",
    "teste",
    "prova",
    "nota",
)
REFRESHER_POST_KEYWORDS: Final[tuple[str, ...]] = ("pós", "pos")
REFRESHER_OBSERVATION_KEYWORDS: Final[tuple[str, ...]] = ("observações", "obs")

# KPIs where a lower result is the desired outcome
INVERSE_METRIC_KEYWORDS: Final[tuple[str, ...]] = (
    "tma",
    "tme",
    "tempo",
    "time",
    "absente",
    "rechamada",
    "erro",
    "desvio",
    "churn",
    "cancelamento",
    "reclama",
)


class PayloadKey(StrEnum):
    """Field names of the simplified records sent to the narrative service."""

    NAME = "Nome"
    GRADE = "Nota"
    ABSENCES = "Faltas"
    STATUS = "Status"
    PARTICIPATION = "Participacao"
    OBSERVATIONS = "Obs"
    OPERATOR_NAME = "name"
    METRICS = "metrics"
    INDICATOR = "indicador"
    TARGET = "meta"
    PRE_RESULT = "pre_reciclagem"
    EVALUATION = "avaliacao_sala"
    POST_RESULT = "pos_reciclagem"
    OPERATOR_OBSERVATIONS = "obs"


class ServiceFailure(StrEnum):
    """User-readable causes of narrative service failures."""

    CONTENT_FILTERED = "Conteúdo bloqueado por políticas de segurança."
    RATE_LIMITED = "Limite de requisições atingido. Aguarde alguns instantes."
    PERMISSION_DENIED = (
        "Erro de permissão (403). Verifique se o modelo está disponível para sua chave."
    )
    TIMEOUT = "Tempo de resposta da IA esgotado. Tente novamente."
    EMPTY_RESPONSE = "Resposta vazia da IA."
    GENERIC = "Erro ao conectar com a IA."


class UserMessage(StrEnum):
    """Messages shown when the session returns to the upload step."""

    FILE_PROCESSING_ERROR = "Erro ao processar arquivo."
    FILE_READ_ERROR = "Erro ao ler o arquivo."
    EMPTY_SHEET = "A planilha está vazia."
    UNREADABLE_WORKBOOK = "Erro desconhecido ao ler o Excel."
    ANALYSIS_ERROR = "Erro na análise da IA."
    FEEDBACK_UNAVAILABLE = "Não foi possível gerar o feedback."


class LogMessage(StrEnum):
    """Log message templates."""

    READING_FILE = "Reading spreadsheet {}"
    SELECTED_SHEET = "Using sheet '{}' ({} rows)"
    HEADER_ROW = "Header row detected at index {}"
    NORMALIZED_RECORDS = "Normalized {} {} records ({} rows skipped)"
    STEP_CHANGED = "Session step {} -> {}"
    STALE_RESULT = "Discarding stale result for request {} (current {})"
    ANALYSIS_STARTED = "Requesting {} analysis for {} records"
    ANALYSIS_DONE = "Analysis ready (performance score {})"
    ANALYSIS_FAILED = "Analysis failed: {}"
    UNEXPECTED_ANALYZER_ERROR = "Analyzer raised an unexpected error"
    FEEDBACK_STARTED = "Generating feedback for {} records"
    SAVED_RECORDS = "Saved {} records to {}"
    SAVED_DASHBOARD = "Saved dashboard summary to {}"
    SAVED_TEMPLATE = "Saved {} template to {}"
    ERROR_OCCURRED = "Error occurred: {}"


class CliHelp(StrEnum):
    """CLI help messages."""

    APP = "Training analytics for onboarding and refresher spreadsheets"
    FILE = "Spreadsheet (xlsx/xls) exported from the training template."
    TYPE = "Training type described by the spreadsheet."
    STATUS = "Declared cohort status for initial training (inferred when omitted)."
    OUTPUT_DIR = "Directory where reports and exports are written."
    STUDENT = "Restrict the dashboard to one student or operator."
    INSTRUCTOR = "Restrict the dashboard to one instructor."
    INDICATOR = "Restrict the dashboard to one KPI (refresher only)."
    USE_AI = "Ask the narrative service for insights instead of the offline rules."
    API_KEY = "OpenAI API key. Can also be set via OPENAI_API_KEY."
    MODEL = "Model used for narrative insights."
    TEMPLATE_OUTPUT = "Path of the template workbook to write."
    ANALYZE_COMMAND = """Parse a training spreadsheet and produce the dashboard reports.

The spreadsheet is normalized into canonical records, summarized by the
metrics engine, annotated with narrative insights and written as Markdown,
JSON, CSV and PDF reports."""

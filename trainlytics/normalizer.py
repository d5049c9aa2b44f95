"""Record normalization: raw sheet rows to canonical training records."""

import math
import re
from datetime import date, datetime
from typing import Any, Sequence

from loguru import logger

from .constants import (
    ABSENCE_MARKERS,
    DATE_FORMAT,
    DAY_HEADER_TEMPLATES,
    DEFAULT_INDICATOR,
    DEFAULT_INSTRUCTOR,
    DEFAULT_OPERATOR_ID,
    DEFAULT_OPERATOR_NAME,
    DEFAULT_PARTICIPATION,
    DEFAULT_STATUS_TEXT,
    DEFAULT_SUPERVISOR,
    DEFAULT_THEME,
    DISMISSED_STATUS_KEYWORDS,
    DROPPED_STATUS_KEYWORDS,
    EMPTY_STRING,
    GRADE_HEADER_TEMPLATES,
    INITIAL_INSTRUCTOR_KEYWORDS,
    INITIAL_NAME_KEYWORDS,
    INITIAL_OBSERVATION_KEYWORDS,
    INITIAL_PARTICIPATION_KEYWORDS,
    INITIAL_STATUS_KEYWORDS,
    MAX_ASSESSMENTS,
    PROGRAM_DAYS,
    REFRESHER_DATE_KEYWORDS,
    REFRESHER_EVALUATION_KEYWORDS,
    REFRESHER_ID_KEYWORDS,
    REFRESHER_INDICATOR_KEYWORDS,
    REFRESHER_INSTRUCTOR_KEYWORDS,
    REFRESHER_NAME_KEYWORDS,
    REFRESHER_OBSERVATION_KEYWORDS,
    REFRESHER_POST_KEYWORDS,
    REFRESHER_PRE_KEYWORDS,
    REFRESHER_SUPERVISOR_KEYWORDS,
    REFRESHER_TARGET_KEYWORDS,
    REFRESHER_THEME_KEYWORDS,
    LogMessage,
    StudentStatus,
    TrainingType,
)
from .models import InitialTrainingRecord, ParsedSheet, RefresherRecord

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def resolve_column(headers: Sequence[str], keywords: Sequence[str]) -> int | None:
    """Return the index of the first header containing any of the keywords.

    Headers are scanned in column order, so the leftmost matching column wins
    even when a later keyword would match an earlier column exactly.

    Args:
        headers: Lowercased header lookup.
        keywords: Lowercase keywords, any of which may match.

    Returns:
        int | None: Column index, or None when no header matches.
    """
    for index, header in enumerate(headers):
        if any(keyword in header for keyword in keywords):
            return index
    return None


def resolve_exact_column(headers: Sequence[str], candidates: Sequence[str]) -> int | None:
    """Return the index of the first header equal to one of the candidates."""
    for index, header in enumerate(headers):
        if header in candidates:
            return index
    return None


def parse_number(value: Any) -> float | None:
    """Parse a cell as a float, reading the leading number of text cells.

    "8,5" is read as 8.5; "180 seg" as 180. Booleans, blanks and text without
    a leading number yield None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    text = str(value).strip()
    if "," in text and "." not in text:
        text = text.replace(",", ".")
    match = _LEADING_NUMBER.match(text)
    if not match:
        return None
    return float(match.group(0))


def coerce_number(value: Any) -> float:
    """Parse a cell as a float; anything unparseable becomes 0."""
    number = parse_number(value)
    return 0.0 if number is None else number


def cell_text(value: Any) -> str:
    """Render a cell as text the way it reads in the sheet."""
    if value is None:
        return EMPTY_STRING
    if isinstance(value, (datetime, date)):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _cell(row: Sequence[Any], index: int | None) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


def _text_or(value: Any, default: str) -> str:
    """Trimmed text of a cell, or the default for blank and zero cells."""
    if value is None or value == 0:
        return default
    text = cell_text(value).strip()
    return text or default


def classify_status(raw_status: str) -> StudentStatus:
    """Classify a free-text status cell by keyword."""
    lowered = raw_status.lower()
    if any(keyword in lowered for keyword in DROPPED_STATUS_KEYWORDS):
        return StudentStatus.DROPPED
    if any(keyword in lowered for keyword in DISMISSED_STATUS_KEYWORDS):
        return StudentStatus.DISMISSED
    return StudentStatus.ACTIVE


def derive_attendance(headers: Sequence[str], row: Sequence[Any]) -> tuple[int, int]:
    """Count absences and the program day reached for one student row.

    For each day 1..21 the column titled exactly "dia n" or "day n" is read.
    Any non-empty cell moves the day reached forward; absence markers
    ("falta", "f", "ausente", ...) add an absence.

    Returns:
        tuple[int, int]: (absences, days_filled).
    """
    absences = 0
    days_filled = 0
    for day in range(1, PROGRAM_DAYS + 1):
        candidates = [template.format(day) for template in DAY_HEADER_TEMPLATES]
        value = _cell(row, resolve_exact_column(headers, candidates))
        if value is None or value == EMPTY_STRING:
            continue
        days_filled = day
        if cell_text(value).lower().strip() in ABSENCE_MARKERS:
            absences += 1
    return absences, days_filled


def derive_grade(headers: Sequence[str], row: Sequence[Any]) -> float:
    """Mean of the parseable assessment scores (Av 1..Av 5), 0 when none."""
    grades: list[float] = []
    for number in range(1, MAX_ASSESSMENTS + 1):
        keywords = [template.format(number) for template in GRADE_HEADER_TEMPLATES]
        grade = parse_number(_cell(row, resolve_column(headers, keywords)))
        if grade is not None:
            grades.append(grade)
    return sum(grades) / len(grades) if grades else 0.0


def _optional_text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = cell_text(value).strip()
    return text or default


def normalize_initial(sheet: ParsedSheet) -> list[InitialTrainingRecord]:
    """Build onboarding records from a parsed sheet.

    Rows without a student name are skipped. Unparseable numbers never fail
    a row.
    """
    headers = sheet.headers
    name_idx = resolve_column(headers, INITIAL_NAME_KEYWORDS)
    instructor_idx = resolve_column(headers, INITIAL_INSTRUCTOR_KEYWORDS)
    status_idx = resolve_column(headers, INITIAL_STATUS_KEYWORDS)
    participation_idx = resolve_column(headers, INITIAL_PARTICIPATION_KEYWORDS)
    observation_idx = resolve_column(headers, INITIAL_OBSERVATION_KEYWORDS)

    records: list[InitialTrainingRecord] = []
    for row in sheet.rows:
        name = cell_text(_cell(row, name_idx)).strip()
        if not name:
            continue

        absences, days_filled = derive_attendance(headers, row)
        status_text = _text_or(_cell(row, status_idx), DEFAULT_STATUS_TEXT)

        records.append(
            InitialTrainingRecord(
                name=name,
                instructor=_text_or(_cell(row, instructor_idx), DEFAULT_INSTRUCTOR),
                grade=derive_grade(headers, row),
                absences=absences,
                days_filled=days_filled,
                status=classify_status(status_text),
                participation=_optional_text(
                    _cell(row, participation_idx), DEFAULT_PARTICIPATION
                ),
                observations=_optional_text(
                    _cell(row, observation_idx), EMPTY_STRING
                ),
            )
        )

    logger.info(
        LogMessage.NORMALIZED_RECORDS.format(
            len(records), TrainingType.INITIAL, len(sheet.rows) - len(records)
        )
    )
    return records


def normalize_refresher(
    sheet: ParsedSheet, *, today: date | None = None
) -> list[RefresherRecord]:
    """Build refresher records from a parsed sheet, one per row.

    Rows without an operator name are skipped. Operators with several KPIs
    keep one record per KPI; grouping happens downstream.

    Args:
        sheet: Parsed sheet.
        today: Date used when a row has no date. Defaults to the current day.
    """
    headers = sheet.headers
    default_date = (today or date.today()).strftime(DATE_FORMAT)

    id_idx = resolve_column(headers, REFRESHER_ID_KEYWORDS)
    name_idx = resolve_column(headers, REFRESHER_NAME_KEYWORDS)
    supervisor_idx = resolve_column(headers, REFRESHER_SUPERVISOR_KEYWORDS)
    date_idx = resolve_column(headers, REFRESHER_DATE_KEYWORDS)
    theme_idx = resolve_column(headers, REFRESHER_THEME_KEYWORDS)
    instructor_idx = resolve_column(headers, REFRESHER_INSTRUCTOR_KEYWORDS)
    indicator_idx = resolve_column(headers, REFRESHER_INDICATOR_KEYWORDS)
    target_idx = resolve_column(headers, REFRESHER_TARGET_KEYWORDS)
    pre_idx = resolve_column(headers, REFRESHER_PRE_KEYWORDS)
    evaluation_idx = resolve_column(headers, REFRESHER_EVALUATION_KEYWORDS)
    post_idx = resolve_column(headers, REFRESHER_POST_KEYWORDS)
    observation_idx = resolve_column(headers, REFRESHER_OBSERVATION_KEYWORDS)

    records: list[RefresherRecord] = []
    for row in sheet.rows:
        if not cell_text(_cell(row, name_idx)).strip():
            continue

        records.append(
            RefresherRecord(
                id=_text_or(_cell(row, id_idx), DEFAULT_OPERATOR_ID),
                name=_text_or(_cell(row, name_idx), DEFAULT_OPERATOR_NAME),
                supervisor=_text_or(_cell(row, supervisor_idx), DEFAULT_SUPERVISOR),
                date=_text_or(_cell(row, date_idx), default_date),
                theme=_text_or(_cell(row, theme_idx), DEFAULT_THEME),
                instructor=_text_or(_cell(row, instructor_idx), DEFAULT_INSTRUCTOR),
                indicator=_text_or(_cell(row, indicator_idx), DEFAULT_INDICATOR),
                target=coerce_number(_cell(row, target_idx)),
                pre_result=coerce_number(_cell(row, pre_idx)),
                post_result=coerce_number(_cell(row, post_idx)),
                evaluation=coerce_number(_cell(row, evaluation_idx)),
                observations=_text_or(_cell(row, observation_idx), EMPTY_STRING),
            )
        )

    logger.info(
        LogMessage.NORMALIZED_RECORDS.format(
            len(records), TrainingType.REFRESHER, len(sheet.rows) - len(records)
        )
    )
    return records


def normalize(
    sheet: ParsedSheet, training_type: TrainingType, *, today: date | None = None
) -> list[InitialTrainingRecord] | list[RefresherRecord]:
    """Normalize a parsed sheet into canonical records of the given type."""
    if training_type == TrainingType.REFRESHER:
        return normalize_refresher(sheet, today=today)
    return normalize_initial(sheet)

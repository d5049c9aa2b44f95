"""Data models for training analytics."""

from dataclasses import asdict, dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .constants import ALL, StudentStatus, TrainingType


@dataclass(frozen=True)
class InitialTrainingRecord:
    """One student of an onboarding cohort.

    Attributes:
        name: Trimmed student name, the identity key within a cohort.
        instructor: Instructor responsible for the student.
        grade: Mean of the available assessment scores (0-10), 0 when none.
        absences: Days marked as absent among the filled attendance days.
        days_filled: Highest attendance day with any value (program progress).
        status: Active, dropped or dismissed.
        participation: Qualitative participation rating from the instructor.
        observations: Free-text instructor notes.
        kind: Discriminant, always TrainingType.INITIAL.
    """

    name: str
    instructor: str
    grade: float
    absences: int
    days_filled: int
    status: StudentStatus
    participation: str
    observations: str
    kind: TrainingType = field(default=TrainingType.INITIAL, init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert the record to a dictionary for serialization."""
        return asdict(self)


@dataclass(frozen=True)
class RefresherRecord:
    """One (operator, indicator) result of a refresher training.

    An operator with several KPIs contributes several records sharing ``id``.

    Attributes:
        id: Operator registration number, or "N/A".
        name: Operator name.
        supervisor: Operator's supervisor.
        date: Training date as written in the sheet.
        theme: Training theme.
        instructor: Instructor of the session.
        indicator: KPI name (TMA, NPS, ...).
        target: KPI goal.
        pre_result: KPI result before the training.
        post_result: KPI result after the training.
        evaluation: Classroom test score (0-10).
        observations: Free-text instructor notes.
        kind: Discriminant, always TrainingType.REFRESHER.
    """

    id: str
    name: str
    supervisor: str
    date: str
    theme: str
    instructor: str
    indicator: str
    target: float
    pre_result: float
    post_result: float
    evaluation: float
    observations: str
    kind: TrainingType = field(default=TrainingType.REFRESHER, init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert the record to a dictionary for serialization."""
        return asdict(self)


TrainingRecord = InitialTrainingRecord | RefresherRecord


@dataclass(frozen=True)
class ParsedSheet:
    """Grid extracted from a workbook, ready for normalization.

    Attributes:
        sheet_name: Worksheet the rows came from.
        header_row_index: Index of the detected header row in the sheet grid.
        headers: Lowercased, trimmed header cells.
        rows: Data rows below the header, raw cell values (None when empty).
    """

    sheet_name: str
    header_row_index: int
    headers: list[str]
    rows: list[list[Any]]


@dataclass(frozen=True)
class FilterState:
    """Active dashboard filters; every dimension is a value or ``ALL``."""

    student_or_operator: str = ALL
    instructor: str = ALL
    indicator: str = ALL


@dataclass(frozen=True)
class InitialStats:
    """Aggregate statistics of an onboarding subset."""

    avg_grade: float = 0.0
    absenteeism_rate: float = 0.0
    turnover_rate: float = 0.0
    turnover_count: int = 0
    active_count: int = 0
    total_absences: int = 0


@dataclass(frozen=True)
class RefresherStats:
    """Aggregate statistics of a refresher subset."""

    avg_pre: float = 0.0
    avg_eval: float = 0.0
    avg_post: float = 0.0
    evolution: float = 0.0
    passed: int = 0
    avg_target: float = 0.0


@dataclass(frozen=True)
class ChartPoint:
    """A bar group of the refresher pre/post/target chart."""

    name: str
    pre_result: float
    post_result: float
    target: float
    is_aggregate: bool = False
    full_name: str | None = None


@dataclass(frozen=True)
class GradeBar:
    """A bar of the initial-training grade chart."""

    name: str
    grade: float
    absences: int


@dataclass(frozen=True)
class QuadrantCounts:
    """Theory-vs-practice partition of refresher records."""

    stars: int = 0
    practical: int = 0
    theoretical: int = 0
    critical: int = 0

    @property
    def total(self) -> int:
        return self.stars + self.practical + self.theoretical + self.critical


@dataclass(frozen=True)
class AttendanceGroup:
    """Students bucketed by absences with their mean grade."""

    label: str
    count: int
    avg_grade: float


@dataclass(frozen=True)
class InstructorSummary:
    """Per-instructor slice of an onboarding cohort."""

    instructor: str
    count: int
    avg_grade: float
    passed: int


@dataclass(frozen=True)
class IndicatorHighlights:
    """Largest and smallest improvements for a single indicator."""

    indicator: str
    avg_pre: float
    avg_post: float
    best: list[RefresherRecord]
    worst: list[RefresherRecord]


class ProfilingInsight(BaseModel):
    """Behavioural observation about one student."""

    model_config = ConfigDict(populate_by_name=True)

    student_name: str = Field(alias="studentName", description="Student name")
    alignment_score: float = Field(
        default=0, alias="alignmentScore", description="Fit with the expected profile"
    )
    observation: str = Field(default="", description="Short behavioural note")


class IndividualInsight(BaseModel):
    """Highlight about one student or operator."""

    model_config = ConfigDict(populate_by_name=True)

    student_name: str = Field(alias="studentName", description="Student or operator")
    insight: str = Field(description="One-sentence highlight")


class TrainingAnalysis(BaseModel):
    """Narrative analysis returned by the generative service."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(description="Executive summary, one paragraph")
    key_insights: list[str] = Field(
        default_factory=list, alias="keyInsights", description="Correlation insights"
    )
    recommendations: list[str] = Field(
        default_factory=list, description="Practical corrective actions"
    )
    performance_score: float = Field(
        alias="performanceScore", description="Overall success score 0-100"
    )
    profiling_insights: list[ProfilingInsight] | None = Field(
        default=None, alias="profilingInsights"
    )
    individual_insights: list[IndividualInsight] | None = Field(
        default=None, alias="individualInsights"
    )
    email_draft: str | None = Field(default=None, alias="emailDraft")
    is_in_progress: bool = Field(default=False, alias="isInProgress")
    knowledge_gain: float | None = Field(default=None, alias="knowledgeGain")


@dataclass
class DashboardData:
    """Everything a dashboard view needs for one loaded dataset.

    Attributes:
        class_name: Display name of the cohort (file name without extension).
        kind: Training type of every record.
        records: Canonical records, all of the same kind.
        analysis: Narrative analysis of the records.
        is_in_progress: Whether an onboarding cohort is still running.
    """

    class_name: str
    kind: TrainingType
    records: list[InitialTrainingRecord] | list[RefresherRecord]
    analysis: TrainingAnalysis | None = None
    is_in_progress: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert the dashboard to a dictionary for serialization."""
        return {
            "class_name": self.class_name,
            "kind": self.kind,
            "is_in_progress": self.is_in_progress,
            "records": [record.to_dict() for record in self.records],
            "analysis": (
                self.analysis.model_dump(mode="json", by_alias=True)
                if self.analysis is not None
                else None
            ),
        }

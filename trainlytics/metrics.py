"""Metrics engine: aggregate statistics and classification buckets.

Every function here is pure. Inputs are never mutated and every ratio with a
possible zero denominator substitutes a safe default, so no result is ever
NaN or infinite.
"""

from collections import defaultdict
from typing import Sequence

from .constants import (
    ABSENCE_RISK_THRESHOLD,
    ALL,
    APPROVAL_GRADE,
    CHART_TOP_LIMIT,
    CRITICAL_ABSENCES_ABOVE,
    HIGHLIGHT_LIMIT,
    INVERSE_METRIC_KEYWORDS,
    PROGRAM_DAYS,
    THEORY_HIGH_GRADE,
    CohortStatus,
    KpiDrilldown,
    Quadrant,
    StudentStatus,
)
from .models import (
    AttendanceGroup,
    ChartPoint,
    FilterState,
    GradeBar,
    IndicatorHighlights,
    InitialStats,
    InitialTrainingRecord,
    InstructorSummary,
    QuadrantCounts,
    RefresherRecord,
    RefresherStats,
)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def is_inverse_metric(indicator: str) -> bool:
    """True when a lower result is better for the KPI (TMA, churn, errors...)."""
    lowered = indicator.lower()
    return any(keyword in lowered for keyword in INVERSE_METRIC_KEYWORDS)


def hits_target(record: RefresherRecord) -> bool:
    """Whether the post-training result reached the KPI target.

    Inverse KPIs hit the target at or below it; all others at or above it.
    """
    if is_inverse_metric(record.indicator):
        return record.post_result <= record.target
    return record.post_result >= record.target


def improvement(record: RefresherRecord) -> float:
    """Raw post minus pre difference, not direction-aware."""
    return record.post_result - record.pre_result


# Initial training


def current_day(records: Sequence[InitialTrainingRecord]) -> int:
    """Highest program day reached by any record, floored at 1."""
    return max([record.days_filled for record in records] + [1])


def is_in_progress(
    records: Sequence[InitialTrainingRecord],
    forced_status: CohortStatus | None = None,
) -> bool:
    """Whether a cohort is still running.

    An explicit status wins; otherwise the cohort runs until some record
    reaches the last program day.
    """
    if forced_status is not None:
        return forced_status == CohortStatus.IN_PROGRESS
    max_days = max([record.days_filled for record in records] + [0])
    return max_days < PROGRAM_DAYS


def initial_stats(records: Sequence[InitialTrainingRecord]) -> InitialStats:
    """Aggregate statistics of an onboarding subset.

    The absenteeism rate is normalized by person-days elapsed
    (records x highest day reached), not by the full program length.
    """
    total = len(records)
    if total == 0:
        return InitialStats()

    day = current_day(records)
    total_absences = sum(record.absences for record in records)
    turnover_count = sum(
        1 for record in records if record.status != StudentStatus.ACTIVE
    )

    return InitialStats(
        avg_grade=_mean([record.grade for record in records]),
        absenteeism_rate=total_absences / (total * day) * 100,
        turnover_rate=turnover_count / total * 100,
        turnover_count=turnover_count,
        active_count=total - turnover_count,
        total_absences=total_absences,
    )


def is_at_risk(record: InitialTrainingRecord) -> bool:
    """Grade below approval or too many absences."""
    return record.grade < APPROVAL_GRADE or record.absences >= ABSENCE_RISK_THRESHOLD


def at_risk_records(
    records: Sequence[InitialTrainingRecord],
) -> list[InitialTrainingRecord]:
    return [record for record in records if is_at_risk(record)]


def approval_rate(records: Sequence[InitialTrainingRecord]) -> float:
    """Percentage of records at or above the approval grade."""
    if not records:
        return 0.0
    approved = sum(1 for record in records if record.grade >= APPROVAL_GRADE)
    return approved / len(records) * 100


def kpi_drilldown(
    records: Sequence[InitialTrainingRecord], kpi: KpiDrilldown
) -> list[InitialTrainingRecord]:
    """Records behind a KPI card.

    Absenteeism lists students with any absence, most absences first;
    turnover lists everyone no longer active; active lists the rest.
    """
    if kpi == KpiDrilldown.ABSENTEEISM:
        return sorted(
            (record for record in records if record.absences > 0),
            key=lambda record: record.absences,
            reverse=True,
        )
    if kpi == KpiDrilldown.TURNOVER:
        return [record for record in records if record.status != StudentStatus.ACTIVE]
    return [record for record in records if record.status == StudentStatus.ACTIVE]


def initial_chart_points(
    records: Sequence[InitialTrainingRecord], limit: int = CHART_TOP_LIMIT
) -> list[GradeBar]:
    """Top students by grade, labelled by first name."""
    ranked = sorted(records, key=lambda record: record.grade, reverse=True)[:limit]
    return [
        GradeBar(
            name=record.name.split(" ")[0],
            grade=record.grade,
            absences=record.absences,
        )
        for record in ranked
    ]


def attendance_groups(
    records: Sequence[InitialTrainingRecord],
) -> list[AttendanceGroup]:
    """Perfect (no absences), regular (1-3) and critical (more than 3) groups."""
    perfect = [record for record in records if record.absences == 0]
    regular = [
        record
        for record in records
        if 1 <= record.absences <= CRITICAL_ABSENCES_ABOVE
    ]
    critical = [
        record for record in records if record.absences > CRITICAL_ABSENCES_ABOVE
    ]
    return [
        AttendanceGroup(
            label=label,
            count=len(group),
            avg_grade=round(_mean([record.grade for record in group]), 2),
        )
        for label, group in (
            ("perfect", perfect),
            ("regular", regular),
            ("critical", critical),
        )
    ]


def instructor_breakdown(
    records: Sequence[InitialTrainingRecord],
) -> list[InstructorSummary]:
    """Count, mean grade and approvals per instructor, in order of appearance."""
    grouped: dict[str, list[InitialTrainingRecord]] = defaultdict(list)
    for record in records:
        grouped[record.instructor].append(record)

    return [
        InstructorSummary(
            instructor=instructor,
            count=len(group),
            avg_grade=_mean([record.grade for record in group]),
            passed=sum(1 for record in group if record.grade >= APPROVAL_GRADE),
        )
        for instructor, group in grouped.items()
    ]


# Refresher training


def refresher_stats(records: Sequence[RefresherRecord]) -> RefresherStats:
    """Aggregate statistics of a refresher subset.

    Evolution divides by ``avg_pre or 1``: when every pre-result is zero the
    percentage is taken against 1, which can be very large.
    """
    total = len(records)
    if total == 0:
        return RefresherStats()

    avg_pre = _mean([record.pre_result for record in records])
    avg_post = _mean([record.post_result for record in records])

    return RefresherStats(
        avg_pre=avg_pre,
        avg_eval=_mean([record.evaluation for record in records]),
        avg_post=avg_post,
        evolution=(avg_post - avg_pre) / (avg_pre or 1) * 100,
        passed=sum(1 for record in records if hits_target(record)),
        avg_target=_mean([record.target for record in records]),
    )


def refresher_chart_points(
    records: Sequence[RefresherRecord],
    filters: FilterState,
    limit: int = CHART_TOP_LIMIT,
) -> list[ChartPoint]:
    """Chart series for the already-filtered refresher subset.

    Precedence:
        1. A specific operator: one point per indicator of that operator.
        2. A specific indicator: one point per operator, largest
           improvement first, capped at ``limit``.
        3. Otherwise: one aggregate point per indicator with mean values.
    """
    if filters.student_or_operator != ALL:
        return [
            ChartPoint(
                name=record.indicator,
                pre_result=record.pre_result,
                post_result=record.post_result,
                target=record.target,
                full_name=record.name,
            )
            for record in records
        ]

    if filters.indicator != ALL:
        ranked = sorted(records, key=improvement, reverse=True)[:limit]
        return [
            ChartPoint(
                name=record.name.split(" ")[0],
                pre_result=record.pre_result,
                post_result=record.post_result,
                target=record.target,
                full_name=record.name,
            )
            for record in ranked
        ]

    grouped: dict[str, list[RefresherRecord]] = defaultdict(list)
    for record in records:
        grouped[record.indicator].append(record)

    return [
        ChartPoint(
            name=indicator,
            pre_result=_mean([record.pre_result for record in group]),
            post_result=_mean([record.post_result for record in group]),
            target=_mean([record.target for record in group]),
            is_aggregate=True,
        )
        for indicator, group in grouped.items()
    ]


def classify_quadrant(
    record: RefresherRecord, threshold: float = THEORY_HIGH_GRADE
) -> Quadrant:
    """Place a record in the theory-vs-practice matrix."""
    high_theory = record.evaluation >= threshold
    if hits_target(record):
        return Quadrant.STARS if high_theory else Quadrant.PRACTICAL
    return Quadrant.THEORETICAL if high_theory else Quadrant.CRITICAL


def quadrant_counts(
    records: Sequence[RefresherRecord], threshold: float = THEORY_HIGH_GRADE
) -> QuadrantCounts:
    """Count records per quadrant; the counts always sum to ``len(records)``."""
    counts = {quadrant: 0 for quadrant in Quadrant}
    for record in records:
        counts[classify_quadrant(record, threshold)] += 1
    return QuadrantCounts(
        stars=counts[Quadrant.STARS],
        practical=counts[Quadrant.PRACTICAL],
        theoretical=counts[Quadrant.THEORETICAL],
        critical=counts[Quadrant.CRITICAL],
    )


def group_by_operator(
    records: Sequence[RefresherRecord],
) -> dict[str, list[RefresherRecord]]:
    """Group records by operator id, keeping first-seen order.

    Names may collide between operators, so the id is the key.
    """
    grouped: dict[str, list[RefresherRecord]] = {}
    for record in records:
        grouped.setdefault(record.id, []).append(record)
    return grouped


def indicators(records: Sequence[RefresherRecord]) -> list[str]:
    """Distinct indicators, sorted."""
    return sorted({record.indicator for record in records})


def indicator_highlights(
    records: Sequence[RefresherRecord],
    indicator: str,
    limit: int = HIGHLIGHT_LIMIT,
) -> IndicatorHighlights:
    """Best and worst raw improvements among the records of one indicator."""
    subset = [record for record in records if record.indicator == indicator]
    ranked = sorted(subset, key=improvement, reverse=True)
    return IndicatorHighlights(
        indicator=indicator,
        avg_pre=_mean([record.pre_result for record in subset]),
        avg_post=_mean([record.post_result for record in subset]),
        best=ranked[:limit],
        worst=list(reversed(ranked))[:limit],
    )


def target_progress(record: RefresherRecord) -> float:
    """Post result as a percentage of target, clamped to 0..100."""
    progress = record.post_result / (record.target or 1) * 100
    return min(max(progress, 0.0), 100.0)

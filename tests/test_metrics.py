"""Tests for the metrics engine."""

import math

import pytest

from trainlytics.constants import (
    ALL,
    CohortStatus,
    KpiDrilldown,
    Quadrant,
    StudentStatus,
)
from trainlytics.metrics import (
    approval_rate,
    at_risk_records,
    attendance_groups,
    classify_quadrant,
    current_day,
    group_by_operator,
    hits_target,
    indicator_highlights,
    indicators,
    initial_chart_points,
    initial_stats,
    instructor_breakdown,
    is_in_progress,
    is_inverse_metric,
    kpi_drilldown,
    quadrant_counts,
    refresher_chart_points,
    refresher_stats,
    target_progress,
)
from trainlytics.models import FilterState, InitialStats, RefresherStats
from trainlytics.view_state import filter_initial

from .conftest import make_operator, make_student


@pytest.fixture
def cohort():
    return [
        make_student("Ana Souza", grade=9.0, absences=0, days_filled=10),
        make_student("Bruno Reis", grade=7.0, absences=2, days_filled=10),
        make_student(
            "Carla Dias",
            instructor="Paulo",
            grade=5.0,
            absences=6,
            days_filled=8,
            status=StudentStatus.DROPPED,
        ),
        make_student("Davi Melo", instructor="Paulo", grade=8.0, absences=3, days_filled=10),
    ]


@pytest.fixture
def operators():
    return [
        make_operator("Ricardo Alves", id="1", indicator="TMA", target=180, pre_result=220, post_result=175, evaluation=9.0),
        make_operator("Ricardo Alves", id="1", indicator="NPS", target=75, pre_result=60, post_result=70, evaluation=9.0),
        make_operator("Fernanda Costa", id="2", indicator="NPS", target=75, pre_result=50, post_result=80, evaluation=7.0),
        make_operator("Gil Nunes", id="3", indicator="TMA", target=180, pre_result=200, post_result=210, evaluation=6.0, instructor="Rosa"),
    ]


def test_initial_stats(cohort):
    stats = initial_stats(cohort)

    assert stats.avg_grade == pytest.approx(7.25)
    # 11 absences over 4 students x 10 days
    assert stats.absenteeism_rate == pytest.approx(27.5)
    assert stats.turnover_count == 1
    assert stats.turnover_rate == pytest.approx(25.0)
    assert stats.active_count == 3
    assert stats.total_absences == 11


def test_initial_stats_empty_subset():
    assert initial_stats([]) == InitialStats()


def test_absenteeism_uses_floor_of_one_day():
    stats = initial_stats([make_student(absences=0, days_filled=0)])
    assert stats.absenteeism_rate == 0.0
    assert current_day([make_student(days_filled=0)]) == 1


def test_is_in_progress_inference_and_override(cohort):
    assert is_in_progress(cohort) is True
    finished = cohort + [make_student("Eva", days_filled=21)]
    assert is_in_progress(finished) is False
    assert is_in_progress(finished, CohortStatus.IN_PROGRESS) is True
    assert is_in_progress(cohort, CohortStatus.COMPLETED) is False


def test_at_risk_and_approval(cohort):
    assert [record.name for record in at_risk_records(cohort)] == [
        "Bruno Reis",
        "Carla Dias",
        "Davi Melo",
    ]
    assert approval_rate(cohort) == pytest.approx(50.0)
    assert approval_rate([]) == 0.0


def test_kpi_drilldown(cohort):
    absent = kpi_drilldown(cohort, KpiDrilldown.ABSENTEEISM)
    assert [record.absences for record in absent] == [6, 3, 2]

    assert [record.name for record in kpi_drilldown(cohort, KpiDrilldown.TURNOVER)] == [
        "Carla Dias"
    ]
    assert len(kpi_drilldown(cohort, KpiDrilldown.ACTIVE)) == 3


def test_initial_chart_points_ranked_by_grade(cohort):
    points = initial_chart_points(cohort, limit=2)
    assert [point.name for point in points] == ["Ana", "Davi"]
    assert points[0].grade == 9.0


def test_attendance_groups(cohort):
    groups = {group.label: group for group in attendance_groups(cohort)}

    assert groups["perfect"].count == 1
    assert groups["regular"].count == 2
    assert groups["regular"].avg_grade == pytest.approx(7.5)
    assert groups["critical"].count == 1
    assert groups["critical"].avg_grade == 5.0


def test_attendance_groups_empty_average_is_zero():
    groups = attendance_groups([make_student(absences=0)])
    assert all(not math.isnan(group.avg_grade) for group in groups)
    assert groups[2].avg_grade == 0


def test_instructor_breakdown(cohort):
    summaries = instructor_breakdown(cohort)
    assert [summary.instructor for summary in summaries] == ["Carla", "Paulo"]
    assert summaries[1].count == 2
    assert summaries[1].passed == 1
    assert summaries[1].avg_grade == pytest.approx(6.5)


@pytest.mark.parametrize(
    "indicator,expected",
    [
        ("TMA", True),
        ("tempo de espera", True),
        ("Churn", True),
        ("Rechamadas", True),
        ("NPS", False),
        ("Conversão", False),
    ],
)
def test_is_inverse_metric(indicator, expected):
    assert is_inverse_metric(indicator) is expected


def test_hits_target_respects_direction():
    assert hits_target(make_operator(indicator="TMA", target=180, post_result=180))
    assert not hits_target(make_operator(indicator="TMA", target=180, post_result=181))
    assert hits_target(make_operator(indicator="NPS", target=75, post_result=75))
    assert not hits_target(make_operator(indicator="NPS", target=75, post_result=74))


def test_refresher_stats(operators):
    stats = refresher_stats(operators)

    assert stats.avg_pre == pytest.approx(132.5)
    assert stats.avg_post == pytest.approx(133.75)
    assert stats.avg_eval == pytest.approx(7.75)
    assert stats.evolution == pytest.approx((133.75 - 132.5) / 132.5 * 100)
    assert stats.passed == 2
    assert stats.avg_target == pytest.approx(127.5)


def test_refresher_stats_empty_subset():
    assert refresher_stats([]) == RefresherStats()


def test_evolution_with_zero_pre_results():
    stats = refresher_stats([make_operator(pre_result=0, post_result=10)])
    assert stats.evolution == pytest.approx(1000.0)


def test_quadrants_partition_every_record(operators):
    counts = quadrant_counts(operators)

    assert counts.total == len(operators)
    assert counts.stars == 1
    assert counts.theoretical == 1
    assert counts.practical == 1
    assert counts.critical == 1
    assert classify_quadrant(operators[0]) == Quadrant.STARS
    assert classify_quadrant(operators[3]) == Quadrant.CRITICAL


def test_quadrant_threshold_is_configurable(operators):
    counts = quadrant_counts(operators, threshold=6.0)
    assert counts.practical == 0
    assert counts.theoretical == 2


def test_chart_points_for_one_operator(operators):
    filters = FilterState(student_or_operator="Ricardo Alves")
    subset = [record for record in operators if record.name == "Ricardo Alves"]

    points = refresher_chart_points(subset, filters)

    assert [point.name for point in points] == ["TMA", "NPS"]
    assert all(point.full_name == "Ricardo Alves" for point in points)
    assert not any(point.is_aggregate for point in points)


def test_chart_points_for_one_indicator(operators):
    filters = FilterState(indicator="NPS")
    subset = [record for record in operators if record.indicator == "NPS"]

    points = refresher_chart_points(subset, filters)

    assert [point.name for point in points] == ["Fernanda", "Ricardo"]


def test_chart_points_aggregate_by_indicator(operators):
    points = refresher_chart_points(operators, FilterState())

    assert [point.name for point in points] == ["TMA", "NPS"]
    tma = points[0]
    assert tma.is_aggregate
    assert tma.pre_result == pytest.approx(210.0)
    assert tma.post_result == pytest.approx(192.5)
    assert tma.target == pytest.approx(180.0)


def test_operator_filter_wins_over_indicator(operators):
    filters = FilterState(student_or_operator="Ricardo Alves", indicator="NPS")
    subset = [
        record
        for record in operators
        if record.name == "Ricardo Alves" and record.indicator == "NPS"
    ]

    points = refresher_chart_points(subset, filters)

    assert [point.name for point in points] == ["NPS"]


def test_group_by_operator_keys_on_id():
    records = [
        make_operator("João", id="1"),
        make_operator("João", id="2"),
        make_operator("João", id="1", indicator="TMA"),
    ]
    grouped = group_by_operator(records)
    assert list(grouped) == ["1", "2"]
    assert len(grouped["1"]) == 2


def test_indicators_and_highlights(operators):
    assert indicators(operators) == ["NPS", "TMA"]

    highlights = indicator_highlights(operators, "NPS", limit=1)
    assert highlights.best[0].name == "Fernanda Costa"
    assert highlights.worst[0].name == "Ricardo Alves"
    assert highlights.avg_pre == pytest.approx(55.0)


def test_target_progress_is_clamped():
    assert target_progress(make_operator(target=80, post_result=40)) == 50.0
    assert target_progress(make_operator(target=80, post_result=120)) == 100.0
    assert target_progress(make_operator(target=0, post_result=-5)) == 0.0


def test_filtering_never_grows_counts(cohort):
    everyone = initial_stats(cohort)
    paulo = initial_stats(filter_initial(cohort, FilterState(instructor="Paulo")))

    assert paulo.turnover_count <= everyone.turnover_count
    assert paulo.active_count <= everyone.active_count
    assert paulo.total_absences <= everyone.total_absences
    assert FilterState().instructor == ALL

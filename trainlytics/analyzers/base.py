"""Rule-based training analyzer."""

from typing import Sequence

from loguru import logger

from ..constants import (
    ABSENCE_RISK_THRESHOLD,
    APPROVAL_GRADE,
    HIGHLIGHT_LIMIT,
    CohortStatus,
    LogMessage,
    TrainingType,
)
from ..metrics import (
    approval_rate,
    at_risk_records,
    attendance_groups,
    group_by_operator,
    hits_target,
    improvement,
    initial_stats,
    is_in_progress,
    quadrant_counts,
    refresher_stats,
)
from ..models import (
    IndividualInsight,
    InitialTrainingRecord,
    RefresherRecord,
    TrainingAnalysis,
)

MAX_LISTED = 5


class TrainingAnalyzer:
    """Builds a narrative analysis from the metrics engine alone.

    Used when no API key is configured or the narrative service is disabled.
    Produces the same ``TrainingAnalysis`` shape as the AI service, so the
    session and reports do not care which one ran. Methods are coroutines
    for the same reason.

    Attributes:
        approval_grade: Grade at or above which a student is approved.
        absence_threshold: Absences at or above which a student is at risk.
    """

    def __init__(
        self,
        *,
        approval_grade: float = APPROVAL_GRADE,
        absence_threshold: int = ABSENCE_RISK_THRESHOLD,
    ):
        self.approval_grade = approval_grade
        self.absence_threshold = absence_threshold

    async def analyze_initial(
        self,
        records: Sequence[InitialTrainingRecord],
        forced_status: CohortStatus | None = None,
    ) -> TrainingAnalysis:
        """Analyze an onboarding cohort with fixed business rules.

        Covers:
        - Approval against the 8.0 grade target
        - Grade differences between attendance groups
        - Turnover and absenteeism
        - Students below the grade target or over the absence limit

        Args:
            records: Canonical onboarding records.
            forced_status: Declared cohort status; inferred when omitted.

        Returns:
            TrainingAnalysis: Analysis with a 0-100 score.
        """
        logger.info(LogMessage.ANALYSIS_STARTED.format(TrainingType.INITIAL, len(records)))

        stats = initial_stats(records)
        approval = approval_rate(records)
        at_risk = at_risk_records(records)
        groups = {group.label: group for group in attendance_groups(records)}

        summary = (
            f"Turma com {len(records)} alunos e média geral {stats.avg_grade:.1f}. "
            f"{approval:.0f}% dos alunos estão na meta de {self.approval_grade:.1f} "
            f"e {len(at_risk)} exigem atenção."
        )

        key_insights = [
            f"Alunos sem faltas têm média {groups['perfect'].avg_grade:.1f}; "
            f"alunos com mais de {self.absence_threshold} faltas têm média "
            f"{groups['critical'].avg_grade:.1f}.",
            f"Absenteísmo de {stats.absenteeism_rate:.1f}% "
            f"({stats.total_absences} faltas no período).",
            f"Turnover de {stats.turnover_rate:.1f}% "
            f"({stats.turnover_count} alunos fora da turma).",
        ]

        recommendations = []
        if any(record.grade < self.approval_grade for record in at_risk):
            recommendations.append(
                f"Reforço técnico para alunos abaixo de {self.approval_grade:.1f}."
            )
        if any(record.absences >= self.absence_threshold for record in at_risk):
            recommendations.append(
                "Conversa individual sobre frequência com alunos em alto risco de faltas."
            )
        if stats.turnover_count:
            recommendations.append("Levantar os motivos de desistência e desligamento.")

        individual_insights = [
            IndividualInsight(
                student_name=record.name,
                insight=(
                    f"Nota {record.grade:.1f} com {record.absences} faltas."
                ),
            )
            for record in sorted(at_risk, key=lambda record: record.grade)[:MAX_LISTED]
        ]

        absenteeism_penalty = min(stats.absenteeism_rate, 100.0)
        score = round(approval * 0.7 + (100 - absenteeism_penalty) * 0.3)

        analysis = TrainingAnalysis(
            summary=summary,
            key_insights=key_insights,
            recommendations=recommendations,
            performance_score=score if records else 0,
            individual_insights=individual_insights,
            is_in_progress=is_in_progress(records, forced_status),
        )
        logger.success(LogMessage.ANALYSIS_DONE.format(analysis.performance_score))
        return analysis

    async def analyze_refresher(
        self, records: Sequence[RefresherRecord]
    ) -> TrainingAnalysis:
        """Analyze a refresher training from target attainment and evolution."""
        logger.info(
            LogMessage.ANALYSIS_STARTED.format(TrainingType.REFRESHER, len(records))
        )

        stats = refresher_stats(records)
        quadrants = quadrant_counts(records)
        operators = group_by_operator(records)
        total = len(records)

        summary = (
            f"{len(operators)} operadores reciclados em {total} indicadores. "
            f"{stats.passed} resultados atingiram a meta após o treinamento "
            f"e a nota média em sala foi {stats.avg_eval:.1f}."
        )

        key_insights = [
            f"{quadrants.stars} resultados unem teoria alta e meta atingida.",
            f"{quadrants.theoretical} resultados têm teoria alta sem reflexo na operação.",
            f"{quadrants.critical} resultados ficaram abaixo da meta e da nota de sala.",
        ]

        recommendations = []
        if quadrants.theoretical:
            recommendations.append(
                "Acompanhamento em posição de atendimento para levar a teoria à prática."
            )
        if quadrants.critical:
            recommendations.append("Nova reciclagem para o grupo crítico.")
        if quadrants.practical:
            recommendations.append(
                "Revisar o conteúdo teórico com quem bate a meta sem dominar a teoria."
            )

        ranked = sorted(records, key=improvement, reverse=True)
        individual_insights = [
            IndividualInsight(
                student_name=record.name,
                insight=(
                    f"{record.indicator}: {record.pre_result:g} -> {record.post_result:g} "
                    f"({'meta atingida' if hits_target(record) else 'abaixo da meta'})."
                ),
            )
            for record in ranked[:HIGHLIGHT_LIMIT]
        ]

        email_draft = (
            "Prezados supervisores e coordenadores,\n\n"
            f"{summary}\n\n"
            + "\n".join(f"- {insight}" for insight in key_insights)
            + "\n\nAtenciosamente,\nEquipe de Treinamento"
        )

        analysis = TrainingAnalysis(
            summary=summary,
            key_insights=key_insights,
            recommendations=recommendations,
            performance_score=round(stats.passed / total * 100) if total else 0,
            individual_insights=individual_insights,
            email_draft=email_draft,
            knowledge_gain=0,
        )
        logger.success(LogMessage.ANALYSIS_DONE.format(analysis.performance_score))
        return analysis

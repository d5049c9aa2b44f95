"""Generate dashboard reports (Markdown, JSON and PDF) from analyzed training data."""

import json
import re
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    Flowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from ..constants import (
    ALL,
    JSON_INDENT,
    Quadrant,
    TrainingType,
)
from ..metrics import (
    approval_rate,
    at_risk_records,
    attendance_groups,
    current_day,
    indicator_highlights,
    indicators,
    initial_stats,
    instructor_breakdown,
    quadrant_counts,
    refresher_stats,
)
from ..models import DashboardData, FilterState
from ..view_state import filter_initial, filter_refresher
from .formatters import (
    ATTENDANCE_LABELS,
    QUADRANT_DESCRIPTIONS,
    QUADRANT_LABELS,
    STATUS_LABELS,
    escape_markup,
    format_number,
    format_percentage,
    format_signed_percentage,
)

HEADER_COLOR = colors.HexColor("#4F46E5")
REFRESHER_HEADER_COLOR = colors.HexColor("#059669")


def report_stem(class_name: str) -> str:
    """File-system friendly stem for a cohort name."""
    stem = re.sub(r"[^\w\-]+", "_", class_name).strip("_")
    return stem or "relatorio"


class ReportGenerator:
    """Generate reports for one dashboard, restricted to the active filters."""

    def __init__(self, dashboard: DashboardData, filters: FilterState | None = None):
        """Initialize report generator.

        Args:
            dashboard: Analyzed dataset.
            filters: Filters applied to the records; all records when omitted.
        """
        self.dashboard = dashboard
        self.filters = filters or FilterState()
        if dashboard.kind == TrainingType.REFRESHER:
            self.records = filter_refresher(dashboard.records, self.filters)
        else:
            self.records = filter_initial(dashboard.records, self.filters)

    @property
    def is_refresher(self) -> bool:
        return self.dashboard.kind == TrainingType.REFRESHER

    def _title(self) -> str:
        if self.is_refresher:
            return "Relatório de Impacto: Reciclagem Operacional"
        return "Relatório de Performance & Capacitação"

    def _active_filters(self) -> list[str]:
        labels = {
            "student_or_operator": "Operador" if self.is_refresher else "Aluno",
            "instructor": "Instrutor",
            "indicator": "Indicador",
        }
        return [
            f"{labels[key]}: {value}"
            for key, value in asdict(self.filters).items()
            if value != ALL
        ]

    def summary(self) -> dict[str, Any]:
        """Stats, breakdowns and narrative of the filtered records as plain data."""
        data: dict[str, Any] = {
            "class_name": self.dashboard.class_name,
            "kind": self.dashboard.kind,
            "generated_at": datetime.now().isoformat(timespec="seconds"),
            "filters": asdict(self.filters),
            "total_records": len(self.records),
        }

        if self.is_refresher:
            data["stats"] = asdict(refresher_stats(self.records))
            data["quadrants"] = asdict(quadrant_counts(self.records))
            data["indicators"] = [
                {
                    "indicator": highlights.indicator,
                    "avg_pre": highlights.avg_pre,
                    "avg_post": highlights.avg_post,
                    "best": [record.name for record in highlights.best],
                    "worst": [record.name for record in highlights.worst],
                }
                for highlights in (
                    indicator_highlights(self.records, indicator)
                    for indicator in indicators(self.records)
                )
            ]
        else:
            data["is_in_progress"] = self.dashboard.is_in_progress
            data["current_day"] = current_day(self.records)
            data["stats"] = asdict(initial_stats(self.records))
            data["approval_rate"] = approval_rate(self.records)
            data["attendance_groups"] = [
                asdict(group) for group in attendance_groups(self.records)
            ]
            data["instructors"] = [
                asdict(summary) for summary in instructor_breakdown(self.records)
            ]
            data["at_risk"] = [record.name for record in at_risk_records(self.records)]

        analysis = self.dashboard.analysis
        data["analysis"] = (
            analysis.model_dump(mode="json", by_alias=True) if analysis else None
        )
        return data

    def generate_json(self, output_path: Path) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as f:
            json.dump(self.summary(), f, indent=JSON_INDENT, ensure_ascii=False)
        logger.success(f"JSON summary saved to {output_path}")
        return output_path

    # Markdown

    def _markdown_initial(self) -> list[str]:
        stats = initial_stats(self.records)
        lines = [
            "## Indicadores",
            "",
            "| Métrica | Valor | Meta |",
            "|---------|-------|------|",
            f"| Média Geral | {stats.avg_grade:.1f} | ≥8.0 |",
            f"| Aprovação | {format_percentage(approval_rate(self.records))} | 100% |",
            f"| Absenteísmo | {format_percentage(stats.absenteeism_rate)} | ≤5% |",
            f"| Turnover | {format_percentage(stats.turnover_rate)} ({stats.turnover_count}) | 0% |",
            f"| Alunos Ativos | {stats.active_count} | - |",
            f"| Dia Atual | {current_day(self.records)} | - |",
            "",
            "## Presença & Engajamento",
            "",
            "| Grupo | Alunos | Média |",
            "|-------|--------|-------|",
        ]
        for group in attendance_groups(self.records):
            lines.append(
                f"| {ATTENDANCE_LABELS[group.label]} | {group.count} | {group.avg_grade:.2f} |"
            )

        lines += [
            "",
            "## Instrutores",
            "",
            "| Instrutor | Alunos | Média | Aprovados |",
            "|-----------|--------|-------|-----------|",
        ]
        for summary in instructor_breakdown(self.records):
            lines.append(
                f"| {summary.instructor} | {summary.count} | "
                f"{summary.avg_grade:.1f} | {summary.passed} |"
            )

        lines += ["", "## Alunos em Risco", ""]
        at_risk = at_risk_records(self.records)
        if at_risk:
            lines += [
                "| Aluno | Nota | Faltas | Status |",
                "|-------|------|--------|--------|",
            ]
            for record in at_risk:
                lines.append(
                    f"| {record.name} | {record.grade:.1f} | {record.absences} | "
                    f"{STATUS_LABELS[record.status]} |"
                )
        else:
            lines.append("✓ Sem riscos detectados.")
        lines.append("")
        return lines

    def _markdown_refresher(self) -> list[str]:
        stats = refresher_stats(self.records)
        lines = [
            "## Indicadores",
            "",
            "| Métrica | Valor |",
            "|---------|-------|",
            f"| Média Pré | {format_number(round(stats.avg_pre, 2))} |",
            f"| Média Avaliação (Sala) | {stats.avg_eval:.1f} |",
            f"| Média Pós | {format_number(round(stats.avg_post, 2))} |",
            f"| Evolução | {format_signed_percentage(stats.evolution)} |",
            f"| Meta Atingida (Pós) | {stats.passed} de {len(self.records)} |",
            "",
            "## Evolução por Indicador",
            "",
        ]
        for indicator in indicators(self.records):
            highlights = indicator_highlights(self.records, indicator)
            lines += [
                f"### {indicator}",
                "",
                f"- **Média Pré:** {format_number(round(highlights.avg_pre, 2))}",
                f"- **Média Pós:** {format_number(round(highlights.avg_post, 2))}",
                "- **Maiores evoluções:** "
                + ", ".join(record.name for record in highlights.best),
                "- **Menores evoluções:** "
                + ", ".join(record.name for record in highlights.worst),
                "",
            ]

        quadrants = asdict(quadrant_counts(self.records))
        lines += [
            "## Matriz Teoria x Prática",
            "",
            "| Quadrante | Resultados | Leitura |",
            "|-----------|------------|---------|",
        ]
        for quadrant in Quadrant:
            lines.append(
                f"| {QUADRANT_LABELS[quadrant]} | {quadrants[quadrant.value]} | "
                f"{QUADRANT_DESCRIPTIONS[quadrant]} |"
            )
        lines.append("")
        return lines

    def _markdown_analysis(self) -> list[str]:
        analysis = self.dashboard.analysis
        if analysis is None:
            return []

        lines = [
            "## Análise",
            "",
            analysis.summary,
            "",
            f"**Performance Score:** {analysis.performance_score:.0f}/100",
            "",
            "### Insights",
            "",
            *[f"- {insight}" for insight in analysis.key_insights],
            "",
            "### Recomendações",
            "",
            *[
                f"{index}. {recommendation}"
                for index, recommendation in enumerate(analysis.recommendations, 1)
            ],
            "",
        ]
        if analysis.individual_insights:
            lines += ["### Destaques Individuais", ""]
            lines += [
                f"- **{item.student_name}:** {item.insight}"
                for item in analysis.individual_insights
            ]
            lines.append("")
        if analysis.profiling_insights:
            lines += ["### Perfil Comportamental", ""]
            lines += [
                f"- **{item.student_name}** ({item.alignment_score:.0f}): {item.observation}"
                for item in analysis.profiling_insights
            ]
            lines.append("")
        if analysis.email_draft:
            lines += ["### Minuta de E-mail", "", analysis.email_draft, ""]
        return lines

    def render_markdown(self) -> str:
        lines = [
            f"# {self._title()}",
            "",
            f"**Turma:** {self.dashboard.class_name}",
            f"**Gerado em:** {datetime.now().strftime('%d/%m/%Y %H:%M')}",
            f"**Registros:** {len(self.records)}",
        ]
        if not self.is_refresher:
            status = "Em andamento" if self.dashboard.is_in_progress else "Concluída"
            lines.append(f"**Situação:** {status}")
        active = self._active_filters()
        if active:
            lines.append(f"**Filtros:** {'; '.join(active)}")
        lines += ["", "---", ""]

        lines += self._markdown_refresher() if self.is_refresher else self._markdown_initial()
        lines += self._markdown_analysis()
        return "\n".join(lines)

    def generate_markdown(self, output_path: Path) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.render_markdown(), encoding="utf-8")
        logger.success(f"Markdown report saved to {output_path}")
        return output_path

    # PDF

    def _table(self, data: list[list[Any]], col_widths: list[float]) -> Table:
        header_color = REFRESHER_HEADER_COLOR if self.is_refresher else HEADER_COLOR
        table = Table(data, colWidths=col_widths)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), header_color),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                    ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 9),
                    ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ]
            )
        )
        return table

    def _pdf_initial(self, heading: ParagraphStyle, body: ParagraphStyle) -> list[Flowable]:
        stats = initial_stats(self.records)
        story: list[Flowable] = [Paragraph("Indicadores", heading)]
        story.append(
            self._table(
                [
                    ["Métrica", "Valor", "Meta"],
                    ["Média Geral", f"{stats.avg_grade:.1f}", ">= 8.0"],
                    ["Aprovação", format_percentage(approval_rate(self.records)), "100%"],
                    ["Absenteísmo", format_percentage(stats.absenteeism_rate), "<= 5%"],
                    [
                        "Turnover",
                        f"{format_percentage(stats.turnover_rate)} ({stats.turnover_count})",
                        "0%",
                    ],
                    ["Alunos Ativos", str(stats.active_count), "-"],
                    ["Dia Atual", str(current_day(self.records)), "-"],
                ],
                [2.5 * inch, 2.0 * inch, 1.5 * inch],
            )
        )
        story.append(Spacer(1, 0.25 * inch))

        story.append(Paragraph("Presença &amp; Engajamento", heading))
        story.append(
            self._table(
                [["Grupo", "Alunos", "Média"]]
                + [
                    [ATTENDANCE_LABELS[group.label], str(group.count), f"{group.avg_grade:.2f}"]
                    for group in attendance_groups(self.records)
                ],
                [2.5 * inch, 1.5 * inch, 1.5 * inch],
            )
        )
        story.append(Spacer(1, 0.25 * inch))

        story.append(Paragraph("Alunos em Risco", heading))
        at_risk = at_risk_records(self.records)
        if at_risk:
            story.append(
                self._table(
                    [["Aluno", "Nota", "Faltas", "Status"]]
                    + [
                        [
                            Paragraph(escape_markup(record.name), body),
                            f"{record.grade:.1f}",
                            str(record.absences),
                            STATUS_LABELS[record.status],
                        ]
                        for record in at_risk
                    ],
                    [2.8 * inch, 1.0 * inch, 1.0 * inch, 1.2 * inch],
                )
            )
        else:
            story.append(Paragraph("Sem riscos detectados.", body))
        story.append(Spacer(1, 0.25 * inch))
        return story

    def _pdf_refresher(self, heading: ParagraphStyle, body: ParagraphStyle) -> list[Flowable]:
        stats = refresher_stats(self.records)
        story: list[Flowable] = [Paragraph("Indicadores", heading)]
        story.append(
            self._table(
                [
                    ["Métrica", "Valor"],
                    ["Média Pré", format_number(round(stats.avg_pre, 2))],
                    ["Média Avaliação (Sala)", f"{stats.avg_eval:.1f}"],
                    ["Média Pós", format_number(round(stats.avg_post, 2))],
                    ["Evolução", format_signed_percentage(stats.evolution)],
                    ["Meta Atingida (Pós)", f"{stats.passed} de {len(self.records)}"],
                ],
                [3.0 * inch, 2.5 * inch],
            )
        )
        story.append(Spacer(1, 0.25 * inch))

        story.append(Paragraph("Evolução por Indicador", heading))
        rows: list[list[Any]] = [["Indicador", "Média Pré", "Média Pós", "Maiores evoluções"]]
        for indicator in indicators(self.records):
            highlights = indicator_highlights(self.records, indicator)
            rows.append(
                [
                    Paragraph(escape_markup(indicator), body),
                    format_number(round(highlights.avg_pre, 2)),
                    format_number(round(highlights.avg_post, 2)),
                    Paragraph(
                        escape_markup(", ".join(record.name for record in highlights.best)),
                        body,
                    ),
                ]
            )
        story.append(self._table(rows, [1.5 * inch, 1.0 * inch, 1.0 * inch, 2.8 * inch]))
        story.append(Spacer(1, 0.25 * inch))

        story.append(Paragraph("Matriz Teoria x Prática", heading))
        quadrants = asdict(quadrant_counts(self.records))
        story.append(
            self._table(
                [["Quadrante", "Resultados", "Leitura"]]
                + [
                    [
                        QUADRANT_LABELS[quadrant],
                        str(quadrants[quadrant.value]),
                        Paragraph(QUADRANT_DESCRIPTIONS[quadrant], body),
                    ]
                    for quadrant in Quadrant
                ],
                [1.3 * inch, 1.0 * inch, 4.0 * inch],
            )
        )
        story.append(Spacer(1, 0.25 * inch))
        return story

    def _pdf_analysis(
        self, heading: ParagraphStyle, subheading: ParagraphStyle, body: ParagraphStyle
    ) -> list[Flowable]:
        analysis = self.dashboard.analysis
        if analysis is None:
            return []

        story: list[Flowable] = [
            Paragraph("Análise", heading),
            Paragraph(escape_markup(analysis.summary), body),
            Spacer(1, 0.1 * inch),
            Paragraph(
                f"<b>Performance Score:</b> {analysis.performance_score:.0f}/100", body
            ),
            Spacer(1, 0.15 * inch),
            Paragraph("Insights", subheading),
        ]
        story += [Paragraph(f"• {escape_markup(item)}", body) for item in analysis.key_insights]
        story.append(Spacer(1, 0.15 * inch))
        story.append(Paragraph("Recomendações", subheading))
        story += [
            Paragraph(f"{index}. {escape_markup(item)}", body)
            for index, item in enumerate(analysis.recommendations, 1)
        ]
        if analysis.individual_insights:
            story.append(Spacer(1, 0.15 * inch))
            story.append(Paragraph("Destaques Individuais", subheading))
            story += [
                Paragraph(
                    f"<b>{escape_markup(item.student_name)}:</b> {escape_markup(item.insight)}",
                    body,
                )
                for item in analysis.individual_insights
            ]
        if analysis.email_draft:
            story.append(Spacer(1, 0.15 * inch))
            story.append(Paragraph("Minuta de E-mail", subheading))
            story += [
                Paragraph(escape_markup(line), body)
                for line in analysis.email_draft.splitlines()
                if line.strip()
            ]
        return story

    def generate_pdf(self, output_path: Path) -> Path:
        """Render the report as a PDF with reportlab.

        Args:
            output_path: Where the PDF is written.

        Returns:
            Path: ``output_path``.
        """
        logger.info("Generating PDF report...")
        output_path.parent.mkdir(parents=True, exist_ok=True)

        doc = SimpleDocTemplate(
            str(output_path),
            pagesize=A4,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "CustomTitle",
            parent=styles["Heading1"],
            fontSize=20,
            textColor=REFRESHER_HEADER_COLOR if self.is_refresher else HEADER_COLOR,
            spaceAfter=20,
        )
        heading_style = ParagraphStyle(
            "CustomHeading", parent=styles["Heading2"], fontSize=14, spaceAfter=10
        )
        subheading_style = ParagraphStyle(
            "CustomSubHeading", parent=styles["Heading3"], fontSize=11, spaceAfter=6
        )
        body_style = styles["Normal"]

        story: list[Flowable] = [
            Paragraph(escape_markup(self._title()), title_style),
            Paragraph(f"Turma: {escape_markup(self.dashboard.class_name)}", body_style),
            Paragraph(
                f"Gerado em: {datetime.now().strftime('%d/%m/%Y %H:%M')}", body_style
            ),
        ]
        active = self._active_filters()
        if active:
            story.append(
                Paragraph(f"Filtros: {escape_markup('; '.join(active))}", body_style)
            )
        story.append(Spacer(1, 0.3 * inch))

        if self.is_refresher:
            story += self._pdf_refresher(heading_style, body_style)
        else:
            story += self._pdf_initial(heading_style, body_style)
        story += self._pdf_analysis(heading_style, subheading_style, body_style)

        doc.build(story)
        logger.success(f"PDF report saved to {output_path}")
        return output_path

    def generate_all(self, output_dir: Path) -> dict[str, Path]:
        """Write Markdown, JSON and PDF reports named after the cohort.

        Returns:
            dict[str, Path]: Report format to written path.
        """
        stem = report_stem(self.dashboard.class_name)
        return {
            "markdown": self.generate_markdown(output_dir / f"{stem}.md"),
            "json": self.generate_json(output_dir / f"{stem}_summary.json"),
            "pdf": self.generate_pdf(output_dir / f"{stem}.pdf"),
        }

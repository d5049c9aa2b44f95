"""CLI interface for training analytics."""

import asyncio
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from .analyzers.ai import AINarrativeService
from .analyzers.base import TrainingAnalyzer
from .constants import (
    DEFAULT_AI_CONCURRENCY,
    DEFAULT_OUTPUT_DIR,
    EXIT_CODE_ERROR,
    CliHelp,
    CohortStatus,
    FilterDimension,
    LogMessage,
    MetricKind,
    Severity,
    TrainingType,
)
from .metrics import (
    at_risk_records,
    hits_target,
    initial_stats,
    refresher_stats,
)
from .models import DashboardData, InitialTrainingRecord, RefresherRecord
from .narrative import interpret
from .reports import ReportGenerator, report_stem
from .session import AnalysisStep, Session
from .storage import DashboardStorage
from .templates import save_template
from .view_state import ViewState

app = typer.Typer(help=CliHelp.APP)
console = Console()

SEVERITY_STYLES = {
    Severity.SUCCESS: "green",
    Severity.WARNING: "yellow",
    Severity.DANGER: "red",
    Severity.NEUTRAL: "cyan",
}


def _build_analyzer(
    *, use_ai: bool, openai_api_key: str | None, model: str | None, ai_concurrency: int
) -> AINarrativeService | TrainingAnalyzer:
    if not use_ai:
        return TrainingAnalyzer()
    if not openai_api_key:
        logger.error(
            "OpenAI API key required for AI analysis. Set OPENAI_API_KEY environment "
            "variable or use --openai-api-key flag."
        )
        raise typer.Exit(code=EXIT_CODE_ERROR)
    return AINarrativeService(
        api_key=openai_api_key, model=model, max_concurrency=ai_concurrency
    )


async def _close(analyzer: AINarrativeService | TrainingAnalyzer) -> None:
    if isinstance(analyzer, AINarrativeService):
        await analyzer.aclose()


def _fail_from_session(session: Session) -> None:
    logger.error(session.error or "Analysis did not complete")
    raise typer.Exit(code=EXIT_CODE_ERROR)


async def _load_records(
    session: Session, *, file: Path, training_type: TrainingType
) -> list[InitialTrainingRecord] | list[RefresherRecord]:
    """Read and normalize a spreadsheet through the session flow."""
    if not await session.open_file(file):
        _fail_from_session(session)
    if session.choose_type(training_type) == AnalysisStep.UPLOAD:
        _fail_from_session(session)
    return session.pending_records or []


def _print_dashboard(
    dashboard: DashboardData,
    view_state: ViewState,
    subset: list[InitialTrainingRecord] | list[RefresherRecord],
) -> None:
    """Print the headline metrics of the filtered records with their interpretation."""
    filters = view_state.filters
    if dashboard.kind == TrainingType.REFRESHER:
        stats = refresher_stats(subset)
        metrics = [
            (MetricKind.EVOLUTION, stats.evolution, f"{stats.evolution:+.1f}%"),
            (MetricKind.PASSED, stats.passed, f"{stats.passed}/{len(subset)}"),
            (MetricKind.EVAL, stats.avg_eval, f"{stats.avg_eval:.1f}"),
        ]
    else:
        stats = initial_stats(subset)
        metrics = [
            (MetricKind.GRADE, stats.avg_grade, f"{stats.avg_grade:.1f}"),
            (MetricKind.ABSENTEEISM, stats.absenteeism_rate, f"{stats.absenteeism_rate:.1f}%"),
            (MetricKind.TURNOVER, stats.turnover_rate, f"{stats.turnover_rate:.1f}%"),
            (MetricKind.ACTIVE, stats.active_count, str(stats.active_count)),
        ]

    if dashboard.analysis is not None:
        score = dashboard.analysis.performance_score
        metrics.append((MetricKind.SCORE, score, f"{score:.0f}"))

    table = Table(title=f"{dashboard.class_name} ({len(subset)} registros)")
    table.add_column("Métrica", style="bold")
    table.add_column("Valor", justify="right")
    table.add_column("Leitura")
    for metric, value, shown in metrics:
        interpretation = interpret(metric, value, dashboard.kind, filters)
        style = SEVERITY_STYLES[interpretation.severity]
        table.add_row(
            interpretation.title, f"[{style}]{shown}[/{style}]", interpretation.insight
        )
    console.print(table)

    if dashboard.analysis is not None:
        console.print(f"\n[bold]Resumo:[/bold] {dashboard.analysis.summary}")


async def _analyze_async(
    *,
    file: Path | None,
    training_type: TrainingType,
    status: CohortStatus | None,
    use_ai: bool,
    openai_api_key: str | None,
    model: str | None,
    ai_concurrency: int,
    output_dir: Path,
    student: str | None,
    instructor: str | None,
    indicator: str | None,
) -> None:
    """Async implementation of the analyze and sample commands."""
    analyzer = _build_analyzer(
        use_ai=use_ai,
        openai_api_key=openai_api_key,
        model=model,
        ai_concurrency=ai_concurrency,
    )
    session = Session(analyzer=analyzer)

    try:
        if file is None:
            session.load_sample(training_type)
        else:
            await _load_records(session, file=file, training_type=training_type)
            if session.step == AnalysisStep.SELECTING_STATUS:
                session.choose_status(status)

        dashboard = await session.analyze()
        if dashboard is None:
            _fail_from_session(session)
    finally:
        await _close(analyzer)

    for dimension, value in (
        (FilterDimension.STUDENT_OR_OPERATOR, student),
        (FilterDimension.INSTRUCTOR, instructor),
        (FilterDimension.INDICATOR, indicator),
    ):
        if value:
            session.set_filter(dimension, value)

    _print_dashboard(dashboard, session.view_state, session.visible_records())

    output_dir.mkdir(parents=True, exist_ok=True)
    stem = report_stem(dashboard.class_name)
    storage = DashboardStorage()
    storage.save_records_csv(
        records=session.visible_records(), filepath=output_dir / f"{stem}_records.csv"
    )
    storage.save_dashboard(dashboard=dashboard, filepath=output_dir / f"{stem}_dashboard.json")

    report_generator = ReportGenerator(dashboard, session.view_state.filters)
    logger.info(f"Generating reports to {output_dir}...")
    report_generator.generate_all(output_dir)
    logger.success("Reports generated successfully!")


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        logger.exception(LogMessage.ERROR_OCCURRED.format(e))
        raise typer.Exit(code=EXIT_CODE_ERROR)


@app.command(help=CliHelp.ANALYZE_COMMAND)
def analyze(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help=CliHelp.FILE),
    training_type: TrainingType = typer.Option(
        TrainingType.INITIAL, "--type", "-t", help=CliHelp.TYPE
    ),
    status: CohortStatus = typer.Option(None, "--status", "-s", help=CliHelp.STATUS),
    use_ai: bool = typer.Option(False, "--ai/--no-ai", help=CliHelp.USE_AI),
    openai_api_key: str = typer.Option(
        None, "--openai-api-key", envvar="OPENAI_API_KEY", help=CliHelp.API_KEY
    ),
    model: str = typer.Option(None, "--model", help=CliHelp.MODEL),
    ai_concurrency: int = typer.Option(
        DEFAULT_AI_CONCURRENCY,
        "--ai-concurrency",
        help=f"Maximum concurrent AI API requests (default: {DEFAULT_AI_CONCURRENCY}).",
    ),
    output_dir: Path = typer.Option(
        Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help=CliHelp.OUTPUT_DIR
    ),
    student: str = typer.Option(None, "--student", help=CliHelp.STUDENT),
    instructor: str = typer.Option(None, "--instructor", help=CliHelp.INSTRUCTOR),
    indicator: str = typer.Option(None, "--indicator", help=CliHelp.INDICATOR),
) -> None:
    _run(
        _analyze_async(
            file=file,
            training_type=training_type,
            status=status,
            use_ai=use_ai,
            openai_api_key=openai_api_key,
            model=model,
            ai_concurrency=ai_concurrency,
            output_dir=output_dir,
            student=student,
            instructor=instructor,
            indicator=indicator,
        )
    )


@app.command()
def sample(
    training_type: TrainingType = typer.Option(
        TrainingType.INITIAL, "--type", "-t", help=CliHelp.TYPE
    ),
    use_ai: bool = typer.Option(False, "--ai/--no-ai", help=CliHelp.USE_AI),
    openai_api_key: str = typer.Option(
        None, "--openai-api-key", envvar="OPENAI_API_KEY", help=CliHelp.API_KEY
    ),
    model: str = typer.Option(None, "--model", help=CliHelp.MODEL),
    output_dir: Path = typer.Option(
        Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help=CliHelp.OUTPUT_DIR
    ),
) -> None:
    """Run the dashboard flow on the built-in sample data."""
    _run(
        _analyze_async(
            file=None,
            training_type=training_type,
            status=None,
            use_ai=use_ai,
            openai_api_key=openai_api_key,
            model=model,
            ai_concurrency=DEFAULT_AI_CONCURRENCY,
            output_dir=output_dir,
            student=None,
            instructor=None,
            indicator=None,
        )
    )


@app.command()
def template(
    training_type: TrainingType = typer.Option(
        TrainingType.INITIAL, "--type", "-t", help=CliHelp.TYPE
    ),
    output: Path = typer.Option(None, "--output", "-o", help=CliHelp.TEMPLATE_OUTPUT),
) -> None:
    """Write the spreadsheet template for a training type."""
    try:
        save_template(training_type, output)
    except Exception as e:
        logger.exception(LogMessage.ERROR_OCCURRED.format(e))
        raise typer.Exit(code=EXIT_CODE_ERROR)


async def _feedback_async(
    *,
    file: Path,
    training_type: TrainingType,
    openai_api_key: str | None,
    ai_concurrency: int,
    output_dir: Path,
    student: str | None,
) -> None:
    """Async implementation of the feedback command."""
    service = _build_analyzer(
        use_ai=True,
        openai_api_key=openai_api_key,
        model=None,
        ai_concurrency=ai_concurrency,
    )
    session = Session(analyzer=service)

    try:
        records = await _load_records(session, file=file, training_type=training_type)
        if student:
            targets = [record for record in records if record.name == student]
        elif training_type == TrainingType.REFRESHER:
            targets = [record for record in records if not hits_target(record)]
        else:
            targets = at_risk_records(records)

        if not targets:
            logger.info("No records need feedback")
            return

        feedback = await service.generate_feedback_batch(targets)
    finally:
        await _close(service)

    stem = report_stem(Path(file).stem)
    DashboardStorage().save_feedback(
        feedback=feedback, filepath=output_dir / f"{stem}_feedback.md"
    )


@app.command()
def feedback(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help=CliHelp.FILE),
    training_type: TrainingType = typer.Option(
        TrainingType.INITIAL, "--type", "-t", help=CliHelp.TYPE
    ),
    openai_api_key: str = typer.Option(
        None, "--openai-api-key", envvar="OPENAI_API_KEY", help=CliHelp.API_KEY
    ),
    ai_concurrency: int = typer.Option(
        DEFAULT_AI_CONCURRENCY, "--ai-concurrency", help="Maximum concurrent AI API requests."
    ),
    output_dir: Path = typer.Option(
        Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help=CliHelp.OUTPUT_DIR
    ),
    student: str = typer.Option(None, "--student", help=CliHelp.STUDENT),
) -> None:
    """Generate individual feedback for at-risk students or operators below target."""
    _run(
        _feedback_async(
            file=file,
            training_type=training_type,
            openai_api_key=openai_api_key,
            ai_concurrency=ai_concurrency,
            output_dir=output_dir,
            student=student,
        )
    )

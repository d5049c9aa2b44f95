"""Analysis session: the upload-to-dashboard state machine.

A session owns the loaded records, the dashboard and its view state. Every
file selection, sample load and analysis start bumps a request token; an
analysis that resolves under an older token is discarded, so a slow answer
for a previous file never replaces the current dashboard.
"""

import asyncio
from enum import StrEnum
from pathlib import Path
from typing import Protocol, Sequence

from loguru import logger

from .constants import (
    CohortStatus,
    FilterDimension,
    LogMessage,
    TrainingType,
    UserMessage,
)
from .errors import (
    InvalidTransitionError,
    NarrativeServiceError,
    TrainlyticsError,
)
from .ingestor import ingest, read_file_bytes
from .models import (
    DashboardData,
    InitialTrainingRecord,
    RefresherRecord,
    TrainingAnalysis,
)
from .normalizer import normalize
from .samples import INITIAL_SAMPLE_STATUS, sample_records
from .view_state import ViewState, filter_initial, filter_refresher


class AnalysisStep(StrEnum):
    """Steps of the upload-to-dashboard flow."""

    UPLOAD = "upload"
    SELECTING_TYPE = "selecting_type"
    SELECTING_STATUS = "selecting_status"
    ANALYZING = "analyzing"
    VIEWING = "viewing"


class SessionEvent(StrEnum):
    """Events that move a session between steps."""

    FILE_SELECTED = "file_selected"
    INITIAL_CHOSEN = "initial_chosen"
    REFRESHER_CHOSEN = "refresher_chosen"
    STATUS_CHOSEN = "status_chosen"
    SAMPLE_LOADED = "sample_loaded"
    ANALYSIS_SUCCEEDED = "analysis_succeeded"
    FAILED = "failed"
    RESET = "reset"


TRANSITIONS: dict[tuple[AnalysisStep, SessionEvent], AnalysisStep] = {
    (AnalysisStep.UPLOAD, SessionEvent.FILE_SELECTED): AnalysisStep.SELECTING_TYPE,
    (AnalysisStep.UPLOAD, SessionEvent.SAMPLE_LOADED): AnalysisStep.ANALYZING,
    (AnalysisStep.SELECTING_TYPE, SessionEvent.FILE_SELECTED): AnalysisStep.SELECTING_TYPE,
    (AnalysisStep.SELECTING_TYPE, SessionEvent.INITIAL_CHOSEN): AnalysisStep.SELECTING_STATUS,
    (AnalysisStep.SELECTING_TYPE, SessionEvent.REFRESHER_CHOSEN): AnalysisStep.ANALYZING,
    (AnalysisStep.SELECTING_TYPE, SessionEvent.FAILED): AnalysisStep.UPLOAD,
    (AnalysisStep.SELECTING_STATUS, SessionEvent.FILE_SELECTED): AnalysisStep.SELECTING_TYPE,
    (AnalysisStep.SELECTING_STATUS, SessionEvent.STATUS_CHOSEN): AnalysisStep.ANALYZING,
    (AnalysisStep.SELECTING_STATUS, SessionEvent.FAILED): AnalysisStep.UPLOAD,
    (AnalysisStep.ANALYZING, SessionEvent.FILE_SELECTED): AnalysisStep.SELECTING_TYPE,
    (AnalysisStep.ANALYZING, SessionEvent.ANALYSIS_SUCCEEDED): AnalysisStep.VIEWING,
    (AnalysisStep.ANALYZING, SessionEvent.FAILED): AnalysisStep.UPLOAD,
    (AnalysisStep.VIEWING, SessionEvent.FILE_SELECTED): AnalysisStep.SELECTING_TYPE,
}


def next_step(step: AnalysisStep, event: SessionEvent) -> AnalysisStep:
    """Look up the step an event leads to.

    RESET is accepted from every step and always leads back to upload.

    Raises:
        InvalidTransitionError: If the event is not allowed in ``step``.
    """
    if event == SessionEvent.RESET:
        return AnalysisStep.UPLOAD
    try:
        return TRANSITIONS[(step, event)]
    except KeyError:
        raise InvalidTransitionError(
            f"Event '{event}' is not allowed in step '{step}'"
        ) from None


class NarrativeAnalyzer(Protocol):
    """What the session needs from an analyzer (AI service or offline rules)."""

    async def analyze_initial(
        self,
        records: Sequence[InitialTrainingRecord],
        forced_status: CohortStatus | None = None,
    ) -> TrainingAnalysis: ...

    async def analyze_refresher(
        self, records: Sequence[RefresherRecord]
    ) -> TrainingAnalysis: ...


class Session:
    """Single-user analysis session.

    Attributes:
        analyzer: Produces the narrative analysis of the loaded records.
        step: Current step of the flow.
        error: User-readable message of the last failure, if any.
        dashboard: The dashboard being viewed, if any.
        view_state: Filters, page and modals of the dashboard.
    """

    def __init__(self, *, analyzer: NarrativeAnalyzer):
        self.analyzer = analyzer
        self.step = AnalysisStep.UPLOAD
        self.error: str | None = None
        self.dashboard: DashboardData | None = None
        self.view_state = ViewState()

        self._token = 0
        self._pending_name: str | None = None
        self._pending_data: bytes | None = None
        self._pending_type: TrainingType | None = None
        self._pending_records: list[InitialTrainingRecord] | list[RefresherRecord] | None = None
        self._pending_status: CohortStatus | None = None

    @property
    def token(self) -> int:
        return self._token

    @property
    def pending_records(
        self,
    ) -> list[InitialTrainingRecord] | list[RefresherRecord] | None:
        return self._pending_records

    def _transition(self, event: SessionEvent) -> None:
        step = next_step(self.step, event)
        logger.debug(LogMessage.STEP_CHANGED.format(self.step, step))
        self.step = step

    def _bump(self) -> int:
        self._token += 1
        return self._token

    def _clear_pending(self) -> None:
        self._pending_name = None
        self._pending_data = None
        self._pending_type = None
        self._pending_records = None
        self._pending_status = None

    def _fail(self, message: str) -> None:
        """Return to upload, dropping pending records, and keep the message."""
        logger.warning(LogMessage.ANALYSIS_FAILED.format(message))
        self._transition(SessionEvent.FAILED)
        self._clear_pending()
        self.dashboard = None
        self.error = message

    def select_file(self, name: str, data: bytes) -> None:
        """Register a newly selected file; any in-flight work becomes stale.

        Args:
            name: File name; the cohort is named after its stem.
            data: Raw spreadsheet bytes.
        """
        self._transition(SessionEvent.FILE_SELECTED)
        self._bump()
        self._clear_pending()
        self._pending_name = Path(name).stem
        self._pending_data = data
        self.error = None

    async def open_file(self, path: Path | str) -> bool:
        """Read a file from disk and select it.

        The read runs in a worker thread. If another file was selected while
        it was reading, this one is dropped.

        Returns:
            bool: False when the read failed or was superseded.
        """
        token = self._token
        try:
            data = await asyncio.to_thread(read_file_bytes, path)
        except TrainlyticsError as e:
            if token == self._token:
                self.reset()
                self.error = str(e)
            return False

        if token != self._token:
            logger.debug(LogMessage.STALE_RESULT.format(token, self._token))
            return False

        self.select_file(Path(path).name, data)
        return True

    def choose_type(self, training_type: TrainingType) -> AnalysisStep:
        """Parse the selected file as the chosen training type.

        Initial training then asks for the cohort status; refresher training
        goes straight to analysis. Parse failures return to upload.

        Returns:
            AnalysisStep: The step the session is now in.
        """
        if self.step != AnalysisStep.SELECTING_TYPE or self._pending_data is None:
            raise InvalidTransitionError(
                f"No file waiting for a training type (step '{self.step}')"
            )

        try:
            sheet = ingest(self._pending_data, training_type)
            records = normalize(sheet, training_type)
        except TrainlyticsError as e:
            self._fail(str(e) or UserMessage.FILE_PROCESSING_ERROR)
            return self.step

        self._pending_type = training_type
        self._pending_records = records
        if training_type == TrainingType.REFRESHER:
            self._transition(SessionEvent.REFRESHER_CHOSEN)
        else:
            self._transition(SessionEvent.INITIAL_CHOSEN)
        return self.step

    def choose_status(self, status: CohortStatus | None) -> AnalysisStep:
        """Declare whether the onboarding cohort is still running.

        None leaves it to be inferred from the attendance days filled.
        """
        self._transition(SessionEvent.STATUS_CHOSEN)
        self._pending_status = status
        return self.step

    def load_sample(self, training_type: TrainingType = TrainingType.INITIAL) -> None:
        """Queue a built-in sample for analysis instead of a file."""
        self._transition(SessionEvent.SAMPLE_LOADED)
        self._bump()
        name, records = sample_records(training_type)
        self._pending_name = name
        self._pending_type = training_type
        self._pending_records = records
        self._pending_status = (
            INITIAL_SAMPLE_STATUS if training_type == TrainingType.INITIAL else None
        )
        self.error = None

    async def analyze(self) -> DashboardData | None:
        """Run the narrative analysis of the pending records.

        Returns:
            DashboardData | None: The new dashboard, or None when the analysis
            failed or was superseded by a newer request.
        """
        if self.step != AnalysisStep.ANALYZING or self._pending_records is None:
            raise InvalidTransitionError(f"Nothing to analyze in step '{self.step}'")

        token = self._bump()
        name = self._pending_name or ""
        training_type = self._pending_type or TrainingType.INITIAL
        records = self._pending_records
        status = self._pending_status

        try:
            if training_type == TrainingType.REFRESHER:
                analysis = await self.analyzer.analyze_refresher(records)
            else:
                analysis = await self.analyzer.analyze_initial(records, status)
        except NarrativeServiceError as e:
            if token != self._token:
                logger.debug(LogMessage.STALE_RESULT.format(token, self._token))
                return None
            self._fail(str(e) or UserMessage.ANALYSIS_ERROR)
            return None
        except Exception:
            if token != self._token:
                logger.debug(LogMessage.STALE_RESULT.format(token, self._token))
                return None
            logger.exception(LogMessage.UNEXPECTED_ANALYZER_ERROR)
            self._fail(UserMessage.ANALYSIS_ERROR)
            return None

        if token != self._token:
            logger.debug(LogMessage.STALE_RESULT.format(token, self._token))
            return None

        dashboard = DashboardData(
            class_name=name,
            kind=training_type,
            records=list(records),
            analysis=analysis,
            is_in_progress=analysis.is_in_progress,
        )
        self._transition(SessionEvent.ANALYSIS_SUCCEEDED)
        self._clear_pending()
        self.dashboard = dashboard
        self.view_state = ViewState.reset()
        return dashboard

    def reset(self) -> None:
        """Start over: drop the dashboard and anything pending."""
        self._transition(SessionEvent.RESET)
        self._bump()
        self._clear_pending()
        self.dashboard = None
        self.view_state = ViewState.reset()
        self.error = None

    def set_filter(self, dimension: FilterDimension, value: str) -> None:
        self.view_state = self.view_state.with_filter(dimension, value)

    def visible_records(self) -> list[InitialTrainingRecord] | list[RefresherRecord]:
        """Records of the current dashboard that pass the active filters."""
        if self.dashboard is None:
            return []
        if self.dashboard.kind == TrainingType.REFRESHER:
            return filter_refresher(self.dashboard.records, self.view_state.filters)
        return filter_initial(self.dashboard.records, self.view_state.filters)

"""Narrative analysis through the OpenAI chat completions API."""

import asyncio
import os
from typing import Sequence

import httpx
from aiolimiter import AsyncLimiter
from loguru import logger
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
)
from pydantic import ValidationError
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    AI_CONNECT_TIMEOUT_SECONDS,
    AI_TIMEOUT_SECONDS,
    DEFAULT_AI_CONCURRENCY,
    DEFAULT_AI_MAX_RETRIES,
    DEFAULT_AI_MODEL,
    DEFAULT_AI_RATE_PER_SECOND,
    DEFAULT_FEEDBACK_MODEL,
    MODEL_ENV_VAR,
    CohortStatus,
    LogMessage,
    ServiceFailure,
    TrainingType,
    UserMessage,
)
from ..errors import NarrativeServiceError, describe_service_failure
from ..metrics import is_in_progress
from ..models import (
    InitialTrainingRecord,
    RefresherRecord,
    TrainingAnalysis,
    TrainingRecord,
)
from .payloads import (
    INITIAL_SYSTEM_INSTRUCTION,
    REFRESHER_SYSTEM_INSTRUCTION,
    build_initial_prompt,
    build_refresher_feedback_prompt,
    build_refresher_prompt,
    build_student_feedback_prompt,
    strip_code_fences,
)


def _is_transient(error: BaseException) -> bool:
    """Dropped connections are retried; timeouts are surfaced to the caller."""
    return isinstance(error, APIConnectionError) and not isinstance(
        error, APITimeoutError
    )


def parse_analysis(text: str | None) -> TrainingAnalysis:
    """Validate a JSON response body against the analysis schema.

    Args:
        text: Raw response content, possibly wrapped in Markdown fences.

    Returns:
        TrainingAnalysis: The validated analysis.

    Raises:
        NarrativeServiceError: If the body is empty or not a valid analysis.
    """
    if not text or not text.strip():
        raise NarrativeServiceError(ServiceFailure.EMPTY_RESPONSE)
    try:
        return TrainingAnalysis.model_validate_json(strip_code_fences(text))
    except ValidationError as e:
        logger.error(f"Narrative response did not match the schema: {e}")
        raise NarrativeServiceError(ServiceFailure.GENERIC) from e


class AINarrativeService:
    """Generates narrative insights and feedback for training records.

    The HTTP client is tuned to the concurrency limit, and feedback batches
    are throttled by both a semaphore and a rate limiter.

    Attributes:
        client: AsyncOpenAI client, retries disabled (handled with tenacity).
        model: Model used for dashboard analyses.
        feedback_model: Model used for single-record feedback.
        semaphore: Limits concurrent requests.
        rate_limiter: Limits requests per second.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str | None = None,
        feedback_model: str = DEFAULT_FEEDBACK_MODEL,
        max_concurrency: int = DEFAULT_AI_CONCURRENCY,
        rate_per_second: int = DEFAULT_AI_RATE_PER_SECOND,
    ):
        """Initialize the narrative service.

        Args:
            api_key: OpenAI API key.
            model: Model for analyses; falls back to TRAINLYTICS_MODEL, then
                the package default.
            feedback_model: Model for per-record feedback.
            max_concurrency: Maximum concurrent requests.
            rate_per_second: Maximum requests started per second.
        """
        http_client = httpx.AsyncClient(
            limits=httpx.Limits(
                max_connections=max_concurrency,
                max_keepalive_connections=max_concurrency,
            ),
            timeout=httpx.Timeout(AI_TIMEOUT_SECONDS, connect=AI_CONNECT_TIMEOUT_SECONDS),
        )
        self.client = AsyncOpenAI(
            api_key=api_key,
            http_client=http_client,
            max_retries=0,
        )
        self.model = model or os.getenv(MODEL_ENV_VAR) or DEFAULT_AI_MODEL
        self.feedback_model = feedback_model
        self.semaphore = asyncio.Semaphore(max_concurrency)
        self.rate_limiter = AsyncLimiter(max_rate=rate_per_second, time_period=1)

    async def aclose(self) -> None:
        await self.client.close()

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(DEFAULT_AI_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _create(
        self, *, model: str, messages: list[dict[str, str]], json_mode: bool
    ) -> str | None:
        """Single chat completion call, throttled."""
        extra = {"response_format": {"type": "json_object"}} if json_mode else {}
        async with self.semaphore:
            async with self.rate_limiter:
                response = await self.client.chat.completions.create(
                    model=model, messages=messages, **extra
                )

        choice = response.choices[0] if response.choices else None
        if choice is not None and choice.finish_reason == "content_filter":
            raise NarrativeServiceError(ServiceFailure.CONTENT_FILTERED)
        return choice.message.content if choice is not None else None

    async def _complete(
        self,
        *,
        prompt: str,
        system: str | None = None,
        model: str | None = None,
        json_mode: bool = False,
    ) -> str | None:
        """Run a completion and translate client failures to NarrativeServiceError."""
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})

        try:
            return await self._create(
                model=model or self.model, messages=messages, json_mode=json_mode
            )
        except NarrativeServiceError:
            raise
        except APITimeoutError as e:
            raise NarrativeServiceError(ServiceFailure.TIMEOUT, retryable=True) from e
        except APIStatusError as e:
            logger.error(f"Narrative service returned {e.status_code}: {e.message}")
            message, retryable = describe_service_failure(f"{e.status_code} {e.message}")
            raise NarrativeServiceError(message, retryable=retryable) from e
        except APIConnectionError as e:
            logger.error(f"Narrative service unreachable: {e}")
            raise NarrativeServiceError(ServiceFailure.GENERIC, retryable=True) from e

    async def analyze_initial(
        self,
        records: Sequence[InitialTrainingRecord],
        forced_status: CohortStatus | None = None,
    ) -> TrainingAnalysis:
        """Analyze an onboarding cohort.

        Args:
            records: Canonical onboarding records.
            forced_status: Declared cohort status; inferred from attendance
                progress when omitted.

        Returns:
            TrainingAnalysis: Validated analysis with ``is_in_progress`` set.
        """
        in_progress = is_in_progress(records, forced_status)
        logger.info(LogMessage.ANALYSIS_STARTED.format(TrainingType.INITIAL, len(records)))

        text = await self._complete(
            system=INITIAL_SYSTEM_INSTRUCTION,
            prompt=build_initial_prompt(records, in_progress=in_progress),
            json_mode=True,
        )
        analysis = parse_analysis(text)
        logger.success(LogMessage.ANALYSIS_DONE.format(analysis.performance_score))
        return analysis.model_copy(update={"is_in_progress": in_progress})

    async def analyze_refresher(
        self, records: Sequence[RefresherRecord]
    ) -> TrainingAnalysis:
        """Analyze a refresher training, consolidated per operator."""
        logger.info(
            LogMessage.ANALYSIS_STARTED.format(TrainingType.REFRESHER, len(records))
        )

        text = await self._complete(
            system=REFRESHER_SYSTEM_INSTRUCTION,
            prompt=build_refresher_prompt(records),
            json_mode=True,
        )
        analysis = parse_analysis(text)
        logger.success(LogMessage.ANALYSIS_DONE.format(analysis.performance_score))
        return analysis.model_copy(update={"knowledge_gain": 0, "is_in_progress": False})

    async def _feedback(self, *, name: str, prompt: str) -> str:
        """Feedback is optional content: failures log and return a fallback."""
        try:
            text = await self._complete(prompt=prompt, model=self.feedback_model)
        except NarrativeServiceError as e:
            logger.error(f"Error generating feedback for {name}: {e}")
            return ServiceFailure.GENERIC

        return text or UserMessage.FEEDBACK_UNAVAILABLE

    async def generate_student_feedback(self, record: InitialTrainingRecord) -> str:
        """Sandwich-style Markdown feedback for one onboarding student."""
        return await self._feedback(
            name=record.name, prompt=build_student_feedback_prompt(record)
        )

    async def generate_refresher_feedback(self, record: RefresherRecord) -> str:
        """Diagnosis and action plan for one operator KPI."""
        return await self._feedback(
            name=record.name, prompt=build_refresher_feedback_prompt(record)
        )

    async def generate_feedback(self, record: TrainingRecord) -> str:
        if record.kind == TrainingType.REFRESHER:
            return await self.generate_refresher_feedback(record)
        return await self.generate_student_feedback(record)

    async def generate_feedback_batch(
        self, records: Sequence[TrainingRecord]
    ) -> list[tuple[TrainingRecord, str]]:
        """Generate feedback for many records in parallel with a progress bar.

        Returns:
            list[tuple[TrainingRecord, str]]: Pairs in the input order.
        """
        logger.info(LogMessage.FEEDBACK_STARTED.format(len(records)))

        async def _one(index: int, record: TrainingRecord) -> tuple[int, str]:
            return index, await self.generate_feedback(record)

        results: dict[int, str] = {}
        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("({task.completed}/{task.total})"),
        ) as progress:
            task_id = progress.add_task("Generating feedback...", total=len(records))
            tasks = [_one(index, record) for index, record in enumerate(records)]
            for coro in asyncio.as_completed(tasks):
                index, text = await coro
                results[index] = text
                progress.update(task_id, advance=1)

        logger.success(f"Generated feedback for {len(results)} records")
        return [(record, results[index]) for index, record in enumerate(records)]

"""Filter and view state of a loaded dashboard.

``ViewState`` is immutable; every transition returns a new instance, so a
new dataset resets filters, pagination and modals in one step.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Sequence, TypeVar

from .constants import (
    ALL,
    ITEMS_PER_PAGE,
    FilterDimension,
    KpiDrilldown,
    TrainingType,
)
from .models import (
    FilterState,
    InitialTrainingRecord,
    RefresherRecord,
    TrainingRecord,
)

T = TypeVar("T")


@dataclass(frozen=True)
class FilterOptions:
    """Values offered by each filter selector."""

    names: list[str]
    instructors: list[str]
    indicators: list[str]


@dataclass(frozen=True)
class ViewState:
    """Everything the dashboard tracks about the current view.

    Attributes:
        filters: Active filter selection.
        page: 1-based page of the records table.
        kpi_modal: KPI card whose record list is open, if any.
        feedback_target: Record whose feedback modal is open, if any.
        show_email_draft: Whether the email draft modal is open.
    """

    filters: FilterState = field(default_factory=FilterState)
    page: int = 1
    kpi_modal: KpiDrilldown | None = None
    feedback_target: TrainingRecord | None = None
    show_email_draft: bool = False

    def with_filter(self, dimension: FilterDimension, value: str) -> "ViewState":
        """Select a filter value; the table goes back to the first page."""
        filters = replace(self.filters, **{dimension.value: value or ALL})
        return replace(self, filters=filters, page=1)

    def clear_filters(self) -> "ViewState":
        return replace(self, filters=FilterState(), page=1)

    def with_page(self, page: int, total_pages: int) -> "ViewState":
        """Move to a page, clamped to 1..total_pages."""
        return replace(self, page=min(max(page, 1), max(total_pages, 1)))

    def open_kpi(self, kpi: KpiDrilldown) -> "ViewState":
        return replace(self, kpi_modal=kpi)

    def close_kpi(self) -> "ViewState":
        return replace(self, kpi_modal=None)

    def open_feedback(self, record: TrainingRecord) -> "ViewState":
        return replace(self, feedback_target=record)

    def close_feedback(self) -> "ViewState":
        return replace(self, feedback_target=None)

    def toggle_email_draft(self, visible: bool) -> "ViewState":
        return replace(self, show_email_draft=visible)

    @classmethod
    def reset(cls) -> "ViewState":
        """Fresh state for a newly loaded dataset."""
        return cls()


def _matches(selected: str, value: str) -> bool:
    return selected == ALL or selected == value


def filter_initial(
    records: Sequence[InitialTrainingRecord], filters: FilterState
) -> list[InitialTrainingRecord]:
    """Onboarding records matching the student and instructor filters."""
    return [
        record
        for record in records
        if _matches(filters.student_or_operator, record.name)
        and _matches(filters.instructor, record.instructor)
    ]


def filter_refresher(
    records: Sequence[RefresherRecord], filters: FilterState
) -> list[RefresherRecord]:
    """Refresher records matching indicator, operator and instructor filters.

    The operator filter holds a name, the value shown in the selector, so
    operators sharing a name are selected together. Grouping by operator in
    prompts and feedback goes by id instead.
    """
    return [
        record
        for record in records
        if _matches(filters.indicator, record.indicator)
        and _matches(filters.student_or_operator, record.name)
        and _matches(filters.instructor, record.instructor)
    ]


def filter_options(records: Sequence[TrainingRecord]) -> FilterOptions:
    """Sorted distinct values for each selector."""
    return FilterOptions(
        names=sorted({record.name for record in records}),
        instructors=sorted({record.instructor for record in records}),
        indicators=sorted(
            {
                record.indicator
                for record in records
                if record.kind == TrainingType.REFRESHER
            }
        ),
    )


def page_count(total_items: int, per_page: int = ITEMS_PER_PAGE) -> int:
    return math.ceil(total_items / per_page)


def paginate(items: Sequence[T], page: int, per_page: int = ITEMS_PER_PAGE) -> list[T]:
    """Slice one page out of ``items`` (pages are 1-based)."""
    start = (max(page, 1) - 1) * per_page
    return list(items[start : start + per_page])

"""Report generation for training dashboards."""

from .generator import ReportGenerator, report_stem

__all__ = ["ReportGenerator", "report_stem"]

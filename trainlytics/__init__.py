"""Training analytics for onboarding and refresher spreadsheets."""

from .analyzers.ai import AINarrativeService
from .analyzers.base import TrainingAnalyzer
from .models import (
    DashboardData,
    FilterState,
    InitialTrainingRecord,
    RefresherRecord,
    TrainingAnalysis,
)
from .session import AnalysisStep, Session
from .storage import DashboardStorage

__all__ = [
    "AINarrativeService",
    "AnalysisStep",
    "DashboardData",
    "DashboardStorage",
    "FilterState",
    "InitialTrainingRecord",
    "RefresherRecord",
    "Session",
    "TrainingAnalysis",
    "TrainingAnalyzer",
]

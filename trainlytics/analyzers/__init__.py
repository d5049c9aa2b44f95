"""Analyzers producing narrative insights for training dashboards."""

from .ai import AINarrativeService
from .base import TrainingAnalyzer

__all__ = ["AINarrativeService", "TrainingAnalyzer"]

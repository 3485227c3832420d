"""
Reporting module for the Entity Consistency Engine.

Provides visualization and report generation for consistency analyses.
"""

from consistency_engine.modules.reporting.visualizer import AnalysisReportVisualizer

__all__ = ["AnalysisReportVisualizer"]

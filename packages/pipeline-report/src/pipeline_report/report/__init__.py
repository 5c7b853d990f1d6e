"""Markdown report rendering."""

from pipeline_report.report.glyphs import outcome_glyph, quality_gate_glyph, severity_glyph
from pipeline_report.report.renderer import REPORT_TITLE, ReportOptions, render

__all__ = [
    "REPORT_TITLE",
    "ReportOptions",
    "outcome_glyph",
    "quality_gate_glyph",
    "render",
    "severity_glyph",
]

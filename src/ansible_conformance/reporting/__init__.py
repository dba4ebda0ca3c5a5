"""Report aggregation and rendering."""

from .report import OUTPUT_FORMATS, Report, emit, render, render_json, render_table, render_text

__all__ = [
    "OUTPUT_FORMATS",
    "Report",
    "emit",
    "render",
    "render_json",
    "render_table",
    "render_text",
]

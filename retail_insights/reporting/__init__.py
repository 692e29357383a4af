"""Report rendering."""

from .report import ReportWriter, markdown_table, quantile_table

__all__ = ["ReportWriter", "markdown_table", "quantile_table"]

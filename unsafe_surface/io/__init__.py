"""レポート入出力モジュール。"""

from .formats import SUPPORTED_FORMATS, UnsupportedReportFormat, report_format
from .markdown_table import ReportParseError, parse_markdown, render_markdown
from .excel_writer import ExcelReportWriter
from .report_writer import ReportWriter, render_console_summary, render_csv

__all__ = [
    "SUPPORTED_FORMATS",
    "UnsupportedReportFormat",
    "report_format",
    "ReportParseError",
    "parse_markdown",
    "render_markdown",
    "ExcelReportWriter",
    "ReportWriter",
    "render_console_summary",
    "render_csv",
]

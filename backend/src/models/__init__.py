"""Database models."""

from src.models.operator import Operator
from src.models.report import Report, ReportRow, RowOperatorAssignment

__all__ = [
    "Operator",
    "Report",
    "ReportRow",
    "RowOperatorAssignment",
]

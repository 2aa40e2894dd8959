"""Repository layer for data access."""

from src.repositories.report_repository import ReportRepository
from src.repositories.report_row_repository import ReportRowRepository
from src.repositories.operator_assignment_repository import OperatorAssignmentRepository
from src.repositories.operator_repository import OperatorRepository

__all__ = [
    "ReportRepository",
    "ReportRowRepository",
    "OperatorAssignmentRepository",
    "OperatorRepository",
]

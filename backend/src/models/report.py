"""Daily work report models: header, activity rows and operator assignments."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from src.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Report(Base):
    """
    One daily work report per (author, crew role, date).

    Uniqueness is not enforced by the table: historical duplicates exist and
    readers pick the most recently created header.
    """

    __tablename__ = "reports"
    __table_args__ = (
        Index("ix_reports_author_role_date", "author_id", "crew_role", "report_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    author_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    crew_role: Mapped[str] = mapped_column(String(32))
    report_date: Mapped[date] = mapped_column(Date)
    site_code: Mapped[str] = mapped_column(String(64), default="")
    contract_code: Mapped[str] = mapped_column(String(64), default="")
    status: Mapped[str] = mapped_column(String(32), default="DRAFT", index=True)
    total_output: Mapped[float] = mapped_column(Numeric(14, 3, asdecimal=False), default=0)

    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    last_edited_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    acting_for_author_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    def __repr__(self):
        return (
            f"<Report(author_id='{self.author_id}', crew_role='{self.crew_role}', "
            f"date='{self.report_date}', status='{self.status}')>"
        )


class ReportRow(Base):
    """A single activity line of a report."""

    __tablename__ = "report_rows"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("reports.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer)
    # 1-based ordinal, required by downstream exports
    row_index: Mapped[int] = mapped_column(Integer)

    category: Mapped[str] = mapped_column(String(200), default="")
    description: Mapped[str] = mapped_column(Text, default="")
    legacy_operators_text: Mapped[str] = mapped_column(Text, default="")
    legacy_hours_text: Mapped[str] = mapped_column(Text, default="")
    planned_quantity: Mapped[float | None] = mapped_column(Numeric(14, 3, asdecimal=False))
    produced_quantity: Mapped[float | None] = mapped_column(Numeric(14, 3, asdecimal=False))
    note: Mapped[str] = mapped_column(Text, default="")
    activity_reference_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    def __repr__(self):
        return f"<ReportRow(report_id='{self.report_id}', position={self.position})>"


class RowOperatorAssignment(Base):
    """Canonical link between an operator and a report row, with worked hours."""

    __tablename__ = "row_operator_assignments"
    __table_args__ = (
        UniqueConstraint(
            "report_row_id", "operator_id", name="uq_row_operator_assignments_row_operator"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    report_row_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("report_rows.id", ondelete="CASCADE"), index=True
    )
    operator_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("operators.id"), index=True)
    line_index: Mapped[int] = mapped_column(Integer)
    raw_hours_text: Mapped[str] = mapped_column(String(32), default="")
    parsed_hours: Mapped[float | None] = mapped_column(Numeric(6, 2, asdecimal=False))

    def __repr__(self):
        return (
            f"<RowOperatorAssignment(row='{self.report_row_id}', "
            f"operator='{self.operator_id}', line={self.line_index})>"
        )

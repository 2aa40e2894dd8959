"""Operator model (shipyard workforce roster)."""

from __future__ import annotations

import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from src.database import Base


class Operator(Base):
    """A worker that can be assigned to report rows."""

    __tablename__ = "operators"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str | None] = mapped_column(String(255))
    first_name: Mapped[str | None] = mapped_column(String(255))
    last_name: Mapped[str | None] = mapped_column(String(255))

    def __repr__(self):
        return f"<Operator(id='{self.id}', name='{self.name}')>"

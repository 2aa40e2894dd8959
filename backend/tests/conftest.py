"""Shared pytest fixtures."""

# Clear settings cache before any imports to prevent stale values with coverage
from src.config import get_settings

get_settings.cache_clear()

import pytest
import uuid
from contextlib import asynccontextmanager
from datetime import date
from unittest.mock import AsyncMock, Mock

from src.schemas.report_document import (
    CrewRole,
    OperatorAssignment,
    OperatorRef,
    ReportDocument,
    ReportRowDraft,
)


# Database mocking fixtures


@pytest.fixture
def mock_async_session():
    """Create a mock AsyncSession for repository tests."""
    session = AsyncMock()

    # Mock result object for execute
    mock_result = Mock()
    mock_result.scalar_one_or_none = Mock(return_value=None)
    mock_result.scalar_one = Mock(return_value=0)
    mock_result.scalars = Mock(return_value=Mock(all=Mock(return_value=[])))
    mock_result.fetchall = Mock(return_value=[])
    mock_result.rowcount = 0

    session.execute = AsyncMock(return_value=mock_result)
    session.scalar = AsyncMock(return_value=0)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.add = Mock()
    session.add_all = Mock()
    session.delete = AsyncMock()

    # Mock begin_nested for savepoint tests
    @asynccontextmanager
    async def begin_nested():
        yield

    session.begin_nested = begin_nested

    return session


# Report fixtures


@pytest.fixture
def author_id():
    return uuid.uuid4()


@pytest.fixture
def report_date():
    return date(2025, 3, 14)


@pytest.fixture
def operator_a():
    """An operator reference as picked from the roster."""
    return OperatorRef(id=uuid.uuid4(), label="ROSSI MARIO")


@pytest.fixture
def operator_b():
    return OperatorRef(id=uuid.uuid4(), label="BIANCHI LUCA")


@pytest.fixture
def empty_document(author_id, report_date):
    """Fresh DRAFT with identifiers but no content."""
    return ReportDocument.empty(author_id, CrewRole.ELECTRICIAN, report_date)


@pytest.fixture
def sample_document(author_id, report_date, operator_a, operator_b):
    """DRAFT with one canonical row and one legacy row."""
    canonical = ReportRowDraft(
        id="tmp_a",
        category="CABLING",
        description="Pull cable deck 4",
        planned_quantity=120.0,
        produced_quantity="80,5",
        note="",
    ).with_assignments(
        [
            OperatorAssignment(
                operator_id=operator_a.id,
                label=operator_a.label,
                raw_hours_text="8",
                parsed_hours=8.0,
                line_index=0,
            ),
            OperatorAssignment(
                operator_id=operator_b.id,
                label=operator_b.label,
                raw_hours_text="4,5",
                parsed_hours=4.5,
                line_index=1,
            ),
        ]
    )
    legacy = ReportRowDraft(
        id="tmp_b",
        category="TERMINATION",
        description="Terminate panel B",
        legacy_operators_text="VERDI\nNERI",
        legacy_hours_text="6\n2",
        produced_quantity=None,
        note="waiting for material",
    )
    return ReportDocument(
        author_id=author_id,
        crew_role=CrewRole.ELECTRICIAN,
        report_date=report_date,
        site_code="6368",
        contract_code="C-2025-01",
        rows=[canonical, legacy],
    )

"""Shared pytest fixtures for router integration tests."""

import pytest
from contextlib import ExitStack
from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock, patch

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.schemas.reports import ReturnedInbox
from src.services.hours_memory import HoursMemory, InMemoryKeyValueCache


# Mock database before importing app to avoid connection issues
@pytest.fixture(autouse=True)
def mock_database_init():
    """Mock database initialization for all router tests."""
    with ExitStack() as stack:
        stack.enter_context(patch("src.main.init_db", new_callable=AsyncMock))
        mock_engine = stack.enter_context(patch("src.main.engine"))
        mock_engine.dispose = AsyncMock()
        yield


@pytest.fixture
def mock_db_session():
    """Create a mock AsyncSession for router tests."""
    session = AsyncMock(spec=AsyncSession)

    mock_result = Mock()
    mock_result.scalar_one_or_none = Mock(return_value=None)
    mock_result.scalar_one = Mock(return_value=1)

    session.execute = AsyncMock(return_value=mock_result)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture
def mock_report_loader():
    """Create a mock ReportLoader."""
    loader = AsyncMock()
    loader.load = AsyncMock()
    return loader


@pytest.fixture
def mock_inbox_service():
    """Create a mock ReturnedInboxService."""
    service = AsyncMock()
    service.inbox = ReturnedInbox()
    service.refresh = AsyncMock(return_value=ReturnedInbox())
    return service


@pytest.fixture
def mock_save_service(mock_inbox_service):
    """Create a mock ReportSaveService."""
    service = AsyncMock()
    service.save = AsyncMock()
    service.returned_inbox = mock_inbox_service
    return service


@pytest.fixture
def hours_memory():
    """Real hours memory over a fresh in-process cache."""
    return HoursMemory(InMemoryKeyValueCache(), key_prefix="report-hours", target_hours=8.0)


@pytest.fixture
def mock_settings():
    """Create mock settings."""
    settings = Mock()
    settings.default_crew_role = "ELECTRICIAN"
    settings.autosave_enabled = True
    settings.autosave_debounce_seconds = 1.2
    settings.target_daily_hours = 8.0
    settings.cors_origins = ""
    settings.debug = False
    settings.log_level = "INFO"
    return settings


@pytest.fixture
def client(
    mock_db_session,
    mock_report_loader,
    mock_inbox_service,
    mock_save_service,
    hours_memory,
    mock_settings,
):
    """Create TestClient with all infra dependencies overridden."""
    from src.main import app
    from src.config import get_settings
    from src.database import get_db
    from src.dependencies import (
        get_report_loader_dep,
        get_report_save_service_dep,
        get_returned_inbox_dep,
    )
    from src.factories.service_factories import get_hours_memory

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield mock_db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_report_loader_dep] = lambda: mock_report_loader
    app.dependency_overrides[get_returned_inbox_dep] = lambda: mock_inbox_service
    app.dependency_overrides[get_report_save_service_dep] = lambda: mock_save_service
    app.dependency_overrides[get_hours_memory] = lambda: hours_memory
    app.dependency_overrides[get_settings] = lambda: mock_settings

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()

"""Shared fixtures for tests."""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from agenda_mcp.calendar import CalendarEngine  # noqa: E402
from agenda_mcp.config import Settings  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    """Fully configured OAuth settings with the token file under tmp_path."""
    return Settings(
        client_id="client-id.apps.googleusercontent.com",
        client_secret="client-secret",
        redirect_uri="http://localhost:8080",
        token_path=tmp_path / "token.json",
    )


@pytest.fixture
def mock_credentials():
    """Mock Google OAuth credentials."""
    return MagicMock()


@pytest.fixture
def mock_calendar_service():
    """Mock Google Calendar API service with empty list and insert responses."""
    service = MagicMock()
    events = service.events.return_value
    events.list.return_value.execute.return_value = {"items": []}
    events.insert.return_value.execute.return_value = {}
    return service


@pytest.fixture
def mock_build(mock_calendar_service):
    with patch("agenda_mcp.calendar.build") as build:
        build.return_value = mock_calendar_service
        yield build


@pytest.fixture
def credential_manager(settings, mock_credentials):
    manager = MagicMock()
    manager.settings = settings
    manager.authorize.return_value = mock_credentials
    return manager


@pytest.fixture
def engine(credential_manager, mock_build):
    return CalendarEngine(credential_manager)

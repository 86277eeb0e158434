"""Shared fixtures for provider command tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import typer

from inference_provider_manager.cli.commands.providers import register_provider_commands
from inference_provider_manager.services.providers.catalog import ProviderCatalog


@pytest.fixture
def mock_orchestrator() -> MagicMock:
    """Create a mock InstallationOrchestrator."""
    return MagicMock()


@pytest.fixture
def get_orchestrator(mock_orchestrator: MagicMock) -> MagicMock:
    """Factory returning the mock orchestrator; tests may set a side_effect."""
    return MagicMock(return_value=mock_orchestrator)


@pytest.fixture
def get_catalog() -> MagicMock:
    """Factory returning the builtin catalog."""
    return MagicMock(return_value=ProviderCatalog.builtin())


@pytest.fixture
def mock_helm_client() -> MagicMock:
    """Create a mock HelmClient."""
    return MagicMock()


@pytest.fixture
def get_helm_client(mock_helm_client: MagicMock) -> MagicMock:
    return MagicMock(return_value=mock_helm_client)


@pytest.fixture
def app(
    get_orchestrator: MagicMock,
    get_catalog: MagicMock,
    get_helm_client: MagicMock,
) -> typer.Typer:
    """Create a test app with provider commands."""
    app = typer.Typer()
    register_provider_commands(app, get_orchestrator, get_catalog, get_helm_client)
    return app

"""Shared test fixtures and configuration."""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add src to path for testing
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from sensillum.core.config import ServerConfig  # noqa: E402
from sensillum.core.tracker import ConnectionTracker  # noqa: E402
from sensillum.web.app import create_app  # noqa: E402


@pytest.fixture
def server_config():
    """Configuration with a node name and fast heartbeats."""
    return ServerConfig(
        port=3030,
        hostname="backend-01",
        node_name="node-a",
        redact_prefixes=("authorization", "x-secret-"),
        heartbeat_interval=0.01,
    )


@pytest.fixture
def tracker():
    return ConnectionTracker()


@pytest.fixture
def app(server_config, tracker):
    return create_app(server_config, tracker)


@pytest.fixture
def test_client(app):
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def make_client():
    """Build a test client for a custom configuration."""

    def _make(**overrides) -> TestClient:
        overrides.setdefault("hostname", "backend-01")
        overrides.setdefault("heartbeat_interval", 0.01)
        return TestClient(create_app(ServerConfig(**overrides)))

    return _make

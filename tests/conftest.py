"""Shared pytest fixtures for tunnelctl tests."""

import io
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from tunnelctl.commands import SubcommandContext
from tunnelctl.config import TunnelCtlSettings
from tunnelctl.models import Connection, Connector, Tunnel
from tunnelctl.store import LocalTunnelRunner, LocalTunnelStore

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def at(days: int = 0, hours: int = 0) -> datetime:
    """Timestamp relative to a fixed base time."""
    return BASE_TIME + timedelta(days=days, hours=hours)


def make_connection(colo: str, pending: bool = False, origin_ip: str = "10.0.0.1") -> Connection:
    return Connection(colo_name=colo, origin_ip=origin_ip, is_pending_reconnect=pending)


def make_tunnel(
    name: str,
    created_days: int = 0,
    deleted_days: int | None = None,
    connections: list[Connection] | None = None,
    tunnel_id: uuid.UUID | None = None,
) -> Tunnel:
    return Tunnel(
        id=tunnel_id or uuid.uuid4(),
        name=name,
        created_at=at(created_days),
        deleted_at=at(deleted_days) if deleted_days is not None else None,
        connections=connections or [],
    )


def make_connector(
    run_days: int = 0,
    version: str = "2024.1.0",
    connections: list[Connection] | None = None,
    connector_id: uuid.UUID | None = None,
) -> Connector:
    return Connector(
        id=connector_id or uuid.uuid4(),
        run_at=at(run_days),
        version=version,
        arch="linux_amd64",
        connections=connections if connections is not None else [make_connection("LAX")],
    )


@pytest.fixture
def store():
    """In-memory control plane without a state file."""
    return LocalTunnelStore()


@pytest.fixture
def settings(tmp_path):
    """Settings pointing credentials and state into a temporary directory."""
    return TunnelCtlSettings(
        state_file=str(tmp_path / "state.json"),
        credentials_dir=str(tmp_path / "creds"),
    )


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def context(settings, store, output):
    """SubcommandContext wired to the in-memory store and a string buffer."""
    return SubcommandContext(
        settings=settings,
        store=store,
        runner=LocalTunnelRunner(store),
        stream=output,
    )


@pytest.fixture
def mock_logger(monkeypatch):
    """Mock the commands logger to capture log calls.

    Returns:
        Mock: Mocked logger
    """
    mock_log = Mock()
    monkeypatch.setattr("tunnelctl.commands.logger", mock_log)
    return mock_log

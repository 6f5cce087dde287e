"""Shared fixtures for FTL exporter tests."""

import pytest

from ftl_exporter.client import FTLClient
from tests.helpers import MockFTLDaemon


@pytest.fixture
def mock_daemon():
    """Start a mock FTL daemon serving the given command -> response mapping."""
    daemons = []

    def start(responses):
        daemon = MockFTLDaemon(responses).start()
        daemons.append(daemon)
        return daemon

    yield start

    for daemon in daemons:
        daemon.stop()


@pytest.fixture
def ftl_client(mock_daemon):
    """Create a client for a mock daemon; call with the responses to serve."""
    def make(responses):
        daemon = mock_daemon(responses)
        return FTLClient(daemon.socket_path, timeout=5), daemon

    return make

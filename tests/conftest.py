"""Pytest fixtures."""

import threading

import pytest

from src.mock_transmission_server import MockTransmissionServer


@pytest.fixture
def mock_server():
    """Mock Transmission daemon on an ephemeral port, served from a background thread."""
    server = MockTransmissionServer(("127.0.0.1", 0))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)

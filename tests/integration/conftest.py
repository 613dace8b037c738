"""Fixtures for integration tests against the live FIRDS indexes."""
import socket

import pytest
import pytest_asyncio

ESMA_HOST = "registers.esma.europa.eu"


def is_host_available(host: str = ESMA_HOST, port: int = 443) -> bool:
    """Check if the publication host accepts connections."""
    try:
        with socket.create_connection((host, port), timeout=2):
            return True
    except OSError:
        return False


@pytest_asyncio.fixture
async def live_connection():
    """Provide a FIRDS connection, skipping when the ESMA register is unreachable."""
    if not is_host_available():
        pytest.skip(f"{ESMA_HOST} not reachable")

    from firds.collectors.firds.connection import FirdsConnection

    async with FirdsConnection(timeout=30.0) as conn:
        yield conn

import logging

import pytest_asyncio

from tests.stubs import StubBackend


logging.getLogger("chain_connector").setLevel(logging.DEBUG)


@pytest_asyncio.fixture
async def stub():
    """Started recording stub back-end."""
    backend = StubBackend()
    await backend.start()
    yield backend
    await backend.close()

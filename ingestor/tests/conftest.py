import pytest_asyncio

from ingestor.tests.fakes import build_stack


@pytest_asyncio.fixture
async def stack():
    stack = build_stack()
    yield stack
    await stack.background.drain()

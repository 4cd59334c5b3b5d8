"""Test isolation: give every test a fresh current event loop.

AsyncBridge applies nest_asyncio (which patches ``asyncio.run`` process-wide
to reuse the current loop) and leaves its loop set as current after closing
it; without this, later tests' ``asyncio.run`` calls hit a closed loop.
"""

from __future__ import annotations

import asyncio

import pytest


@pytest.fixture(autouse=True)
def _fresh_event_loop():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield
    asyncio.set_event_loop(None)
    if not loop.is_closed():
        loop.close()

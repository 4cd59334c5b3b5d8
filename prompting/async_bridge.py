"""A long-lived event loop for calling async code from Streamlit reruns.

Every chat turn of a session runs on the same loop instead of a fresh
``asyncio.run``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

import nest_asyncio

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AsyncBridge:
    """Run coroutines to completion on one persistent loop."""

    def __init__(self) -> None:
        self._loop = asyncio.new_event_loop()
        nest_asyncio.apply(self._loop)

    @property
    def is_alive(self) -> bool:
        return not self._loop.is_closed()

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = 300) -> T:
        """Block until ``coro`` finishes or ``timeout`` seconds pass."""
        if self._loop.is_closed():
            raise RuntimeError("AsyncBridge has been shut down")
        asyncio.set_event_loop(self._loop)
        return self._loop.run_until_complete(asyncio.wait_for(coro, timeout))

    def shutdown(self) -> None:
        if self._loop.is_closed():
            return
        pending = asyncio.all_tasks(self._loop)
        for task in pending:
            task.cancel()
        if pending:
            self._loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        self._loop.close()
        logger.info("AsyncBridge event loop closed")

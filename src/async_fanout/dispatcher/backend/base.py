"""Worker interface consumed by the dispatcher."""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Protocol


class Worker(Protocol):
    """Protocol implemented by asynchronous single-request responders."""

    def retrieve(self, message: str) -> Awaitable[str]:
        """Asynchronously produce a response for one message, or fail."""

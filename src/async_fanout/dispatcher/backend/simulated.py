"""Simulated microservice workers for demos and integration tests."""

from __future__ import annotations

import asyncio
import random


class WorkerCallError(RuntimeError):
    """Failure raised by a simulated worker call."""

    def __init__(self, message: str, *, label: str) -> None:
        super().__init__(message)
        self.label = label


class LabelledWorker:
    """Uppercase the message and prefix it with the worker label."""

    def __init__(self, label: str, *, min_delay: float = 0.0, max_delay: float = 0.0) -> None:
        _validate_delays(min_delay=min_delay, max_delay=max_delay)
        self.label = label
        self.min_delay = min_delay
        self.max_delay = max_delay

    async def retrieve(self, message: str) -> str:
        await _simulated_latency(self.min_delay, self.max_delay)
        return f"{self.label}:{message.upper()}"

    def __repr__(self) -> str:
        return f"LabelledWorker(label={self.label!r})"


class FailingWorker:
    """Worker whose every call fails with `WorkerCallError`."""

    def __init__(
        self,
        label: str,
        *,
        error_message: str = "forced failure",
        min_delay: float = 0.0,
        max_delay: float = 0.0,
    ) -> None:
        _validate_delays(min_delay=min_delay, max_delay=max_delay)
        self.label = label
        self.error_message = error_message
        self.min_delay = min_delay
        self.max_delay = max_delay

    async def retrieve(self, message: str) -> str:
        await _simulated_latency(self.min_delay, self.max_delay)
        raise WorkerCallError(self.error_message, label=self.label)

    def __repr__(self) -> str:
        return f"FailingWorker(label={self.label!r})"


async def _simulated_latency(min_delay: float, max_delay: float) -> None:
    # Always yield once so concurrent calls interleave even with zero delay.
    delay = random.uniform(min_delay, max_delay) if max_delay > 0 else 0.0  # noqa: S311
    await asyncio.sleep(delay)


def _validate_delays(*, min_delay: float, max_delay: float) -> None:
    if min_delay < 0:
        raise ValueError(f"min_delay must be >= 0, got {min_delay!r}")
    if max_delay < min_delay:
        raise ValueError(
            f"max_delay must be >= min_delay, got min={min_delay!r} max={max_delay!r}",
        )

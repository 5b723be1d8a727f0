"""Controllers for dispatch CLI commands."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from async_fanout.config import DemoWorkerSettings, Settings
from async_fanout.dispatcher.backend import FailingWorker, LabelledWorker, Worker
from async_fanout.dispatcher.core import AsyncDispatcher
from async_fanout.dispatcher.errors import AggregateFailure, InvalidArgumentError
from async_fanout.dispatcher.models import POLICY_DESCRIPTIONS, DispatchPolicy

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DispatchRunCommand:
    """CLI input for one dispatch run against simulated workers."""

    policy: str
    workers: tuple[str, ...]
    failing_workers: tuple[str, ...]
    messages: tuple[str, ...]
    fallback: str | None = None
    timeout_seconds: float | None = None


@dataclass(slots=True)
class DispatchRunResult:
    """Dispatch report to render in CLI."""

    lines: list[str]
    success: bool


class DispatchCliController:
    """Builds simulated workers, runs a dispatch, and renders the aggregate."""

    def __init__(self, dispatcher: AsyncDispatcher | None = None) -> None:
        self._dispatcher = dispatcher or AsyncDispatcher()

    def run(self, command: DispatchRunCommand) -> DispatchRunResult:
        settings = Settings.from_env()
        try:
            settings.validate()
            policy = DispatchPolicy(command.policy)
            workers = _build_workers(command, settings.demo_worker)
        except ValueError as error:
            return DispatchRunResult(lines=["Dispatch run:", str(error)], success=False)
        settings.configure_logging()

        messages: str | list[str] = (
            command.messages[0] if len(command.messages) == 1 else list(command.messages)
        )
        fallback = (
            command.fallback
            if command.fallback is not None
            else settings.dispatch.default_fallback
        )
        timeout = command.timeout_seconds or settings.dispatch.await_timeout_seconds

        lines = [
            "Dispatch run:",
            f"policy={policy.value}",
            f"workers={', '.join(command.workers)}",
            f"failing={', '.join(command.failing_workers) or '-'}",
            f"messages={list(command.messages)!r}",
        ]
        if policy is DispatchPolicy.FAIL_SOFT:
            lines.append(f"fallback={fallback!r}")

        try:
            aggregate = asyncio.run(
                self._await_aggregate(
                    policy=policy,
                    workers=workers,
                    messages=messages,
                    fallback=fallback,
                    timeout_seconds=timeout,
                ),
            )
        except InvalidArgumentError as error:
            lines.append(f"Invalid arguments: {error}")
            return DispatchRunResult(lines=lines, success=False)
        except AggregateFailure as error:
            lines.append(
                f"Aggregate failed: task={error.task_index} worker={error.worker_label} "
                f"cause={type(error.cause).__name__}: {error.cause}",
            )
            lines.append("Dispatch status: failed")
            return DispatchRunResult(lines=lines, success=False)
        except TimeoutError:
            lines.append(f"Aggregate timed out after {timeout}s")
            lines.append("Dispatch status: failed")
            return DispatchRunResult(lines=lines, success=False)

        lines.extend(_render_aggregate(aggregate))
        lines.append("Dispatch status: succeeded")
        return DispatchRunResult(lines=lines, success=True)

    def policies(self) -> list[str]:
        """List supported policies with one-line descriptions."""

        return [f"{policy.value}: {POLICY_DESCRIPTIONS[policy]}" for policy in DispatchPolicy]

    async def _await_aggregate(
        self,
        *,
        policy: DispatchPolicy,
        workers: Sequence[Worker],
        messages: str | list[str],
        fallback: str,
        timeout_seconds: float,
    ) -> Any:
        handle = self._dispatcher.dispatch(policy, workers, messages, fallback=fallback)
        return await asyncio.wait_for(handle, timeout=timeout_seconds)


def _build_workers(command: DispatchRunCommand, settings: DemoWorkerSettings) -> list[Worker]:
    if not command.workers:
        raise ValueError("At least one --worker label is required.")
    unknown = sorted(set(command.failing_workers) - set(command.workers))
    if unknown:
        raise ValueError(f"Unknown --fail-worker label(s): {', '.join(unknown)}")

    failing = set(command.failing_workers)
    workers: list[Worker] = []
    for label in command.workers:
        if label in failing:
            workers.append(
                FailingWorker(
                    label,
                    min_delay=settings.min_delay_seconds,
                    max_delay=settings.max_delay_seconds,
                ),
            )
        else:
            workers.append(
                LabelledWorker(
                    label,
                    min_delay=settings.min_delay_seconds,
                    max_delay=settings.max_delay_seconds,
                ),
            )
    logger.debug("Built %d simulated worker(s), %d failing", len(workers), len(failing))
    return workers


def _render_aggregate(aggregate: str | list[str]) -> list[str]:
    if isinstance(aggregate, str):
        return [f"Result: {aggregate}"]
    lines = [f"Results: {len(aggregate)}"]
    lines.extend(f"  {position}. {value}" for position, value in enumerate(aggregate, start=1))
    return lines

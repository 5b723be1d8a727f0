"""Fan-out/fan-in dispatcher over asynchronous workers.

Every entry point follows the same shape:

1. validate arguments synchronously (``InvalidArgumentError`` before any
   worker is touched);
2. launch every worker call on the running event loop without awaiting any
   of them;
3. return an ``asyncio.Task`` whose single suspension point is the await-all
   barrier, followed by a policy-specific reduction.

Policies never cancel launched calls. A caller that wants a deadline wraps the
returned handle in ``asyncio.wait_for``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Coroutine, Sequence
from typing import Any, NoReturn, TypeVar

from async_fanout.dispatcher.backend.base import Worker
from async_fanout.dispatcher.errors import AggregateFailure, InvalidArgumentError
from async_fanout.dispatcher.models import DispatchPolicy, DispatchTask

logger = logging.getLogger(__name__)

RESULT_SEPARATOR = " "

_T = TypeVar("_T")
_ABSENT: Any = object()


class AsyncDispatcher:
    """Launch worker calls concurrently and reduce them under one policy.

    The dispatcher is stateless: instances can be shared and reused, and each
    call owns only the tasks it launches.
    """

    def join_all(self, workers: Sequence[Worker], message: str) -> asyncio.Task[str]:
        """Broadcast one message; join successes in worker order or fail."""

        tasks = _broadcast_tasks(workers, message)
        pending = _launch(tasks, DispatchPolicy.JOIN_ALL)
        return _spawn(_join_all(tasks, pending, DispatchPolicy.JOIN_ALL))

    def join_all_messages(
        self,
        workers: Sequence[Worker],
        messages: Sequence[str],
    ) -> asyncio.Task[str]:
        """Per-worker form of `join_all`."""

        tasks = _paired_tasks(workers, messages)
        pending = _launch(tasks, DispatchPolicy.JOIN_ALL)
        return _spawn(_join_all(tasks, pending, DispatchPolicy.JOIN_ALL))

    def completion_order(
        self,
        workers: Sequence[Worker],
        message: str,
    ) -> asyncio.Task[list[str]]:
        """Broadcast one message; list results in the order calls complete.

        The order is not reproducible between runs. Only "one entry per worker"
        is guaranteed. Any worker failure fails the aggregate.
        """

        tasks = _broadcast_tasks(workers, message)
        return self._completion_order(tasks)

    def fail_fast(
        self,
        workers: Sequence[Worker],
        messages: Sequence[str],
    ) -> asyncio.Task[str]:
        """Join successes in worker order; resolve with the first failure seen."""

        tasks = _paired_tasks(workers, messages)
        pending = _launch(tasks, DispatchPolicy.FAIL_FAST)
        return _spawn(_fail_fast(tasks, pending))

    def fail_partial(
        self,
        workers: Sequence[Worker],
        messages: Sequence[str],
    ) -> asyncio.Task[list[str]]:
        """List successes in worker order, silently dropping failed workers."""

        tasks = _paired_tasks(workers, messages)
        return self._fail_partial(tasks)

    def fail_soft(
        self,
        workers: Sequence[Worker],
        messages: Sequence[str],
        fallback: str,
    ) -> asyncio.Task[str]:
        """Join results in worker order, substituting `fallback` for failures."""

        tasks = _paired_tasks(workers, messages)
        return self._fail_soft(tasks, _validate_fallback(fallback))

    def dispatch(
        self,
        policy: DispatchPolicy | str,
        workers: Sequence[Worker],
        messages: str | Sequence[str],
        *,
        fallback: str | None = None,
    ) -> asyncio.Task[Any]:
        """Run any policy by name.

        A single string is broadcast to every worker; a sequence is paired
        with workers positionally.
        """

        resolved = _resolve_policy(policy)
        if isinstance(messages, str):
            tasks = _broadcast_tasks(workers, messages)
        else:
            tasks = _paired_tasks(workers, messages)

        if resolved is DispatchPolicy.FAIL_SOFT:
            return self._fail_soft(tasks, _validate_fallback(fallback))
        if resolved is DispatchPolicy.FAIL_PARTIAL:
            return self._fail_partial(tasks)
        if resolved is DispatchPolicy.COMPLETION_ORDER:
            return self._completion_order(tasks)

        pending = _launch(tasks, resolved)
        if resolved is DispatchPolicy.FAIL_FAST:
            return _spawn(_fail_fast(tasks, pending))
        return _spawn(_join_all(tasks, pending, resolved))

    def _completion_order(self, tasks: list[DispatchTask]) -> asyncio.Task[list[str]]:
        pending = _launch(tasks, DispatchPolicy.COMPLETION_ORDER)
        arrivals: list[str] = []
        lock = asyncio.Lock()
        # Captures are scheduled right behind their calls so appends follow
        # actual completion order, not the order the barrier inspects them.
        captures = [
            asyncio.ensure_future(_capture_arrival(future, arrivals, lock)) for future in pending
        ]
        return _spawn(_collect_arrivals(tasks, captures, arrivals))

    def _fail_partial(self, tasks: list[DispatchTask]) -> asyncio.Task[list[str]]:
        pending = _launch(tasks, DispatchPolicy.FAIL_PARTIAL)
        absorbed = [
            asyncio.ensure_future(_absorb(task, future, _ABSENT, DispatchPolicy.FAIL_PARTIAL))
            for task, future in zip(tasks, pending, strict=True)
        ]
        return _spawn(_present_values(absorbed))

    def _fail_soft(self, tasks: list[DispatchTask], fallback: str) -> asyncio.Task[str]:
        pending = _launch(tasks, DispatchPolicy.FAIL_SOFT)
        absorbed = [
            asyncio.ensure_future(_absorb(task, future, fallback, DispatchPolicy.FAIL_SOFT))
            for task, future in zip(tasks, pending, strict=True)
        ]
        return _spawn(_join_substituted(absorbed))


async def _join_all(
    tasks: list[DispatchTask],
    pending: list[asyncio.Future[str]],
    policy: DispatchPolicy,
) -> str:
    # return_exceptions keeps the barrier waiting for stragglers so every
    # outcome is retrieved before the aggregate resolves.
    outcomes = await asyncio.gather(*pending, return_exceptions=True)
    for task, outcome in zip(tasks, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            _raise_aggregate_failure(task, outcome, policy)
    logger.debug("Aggregate resolved: policy=%s tasks=%d", policy.value, len(tasks))
    return RESULT_SEPARATOR.join(outcomes)


async def _fail_fast(tasks: list[DispatchTask], pending: list[asyncio.Future[str]]) -> str:
    if not pending:
        return ""
    done, not_done = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
    for future in not_done:
        future.add_done_callback(_observe_straggler)

    # Inspect every finished call so no failure is left unretrieved, then
    # report the earliest one in worker order.
    failures: list[tuple[DispatchTask, BaseException]] = []
    for task, future in zip(tasks, pending, strict=True):
        if future not in done:
            continue
        error = _outcome_error(future)
        if error is not None:
            failures.append((task, error))
    if failures:
        if not_done:
            logger.debug("Failing fast with %d task(s) still in flight", len(not_done))
        task, error = failures[0]
        _raise_aggregate_failure(task, error, DispatchPolicy.FAIL_FAST)

    logger.debug(
        "Aggregate resolved: policy=%s tasks=%d",
        DispatchPolicy.FAIL_FAST.value,
        len(tasks),
    )
    return RESULT_SEPARATOR.join(future.result() for future in pending)


async def _capture_arrival(
    future: asyncio.Future[str],
    arrivals: list[str],
    lock: asyncio.Lock,
) -> None:
    value = await future
    async with lock:
        arrivals.append(value)


async def _collect_arrivals(
    tasks: list[DispatchTask],
    captures: list[asyncio.Future[None]],
    arrivals: list[str],
) -> list[str]:
    outcomes = await asyncio.gather(*captures, return_exceptions=True)
    for task, outcome in zip(tasks, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            _raise_aggregate_failure(task, outcome, DispatchPolicy.COMPLETION_ORDER)
    logger.debug(
        "Aggregate resolved: policy=%s tasks=%d",
        DispatchPolicy.COMPLETION_ORDER.value,
        len(tasks),
    )
    return list(arrivals)


async def _absorb(
    task: DispatchTask,
    future: asyncio.Future[str],
    substitute: _T,
    policy: DispatchPolicy,
) -> str | _T:
    try:
        return await future
    except Exception as error:  # noqa: BLE001
        logger.warning(
            "Absorbed worker failure: policy=%s task=%d worker=%s error=%s",
            policy.value,
            task.index,
            task.worker_label,
            error,
        )
        return substitute


async def _present_values(absorbed: list[asyncio.Future[Any]]) -> list[str]:
    outcomes = await asyncio.gather(*absorbed)
    values = [outcome for outcome in outcomes if outcome is not _ABSENT]
    logger.debug(
        "Aggregate resolved: policy=%s tasks=%d kept=%d",
        DispatchPolicy.FAIL_PARTIAL.value,
        len(outcomes),
        len(values),
    )
    return values


async def _join_substituted(absorbed: list[asyncio.Future[str]]) -> str:
    outcomes = await asyncio.gather(*absorbed)
    logger.debug(
        "Aggregate resolved: policy=%s tasks=%d",
        DispatchPolicy.FAIL_SOFT.value,
        len(outcomes),
    )
    return RESULT_SEPARATOR.join(outcomes)


def _launch(tasks: list[DispatchTask], policy: DispatchPolicy) -> list[asyncio.Future[str]]:
    loop = asyncio.get_running_loop()
    pending = [_start_call(task, loop) for task in tasks]
    logger.debug("Launched %d task(s): policy=%s", len(pending), policy.value)
    return pending


def _start_call(task: DispatchTask, loop: asyncio.AbstractEventLoop) -> asyncio.Future[str]:
    try:
        call: Awaitable[str] = task.worker.retrieve(task.message)
        if not inspect.isawaitable(call):
            raise TypeError(
                f"Worker {task.worker_label!r} returned {type(call).__name__}, "
                "expected an awaitable",
            )
    except Exception as error:  # noqa: BLE001
        # A worker that misbehaves before returning an awaitable still yields
        # exactly one terminal outcome.
        failed: asyncio.Future[str] = loop.create_future()
        failed.set_exception(error)
        return failed
    return loop.create_task(_checked_call(task, call))


async def _checked_call(task: DispatchTask, call: Awaitable[str]) -> str:
    value = await call
    if not isinstance(value, str):
        raise TypeError(
            f"Worker {task.worker_label!r} produced {type(value).__name__}, expected str",
        )
    return value


def _spawn(coroutine: Coroutine[Any, Any, _T]) -> asyncio.Task[_T]:
    return asyncio.get_running_loop().create_task(coroutine)


def _outcome_error(future: asyncio.Future[Any]) -> BaseException | None:
    if future.cancelled():
        return asyncio.CancelledError()
    return future.exception()


def _observe_straggler(future: asyncio.Future[Any]) -> None:
    error = _outcome_error(future)
    if error is not None:
        logger.debug("Straggler finished after fail-fast with error: %s", error)


def _raise_aggregate_failure(
    task: DispatchTask,
    error: BaseException,
    policy: DispatchPolicy,
) -> NoReturn:
    label = task.worker_label
    logger.info(
        "Aggregate failed: policy=%s task=%d worker=%s error=%s",
        policy.value,
        task.index,
        label,
        error,
    )
    raise AggregateFailure(
        f"Worker {label!r} (task {task.index}) failed under {policy.value}: {error}",
        cause=error,
        task_index=task.index,
        worker_label=label,
        policy=policy.value,
    ) from error


def _broadcast_tasks(workers: Sequence[Worker] | None, message: str | None) -> list[DispatchTask]:
    worker_list = _require_workers(workers)
    shared = _require_message(message, field_name="message")
    return [
        DispatchTask(index=index, worker=worker, message=shared)
        for index, worker in enumerate(worker_list)
    ]


def _paired_tasks(
    workers: Sequence[Worker] | None,
    messages: Sequence[str] | None,
) -> list[DispatchTask]:
    worker_list = _require_workers(workers)
    if messages is None:
        raise InvalidArgumentError("messages must not be None")
    if isinstance(messages, (str, bytes)):
        raise InvalidArgumentError("messages must be a sequence of strings, not a single string")
    message_list = list(messages)
    if len(worker_list) != len(message_list):
        raise InvalidArgumentError(
            "workers and messages must have the same length: "
            f"{len(worker_list)} != {len(message_list)}",
        )
    for index, message in enumerate(message_list):
        _require_message(message, field_name=f"messages[{index}]")
    return [
        DispatchTask(index=index, worker=worker, message=message)
        for index, (worker, message) in enumerate(zip(worker_list, message_list, strict=True))
    ]


def _require_workers(workers: Sequence[Worker] | None) -> list[Worker]:
    if workers is None:
        raise InvalidArgumentError("workers must not be None")
    worker_list = list(workers)
    for index, worker in enumerate(worker_list):
        if worker is None:
            raise InvalidArgumentError(f"workers[{index}] must not be None")
    return worker_list


def _require_message(message: object, *, field_name: str) -> str:
    if message is None:
        raise InvalidArgumentError(f"{field_name} must not be None")
    if not isinstance(message, str):
        raise InvalidArgumentError(
            f"{field_name} must be a string, got {type(message).__name__}",
        )
    return message


def _validate_fallback(fallback: object) -> str:
    if fallback is None:
        raise InvalidArgumentError("fallback must not be None")
    if not isinstance(fallback, str):
        raise InvalidArgumentError(f"fallback must be a string, got {type(fallback).__name__}")
    return fallback


def _resolve_policy(policy: DispatchPolicy | str) -> DispatchPolicy:
    if isinstance(policy, DispatchPolicy):
        return policy
    try:
        return DispatchPolicy(str(policy).strip().lower())
    except ValueError as error:
        supported = ", ".join(item.value for item in DispatchPolicy)
        raise InvalidArgumentError(
            f"Unsupported dispatch policy: {policy!r}. Expected one of: {supported}",
        ) from error

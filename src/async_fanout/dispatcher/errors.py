"""Error types raised by the dispatcher."""

from __future__ import annotations


class InvalidArgumentError(ValueError):
    """Malformed dispatch call, rejected before any worker is launched."""


class AggregateFailure(RuntimeError):
    """Aggregate handle failure caused by one worker call."""

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException,
        task_index: int,
        worker_label: str,
        policy: str,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.task_index = task_index
        self.worker_label = worker_label
        self.policy = policy

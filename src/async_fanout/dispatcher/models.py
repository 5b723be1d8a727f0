"""Domain models for dispatch calls."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from async_fanout.dispatcher.backend.base import Worker


class DispatchPolicy(str, Enum):
    """Result-reduction and failure-handling policies."""

    JOIN_ALL = "join-all"
    COMPLETION_ORDER = "completion-order"
    FAIL_FAST = "fail-fast"
    FAIL_PARTIAL = "fail-partial"
    FAIL_SOFT = "fail-soft"


POLICY_DESCRIPTIONS: dict[DispatchPolicy, str] = {
    DispatchPolicy.JOIN_ALL: "Wait for every worker, join results in input order.",
    DispatchPolicy.COMPLETION_ORDER: "Wait for every worker, list results in arrival order.",
    DispatchPolicy.FAIL_FAST: "Fail the aggregate as soon as any worker fails.",
    DispatchPolicy.FAIL_PARTIAL: "Drop failed workers, list successes in input order.",
    DispatchPolicy.FAIL_SOFT: "Replace failed workers with a fallback, join in input order.",
}


@dataclass(slots=True, frozen=True)
class DispatchTask:
    """One (worker, message) pairing for a single dispatch call."""

    index: int
    worker: Worker
    message: str

    @property
    def worker_label(self) -> str:
        return describe_worker(self.worker)


def describe_worker(worker: object) -> str:
    """Best-effort human-readable label for logs and failure reports."""

    label = getattr(worker, "label", None)
    if isinstance(label, str) and label:
        return label
    return type(worker).__name__

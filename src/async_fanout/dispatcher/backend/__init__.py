"""Worker interface and simulated worker implementations."""

from async_fanout.dispatcher.backend.base import Worker
from async_fanout.dispatcher.backend.simulated import FailingWorker, LabelledWorker, WorkerCallError

__all__ = [
    "FailingWorker",
    "LabelledWorker",
    "Worker",
    "WorkerCallError",
]

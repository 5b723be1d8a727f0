"""Fan-out/fan-in dispatch over asynchronous workers.

Four reduction policies share one launch/await skeleton:

- join-all / fail-fast: space-joined results in worker order, any failure
  fails the aggregate (fail-fast may resolve before stragglers finish);
- completion-order: results in arrival order;
- fail-partial / fail-soft: failures are absorbed per worker, either dropped
  or replaced with a caller-supplied fallback.
"""

from async_fanout.dispatcher.core import RESULT_SEPARATOR, AsyncDispatcher
from async_fanout.dispatcher.errors import AggregateFailure, InvalidArgumentError
from async_fanout.dispatcher.models import POLICY_DESCRIPTIONS, DispatchPolicy, DispatchTask

__all__ = [
    "POLICY_DESCRIPTIONS",
    "RESULT_SEPARATOR",
    "AggregateFailure",
    "AsyncDispatcher",
    "DispatchPolicy",
    "DispatchTask",
    "InvalidArgumentError",
]

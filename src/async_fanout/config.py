"""Runtime configuration for dispatch runs and simulated workers."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(slots=True)
class DispatchSettings:
    """Caller-side dispatch defaults."""

    default_fallback: str = "FALLBACK"
    await_timeout_seconds: float = 5.0


@dataclass(slots=True)
class DemoWorkerSettings:
    """Latency bounds for simulated workers."""

    min_delay_seconds: float = 0.0
    max_delay_seconds: float = 0.05


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    dispatch: DispatchSettings = field(default_factory=DispatchSettings)
    demo_worker: DemoWorkerSettings = field(default_factory=DemoWorkerSettings)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with sane defaults for local runs."""

        return cls(
            dispatch=DispatchSettings(
                default_fallback=os.getenv("ASYNC_FANOUT_DEFAULT_FALLBACK", "FALLBACK"),
                await_timeout_seconds=_env_float("ASYNC_FANOUT_AWAIT_TIMEOUT_SECONDS", 5.0),
            ),
            demo_worker=DemoWorkerSettings(
                min_delay_seconds=_env_float("ASYNC_FANOUT_WORKER_MIN_DELAY_SECONDS", 0.0),
                max_delay_seconds=_env_float("ASYNC_FANOUT_WORKER_MAX_DELAY_SECONDS", 0.05),
            ),
            log_level=os.getenv("ASYNC_FANOUT_LOG_LEVEL", "WARNING").strip().upper(),
        )

    def validate(self) -> None:
        """Raise configuration error for out-of-range values."""

        if self.dispatch.await_timeout_seconds <= 0:
            raise ValueError("ASYNC_FANOUT_AWAIT_TIMEOUT_SECONDS must be > 0.")
        if self.demo_worker.min_delay_seconds < 0:
            raise ValueError("ASYNC_FANOUT_WORKER_MIN_DELAY_SECONDS must be >= 0.")
        if self.demo_worker.max_delay_seconds < self.demo_worker.min_delay_seconds:
            raise ValueError(
                "ASYNC_FANOUT_WORKER_MAX_DELAY_SECONDS must be >= "
                "ASYNC_FANOUT_WORKER_MIN_DELAY_SECONDS.",
            )
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid ASYNC_FANOUT_LOG_LEVEL: {self.log_level!r}. "
                f"Expected one of: {', '.join(_LOG_LEVELS)}",
            )

    def configure_logging(self) -> None:
        """Apply `log_level` to the root logger."""

        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ValueError(f"Invalid float value for {name}: {raw!r}") from error

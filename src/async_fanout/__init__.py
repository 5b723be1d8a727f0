"""Concurrent fan-out/fan-in dispatcher for asynchronous workers."""

__version__ = "0.1.0"

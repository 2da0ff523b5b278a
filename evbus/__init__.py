"""Asynchronous, priority-aware event bus with configuration and structured error types."""

__version__ = "0.1.0"

__all__ = ["async_bus", "config", "errors"]
"""Priorities, handler ids and configuration for the asynchronous event bus."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import TYPE_CHECKING, ClassVar, Iterator, Optional

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .async_bus import AsyncEventBus


class Priority(IntEnum):
    """Handler priority; handlers with a higher priority run first."""

    LOW = 1
    NORMAL = 2
    HIGH = 3
    CRITICAL = 4

    def __str__(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True, order=True)
class HandlerId:
    """Unique identifier handed out when a handler is registered."""

    value: int

    _counter: ClassVar[Iterator[int]] = itertools.count(1)
    _lock: ClassVar[threading.Lock] = threading.Lock()

    @classmethod
    def new(cls) -> "HandlerId":
        """Return a fresh id, greater than every id issued before it."""
        with cls._lock:
            return cls(next(cls._counter))

    def __str__(self) -> str:
        return str(self.value)


def _check_count(name: str, value: Optional[int], *, optional: bool) -> None:
    if value is None:
        if not optional:
            raise ConfigurationError(f"{name} must not be None")
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative")


@dataclass
class AsyncEventBusConfig:
    """Options controlling how an asynchronous event bus registers and runs handlers."""

    max_handlers_per_event: Optional[int] = 1000
    max_total_handlers: Optional[int] = 10000
    validate_events: bool = True
    use_priority_ordering: bool = True
    continue_on_handler_failure: bool = True
    default_handler_priority: Priority = Priority.NORMAL
    detailed_error_reporting: bool = False
    max_concurrent_handlers: Optional[int] = 100
    concurrent_execution: bool = True
    # Fewer handlers than this are run one after another.
    concurrent_threshold: int = 5

    def __post_init__(self) -> None:
        _check_count("max_handlers_per_event", self.max_handlers_per_event, optional=True)
        _check_count("max_total_handlers", self.max_total_handlers, optional=True)
        _check_count("max_concurrent_handlers", self.max_concurrent_handlers, optional=True)
        _check_count("concurrent_threshold", self.concurrent_threshold, optional=False)
        if not isinstance(self.default_handler_priority, Priority):
            raise ConfigurationError("default_handler_priority must be a Priority")


class AsyncEventBusBuilder:
    """Fluent builder for an asynchronous event bus."""

    def __init__(self) -> None:
        self._config = AsyncEventBusConfig()
        self._metrics = False

    def _set(self, **changes: object) -> "AsyncEventBusBuilder":
        self._config = replace(self._config, **changes)
        return self

    def with_max_handlers_per_event(self, max_handlers: Optional[int]) -> "AsyncEventBusBuilder":
        """Limit handlers per event type; ``None`` means no limit."""
        return self._set(max_handlers_per_event=max_handlers)

    def with_max_total_handlers(self, max_total: Optional[int]) -> "AsyncEventBusBuilder":
        """Limit handlers across all event types; ``None`` means no limit."""
        return self._set(max_total_handlers=max_total)

    def with_validation(self, validate: bool) -> "AsyncEventBusBuilder":
        """Choose whether events are validated before processing."""
        return self._set(validate_events=bool(validate))

    def with_priority_ordering(self, use_priority: bool) -> "AsyncEventBusBuilder":
        """Choose whether handlers run in priority order."""
        return self._set(use_priority_ordering=bool(use_priority))

    def with_continue_on_failure(self, continue_on_failure: bool) -> "AsyncEventBusBuilder":
        """Choose whether remaining handlers run after one fails."""
        return self._set(continue_on_handler_failure=bool(continue_on_failure))

    def with_default_priority(self, priority: Priority) -> "AsyncEventBusBuilder":
        """Set the priority given to handlers registered without one."""
        return self._set(default_handler_priority=priority)

    def with_detailed_errors(self, detailed: bool) -> "AsyncEventBusBuilder":
        """Choose whether errors are reported in detail."""
        return self._set(detailed_error_reporting=bool(detailed))

    def with_max_concurrency(self, max_concurrent: Optional[int]) -> "AsyncEventBusBuilder":
        """Limit handlers running at once; ``None`` means no limit."""
        return self._set(max_concurrent_handlers=max_concurrent)

    def with_concurrent_execution(self, concurrent: bool) -> "AsyncEventBusBuilder":
        """Choose whether handlers may run concurrently."""
        return self._set(concurrent_execution=bool(concurrent))

    def with_concurrent_threshold(self, threshold: int) -> "AsyncEventBusBuilder":
        """Set how many handlers are needed before they run concurrently."""
        return self._set(concurrent_threshold=threshold)

    def with_metrics(self, enabled: bool) -> "AsyncEventBusBuilder":
        """Request metrics collection; the bus does not collect metrics yet."""
        self._metrics = bool(enabled)
        return self

    @property
    def config(self) -> AsyncEventBusConfig:
        """A copy of the configuration built so far."""
        return replace(self._config)

    def build(self) -> "AsyncEventBus":
        """Create an event bus with the configured options."""
        from .async_bus import AsyncEventBus

        return AsyncEventBus(replace(self._config))
"""Asynchronous event bus dispatching events to coroutine handlers by event type."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from .config import AsyncEventBusBuilder, AsyncEventBusConfig, HandlerId, Priority
from .errors import (
    EventBusError,
    EventValidationError,
    HandlerCustomError,
    ResourceExhaustedError,
    ShuttingDownError,
    TooManyHandlersError,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class _HandlerEntry:
    id: HandlerId
    handler: Handler
    priority: Priority


class AsyncEventBus:
    """Routes emitted events to the async handlers registered for their exact type.

    Handlers may be coroutine functions or plain callables; a returned
    awaitable is awaited. Handlers run in priority order (highest first)
    unless priority ordering is disabled, and concurrently once at least
    ``concurrent_threshold`` handlers are registered for the event type.
    """

    def __init__(self, config: Optional[AsyncEventBusConfig] = None) -> None:
        self._config = config if config is not None else AsyncEventBusConfig()
        self._handlers: dict[type, list[_HandlerEntry]] = {}
        self._registry: dict[HandlerId, type] = {}
        self._shutting_down = False
        self._active_emits = 0

    @classmethod
    def builder(cls) -> AsyncEventBusBuilder:
        """Return a builder for configuring a new bus."""
        return AsyncEventBusBuilder()

    @property
    def config(self) -> AsyncEventBusConfig:
        """The configuration this bus was created with."""
        return self._config

    async def emit(self, event: Any) -> None:
        """Deliver ``event`` to every handler registered for its type.

        Raises :class:`ShuttingDownError` after :meth:`shutdown`, and an
        :class:`EventBusError` wrapping the cause when validation fails or,
        with ``continue_on_handler_failure`` off, when a handler fails.
        """
        if self._shutting_down:
            raise ShuttingDownError()

        if self._config.validate_events:
            self._validate(event)

        entries = list(self._handlers.get(type(event), ()))
        if not entries:
            return

        if self._config.use_priority_ordering:
            entries.sort(key=lambda entry: entry.priority, reverse=True)

        self._active_emits += 1
        try:
            if (
                self._config.concurrent_execution
                and len(entries) >= self._config.concurrent_threshold
            ):
                await self._run_concurrently(event, entries)
            else:
                await self._run_sequentially(event, entries)
        finally:
            self._active_emits -= 1

    async def on(self, event_type: type, handler: Handler) -> HandlerId:
        """Register ``handler`` for ``event_type`` at the default priority."""
        return self._register(event_type, handler, self._config.default_handler_priority)

    async def on_with_priority(
        self, event_type: type, handler: Handler, priority: Priority
    ) -> HandlerId:
        """Register ``handler`` for ``event_type`` at ``priority``."""
        return self._register(event_type, handler, priority)

    async def off(self, handler_id: HandlerId) -> bool:
        """Remove a handler; return whether it was registered."""
        event_type = self._registry.pop(handler_id, None)
        if event_type is None:
            return False
        remaining = [e for e in self._handlers.get(event_type, ()) if e.id != handler_id]
        if remaining:
            self._handlers[event_type] = remaining
        else:
            self._handlers.pop(event_type, None)
        return True

    async def handler_count(self, event_type: type) -> int:
        """Number of handlers registered for ``event_type``."""
        return len(self._handlers.get(event_type, ()))

    async def total_handler_count(self) -> int:
        """Number of handlers registered across all event types."""
        return len(self._registry)

    async def clear(self) -> None:
        """Remove every registered handler."""
        self._handlers.clear()
        self._registry.clear()

    async def is_processing(self) -> bool:
        """Whether an emit is currently running handlers."""
        return self._active_emits > 0

    async def shutdown(self) -> None:
        """Stop accepting new events; emits already running are left to finish."""
        self._shutting_down = True

    # -- internals ---------------------------------------------------------

    def _register(self, event_type: type, handler: Handler, priority: Priority) -> HandlerId:
        if not isinstance(event_type, type):
            raise TypeError("event_type must be a class")
        if not callable(handler):
            raise TypeError("handler must be callable")
        if not isinstance(priority, Priority):
            raise TypeError("priority must be a Priority")

        max_total = self._config.max_total_handlers
        if max_total is not None and len(self._registry) >= max_total:
            raise ResourceExhaustedError("Maximum total handlers exceeded")

        existing = self._handlers.get(event_type, [])
        max_per_event = self._config.max_handlers_per_event
        if max_per_event is not None and len(existing) >= max_per_event:
            raise EventBusError.wrap(TooManyHandlersError(len(existing) + 1, max_per_event))

        handler_id = HandlerId.new()
        self._handlers[event_type] = [*existing, _HandlerEntry(handler_id, handler, priority)]
        self._registry[handler_id] = event_type
        return handler_id

    @staticmethod
    def _validate(event: Any) -> None:
        validate = getattr(event, "validate", None)
        if not callable(validate):
            return
        try:
            validate()
        except EventValidationError as exc:
            raise EventBusError.wrap(exc) from exc

    @staticmethod
    async def _call(entry: _HandlerEntry, event: Any) -> None:
        result = entry.handler(event)
        if inspect.isawaitable(result):
            await result

    def _failure(self, entry: _HandlerEntry, exc: Exception) -> EventBusError:
        logger.error("Handler %s failed: %s", entry.id, exc)
        return EventBusError.wrap(HandlerCustomError(exc))

    async def _run_sequentially(self, event: Any, entries: list[_HandlerEntry]) -> None:
        for entry in entries:
            try:
                await self._call(entry, event)
            except Exception as exc:
                error = self._failure(entry, exc)
                if not self._config.continue_on_handler_failure:
                    raise error from exc

    async def _run_concurrently(self, event: Any, entries: list[_HandlerEntry]) -> None:
        limit = self._config.max_concurrent_handlers
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def run(entry: _HandlerEntry) -> None:
            if semaphore is None:
                await self._call(entry, event)
            else:
                async with semaphore:
                    await self._call(entry, event)

        tasks = [asyncio.ensure_future(run(entry)) for entry in entries]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        first: Optional[tuple[EventBusError, Exception]] = None
        for entry, outcome in zip(entries, results):
            if isinstance(outcome, Exception):
                error = self._failure(entry, outcome)
                if first is None:
                    first = (error, outcome)
        if first is not None and not self._config.continue_on_handler_failure:
            raise first[0] from first[1]
# evbus

An asynchronous event bus for `asyncio` applications. Handlers are registered
for an exact event type, run in priority order (highest first), and run
concurrently once enough of them are registered for the same type. Every
failure the bus reports is a dedicated exception class.

## Modules

- `evbus.async_bus`: `AsyncEventBus`, the bus itself.
- `evbus.config`: `Priority`, `HandlerId`, `AsyncEventBusConfig` and the
  fluent `AsyncEventBusBuilder`.
- `evbus.errors`: the exception hierarchy and `format_duration`.

## Quick start

```python
import asyncio
from dataclasses import dataclass

from evbus.async_bus import AsyncEventBus
from evbus.config import Priority
from evbus.errors import ShuttingDownError


@dataclass
class UserLoggedIn:
    user_id: int
    username: str


async def audit(event: UserLoggedIn) -> None:
    print(f"audit: {event.username} ({event.user_id})")


def welcome(event: UserLoggedIn) -> None:
    print(f"welcome back, {event.username}")


async def main() -> None:
    bus = AsyncEventBus()

    await bus.on_with_priority(UserLoggedIn, audit, Priority.HIGH)
    handler_id = await bus.on(UserLoggedIn, welcome)

    await bus.emit(UserLoggedIn(user_id=456, username="bob"))  # audit runs first
    print(await bus.total_handler_count())        # 2

    print(await bus.off(handler_id))              # True
    print(await bus.handler_count(UserLoggedIn))  # 1

    await bus.shutdown()
    try:
        await bus.emit(UserLoggedIn(user_id=999, username="test"))
    except ShuttingDownError:
        print("rejected after shutdown")


asyncio.run(main())
```

Handlers may be coroutine functions or plain callables; if a handler returns
an awaitable, the bus awaits it. `emit` returns once every handler for the
event has finished.

## The bus

`AsyncEventBus(config=None)` takes an optional `AsyncEventBusConfig`. Its
methods are all coroutines except the `config` property and the `builder()`
class method:

- `on(event_type, handler)` / `on_with_priority(event_type, handler, priority)`
  register a handler and return a `HandlerId`.
- `off(handler_id)` removes a handler and returns whether it was registered.
- `handler_count(event_type)` and `total_handler_count()` count handlers.
- `clear()` removes every handler.
- `emit(event)` delivers an event to the handlers registered for
  `type(event)`; handlers for base classes are not called.
- `is_processing()` is true while an `emit` is running handlers.
- `shutdown()` makes later `emit` calls raise `ShuttingDownError`; emits
  already running are not awaited.

When `validate_events` is on and the event has a callable `validate`
attribute, it is called first; an `EventValidationError` it raises is
re-raised wrapped in an `EventBusError`.

A handler that raises is logged through the `evbus.async_bus` logger. With
`continue_on_handler_failure` off, `emit` then raises an `EventBusError`
wrapping a `HandlerCustomError`. Sequentially, the remaining handlers are
skipped. Concurrently, all handlers finish and the first failure in
execution order is raised.

Registering past `max_total_handlers` raises `ResourceExhaustedError`.
Registering past `max_handlers_per_event` raises an `EventBusError` wrapping
`TooManyHandlersError`.

## Configuration

```python
from evbus.async_bus import AsyncEventBus
from evbus.config import Priority

bus = (
    AsyncEventBus.builder()
    .with_concurrent_execution(True)
    .with_concurrent_threshold(3)
    .with_max_concurrency(50)
    .with_default_priority(Priority.HIGH)
    .build()
)
```

`AsyncEventBusConfig` fields and defaults:

| field | default |
| --- | --- |
| `max_handlers_per_event` | `1000` (`None` for no limit) |
| `max_total_handlers` | `10000` (`None` for no limit) |
| `validate_events` | `True` |
| `use_priority_ordering` | `True`; if off, handlers run in registration order |
| `continue_on_handler_failure` | `True` |
| `default_handler_priority` | `Priority.NORMAL` |
| `detailed_error_reporting` | `False` |
| `max_concurrent_handlers` | `100`; a semaphore bounds concurrent runs (`None` or `0` for no bound) |
| `concurrent_execution` | `True` |
| `concurrent_threshold` | `5`; with fewer handlers for an event, they run one after another |

Negative or non-integer counts, and a default priority that is not a
`Priority`, raise `ConfigurationError`. The builder has one `with_...` method
per field. It also has a `config` property that returns a copy of the
options set so far.

`Priority` has the members `LOW`, `NORMAL`, `HIGH` and `CRITICAL`, in
ascending order. `HandlerId.new()` returns ids that increase for the life of
the process.

## Errors

All bus errors derive from `EventBusError`. Its subclasses are
`ShuttingDownError`, `NotInitializedError`, `ConfigurationError`,
`ResourceExhaustedError`, `BusTimeoutError`, `ConcurrencyError` and
`InternalError`.

The other failure families have their own base classes, each with one
subclass per kind:

- `HandlerError`
- `EventValidationError`
- `MiddlewareError`
- `FilterError`

`EventBusError.wrap(error)` lifts one of these into a bus error with a prefixed
message and keeps the original as `source`. `MiddlewareError.from_validation`
turns a validation error into a `CustomMiddlewareError`.

`format_duration` renders timeouts compactly, for example `5s`, `100ms` or
`1.5ms`. It accepts a `timedelta` or a number of seconds.

## What it does not do

- There is no synchronous bus.
- There are no filter or middleware implementations; only their error types
  exist.
- `with_metrics` records nothing; no metrics are collected.
- `detailed_error_reporting` is stored but not used.

## Running the tests

Install the package with its `test` extra, then run `pytest` from the project
directory.
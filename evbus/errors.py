"""Exception hierarchy for the event bus, handlers, validation, middleware and filters."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Union

DurationLike = Union[timedelta, int, float]

_NANOS_PER_SECOND = 10**9
_NANOS_PER_MILLI = 10**6
_NANOS_PER_MICRO = 10**3


def _to_nanos(duration: DurationLike) -> int:
    if isinstance(duration, bool):
        raise TypeError("duration must be a timedelta or a number of seconds")
    if isinstance(duration, timedelta):
        nanos = (
            (duration.days * 86400 + duration.seconds) * _NANOS_PER_SECOND
            + duration.microseconds * _NANOS_PER_MICRO
        )
    elif isinstance(duration, int):
        nanos = duration * _NANOS_PER_SECOND
    elif isinstance(duration, float):
        nanos = int(round(Decimal(repr(duration)) * _NANOS_PER_SECOND))
    else:
        raise TypeError("duration must be a timedelta or a number of seconds")
    if nanos < 0:
        raise ValueError("duration must not be negative")
    return nanos


def format_duration(duration: DurationLike) -> str:
    """Render a duration compactly, e.g. ``5s``, ``100ms``, ``1.5ms``, ``3µs``, ``0ns``.

    Accepts a :class:`datetime.timedelta` or a number of seconds.
    """
    nanos = _to_nanos(duration)
    seconds, sub = divmod(nanos, _NANOS_PER_SECOND)
    if seconds:
        whole, frac, digits, unit = seconds, sub, 9, "s"
    elif sub >= _NANOS_PER_MILLI:
        whole, frac = divmod(sub, _NANOS_PER_MILLI)
        digits, unit = 6, "ms"
    elif sub >= _NANOS_PER_MICRO:
        whole, frac = divmod(sub, _NANOS_PER_MICRO)
        digits, unit = 3, "µs"
    else:
        whole, frac, digits, unit = sub, 0, 0, "ns"
    fraction = str(frac).rjust(digits, "0").rstrip("0") if digits else ""
    return f"{whole}.{fraction}{unit}" if fraction else f"{whole}{unit}"


# --------------------------------------------------------------------------
# Handler errors
# --------------------------------------------------------------------------


class HandlerError(Exception):
    """Base class for failures during handler registration or execution."""


class HandlerPanicError(HandlerError):
    """A handler crashed while running."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Handler panicked: {message}")


class HandlerTimeoutError(HandlerError):
    """A handler ran longer than allowed."""

    def __init__(self, duration: DurationLike) -> None:
        self.duration = duration
        super().__init__(f"Handler timeout after {format_duration(duration)}")


class HandlerCustomError(HandlerError):
    """A handler failed with an error of its own."""

    def __init__(self, error: BaseException) -> None:
        self.error = error
        super().__init__(f"Handler failed with custom error: {error}")
        self.__cause__ = error


class RegistrationFailedError(HandlerError):
    """A handler could not be registered."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Handler registration failed: {reason}")


class HandlerNotFoundError(HandlerError):
    """No handler with the given id exists."""

    def __init__(self, handler_id: str) -> None:
        self.handler_id = handler_id
        super().__init__(f"Handler not found: {handler_id}")


class HandlerAlreadyRegisteredError(HandlerError):
    """A handler with the given id is already registered."""

    def __init__(self, handler_id: str) -> None:
        self.handler_id = handler_id
        super().__init__(f"Handler already registered: {handler_id}")


class HandlerCancelledError(HandlerError):
    """Handler execution was cancelled."""

    def __init__(self) -> None:
        super().__init__("Handler execution cancelled")


class TooManyHandlersError(HandlerError):
    """More handlers were registered than the limit allows."""

    def __init__(self, count: int, maximum: int) -> None:
        self.count = count
        self.maximum = maximum
        super().__init__(f"Too many handlers registered: {count} (max: {maximum})")


# --------------------------------------------------------------------------
# Validation errors
# --------------------------------------------------------------------------


class EventValidationError(Exception):
    """Base class for events that fail validation."""


class MissingFieldError(EventValidationError):
    """A required field is missing."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Required field missing: {field}")


class InvalidValueError(EventValidationError):
    """A field holds an invalid value."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid field value: {field} = {value}")


class InvalidFormatError(EventValidationError):
    """The event data has an invalid format."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Invalid event format: {message}")


class EventTooLargeError(EventValidationError):
    """The event is larger than allowed."""

    def __init__(self, size: int, maximum: int) -> None:
        self.size = size
        self.maximum = maximum
        super().__init__(f"Event too large: {size} bytes (max: {maximum} bytes)")


class ConstraintViolationError(EventValidationError):
    """A constraint on the event was violated."""

    def __init__(self, constraint: str) -> None:
        self.constraint = constraint
        super().__init__(f"Constraint violation: {constraint}")


class CustomValidationError(EventValidationError):
    """Validation failed with a custom message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Custom validation error: {message}")


# --------------------------------------------------------------------------
# Middleware errors
# --------------------------------------------------------------------------


class MiddlewareError(Exception):
    """Base class for middleware failures."""

    @classmethod
    def from_validation(cls, error: EventValidationError) -> "CustomMiddlewareError":
        """Turn a validation error into a custom middleware error."""
        if not isinstance(error, EventValidationError):
            raise TypeError("expected an EventValidationError")
        converted = CustomMiddlewareError(str(error))
        converted.__cause__ = error
        return converted


class AuthenticationFailedError(MiddlewareError):
    """Authentication failed."""

    def __init__(self) -> None:
        super().__init__("Authentication failed")


class AuthorizationFailedError(MiddlewareError):
    """Authorization failed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Authorization failed: {reason}")


class RateLimitExceededError(MiddlewareError):
    """A rate limit was exceeded."""

    def __init__(self) -> None:
        super().__init__("Rate limit exceeded")


class CircuitBreakerOpenError(MiddlewareError):
    """A circuit breaker is open."""

    def __init__(self) -> None:
        super().__init__("Circuit breaker is open")


class ChainInterruptedError(MiddlewareError):
    """The middleware chain was interrupted."""

    def __init__(self) -> None:
        super().__init__("Middleware chain interrupted")


class ChainShortCircuitedError(MiddlewareError):
    """The middleware chain was short-circuited."""

    def __init__(self) -> None:
        super().__init__("Middleware chain short-circuited")


class MiddlewareProcessingFailedError(MiddlewareError):
    """A middleware component failed to process the event."""

    def __init__(self, middleware: str) -> None:
        self.middleware = middleware
        super().__init__(f"Middleware processing failed: {middleware}")


class InvalidMiddlewareConfigurationError(MiddlewareError):
    """Middleware configuration is invalid."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Invalid middleware configuration: {message}")


class CustomMiddlewareError(MiddlewareError):
    """Middleware failed with a custom message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Custom middleware error: {message}")


# --------------------------------------------------------------------------
# Filter errors
# --------------------------------------------------------------------------


class FilterError(Exception):
    """Base class for filter failures."""


class FilterEvaluationFailedError(FilterError):
    """A filter failed while evaluating an event."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Filter evaluation failed: {message}")


class FilterCompilationFailedError(FilterError):
    """A filter pattern could not be compiled."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        super().__init__(f"Filter compilation failed: {pattern}")


class InvalidFilterConfigurationError(FilterError):
    """Filter configuration is invalid."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Invalid filter configuration: {message}")


class FilterTypeMismatchError(FilterError):
    """A filter was applied to an event of the wrong type."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Filter type mismatch: expected {expected}, got {actual}")


class CustomFilterError(FilterError):
    """A filter failed with a custom message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Custom filter error: {message}")


# --------------------------------------------------------------------------
# Bus errors
# --------------------------------------------------------------------------

_WRAP_PREFIXES: tuple[tuple[type[Exception], str], ...] = (
    (HandlerError, "Handler execution failed"),
    (EventValidationError, "Event validation failed"),
    (MiddlewareError, "Middleware error"),
    (FilterError, "Filter error"),
)


class EventBusError(Exception):
    """Base class for event bus failures.

    Errors produced by handlers, validation, middleware or filters can be
    lifted into a bus error with :meth:`wrap`; the original is kept as
    ``source``.
    """

    source: Exception | None = None

    @classmethod
    def wrap(cls, error: Exception) -> "EventBusError":
        """Return a bus error wrapping a handler, validation, middleware or filter error."""
        if isinstance(error, EventBusError):
            return error
        for kind, prefix in _WRAP_PREFIXES:
            if isinstance(error, kind):
                wrapped = cls(f"{prefix}: {error}")
                wrapped.source = error
                wrapped.__cause__ = error
                return wrapped
        raise TypeError(f"cannot wrap {type(error).__name__} as an event bus error")


class ShuttingDownError(EventBusError):
    """The bus is shutting down and accepts no new events."""

    def __init__(self) -> None:
        super().__init__("Bus is shutting down")


class NotInitializedError(EventBusError):
    """The bus is not initialized."""

    def __init__(self) -> None:
        super().__init__("Bus is not initialized")


class ConfigurationError(EventBusError):
    """The bus configuration is invalid."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Configuration error: {message}")


class ResourceExhaustedError(EventBusError):
    """A resource such as the handler limit is exhausted."""

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"Resource exhausted: {resource}")


class BusTimeoutError(EventBusError):
    """A bus operation timed out."""

    def __init__(self, duration: DurationLike) -> None:
        self.duration = duration
        super().__init__(f"Operation timed out after {format_duration(duration)}")


class ConcurrencyError(EventBusError):
    """A concurrency problem occurred."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Concurrency error: {message}")


class InternalError(EventBusError):
    """An internal error that should not happen in normal operation."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Internal error: {message}")
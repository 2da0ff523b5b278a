import asyncio
from dataclasses import dataclass

import pytest

from evbus.async_bus import AsyncEventBus
from evbus.config import AsyncEventBusConfig, HandlerId, Priority
from evbus.errors import (
    EventBusError,
    HandlerCustomError,
    MissingFieldError,
    ResourceExhaustedError,
    ShuttingDownError,
)


@dataclass
class AsyncTestEvent:
    value: int


@dataclass
class OtherEvent:
    name: str


@dataclass
class CheckedEvent:
    to: str

    def validate(self):
        if not self.to:
            raise MissingFieldError("to")


@pytest.mark.asyncio
async def test_async_event_bus_creation():
    bus = AsyncEventBus()
    assert await bus.total_handler_count() == 0
    assert await bus.is_processing() is False


@pytest.mark.asyncio
async def test_async_event_bus_with_config():
    config = AsyncEventBusConfig(
        max_handlers_per_event=10, validate_events=False, concurrent_execution=False
    )
    bus = AsyncEventBus(config)
    assert bus.config.validate_events is False
    assert bus.config.max_handlers_per_event == 10
    assert bus.config.concurrent_execution is False


@pytest.mark.asyncio
async def test_builder_creates_configured_bus():
    bus = AsyncEventBus.builder().with_concurrent_threshold(3).with_default_priority(
        Priority.HIGH
    ).build()
    assert bus.config.concurrent_threshold == 3
    assert bus.config.default_handler_priority == Priority.HIGH


@pytest.mark.asyncio
async def test_async_handler_registration():
    bus = AsyncEventBus()

    async def handler(event):
        await asyncio.sleep(0.001)

    handler_id = await bus.on(AsyncTestEvent, handler)
    assert isinstance(handler_id, HandlerId)
    assert handler_id.value > 0
    assert await bus.total_handler_count() == 1
    assert await bus.handler_count(AsyncTestEvent) == 1
    assert await bus.handler_count(OtherEvent) == 0


@pytest.mark.asyncio
async def test_async_event_emission():
    bus = AsyncEventBus()
    seen = []

    async def handler(event):
        seen.append(event.value)

    handler_id = await bus.on(AsyncTestEvent, handler)
    assert handler_id.value > 0
    await bus.emit(AsyncTestEvent(42))
    assert seen == [42]
    assert await bus.handler_count(AsyncTestEvent) == 1


@pytest.mark.asyncio
async def test_events_are_routed_by_type():
    bus = AsyncEventBus()
    seen = []
    await bus.on(AsyncTestEvent, lambda e: seen.append(("test", e.value)))
    await bus.on(OtherEvent, lambda e: seen.append(("other", e.name)))
    await bus.emit(OtherEvent("x"))
    assert seen == [("other", "x")]


@pytest.mark.asyncio
async def test_priority_ordering_async():
    bus = AsyncEventBus()
    order = []

    def make(tag):
        async def handler(event):
            order.append(tag)

        return handler

    low = await bus.on_with_priority(AsyncTestEvent, make(1), Priority.LOW)
    high = await bus.on_with_priority(AsyncTestEvent, make(2), Priority.HIGH)
    normal = await bus.on_with_priority(AsyncTestEvent, make(3), Priority.NORMAL)
    assert len({low, high, normal}) == 3
    assert await bus.total_handler_count() == 3
    await bus.emit(AsyncTestEvent(42))
    assert order == [2, 3, 1]


@pytest.mark.asyncio
async def test_registration_order_without_priority_ordering():
    bus = AsyncEventBus(AsyncEventBusConfig(use_priority_ordering=False))
    order = []
    await bus.on_with_priority(AsyncTestEvent, lambda e: order.append("low"), Priority.LOW)
    await bus.on_with_priority(AsyncTestEvent, lambda e: order.append("high"), Priority.HIGH)
    await bus.emit(AsyncTestEvent(1))
    assert order == ["low", "high"]


@pytest.mark.asyncio
async def test_concurrent_execution_above_threshold():
    bus = AsyncEventBus(AsyncEventBusConfig(concurrent_threshold=2))
    gate = asyncio.Event()
    done = []

    async def waiter(event):
        await gate.wait()
        done.append("waiter")

    async def opener(event):
        gate.set()
        done.append("opener")

    await bus.on_with_priority(AsyncTestEvent, waiter, Priority.HIGH)
    await bus.on_with_priority(AsyncTestEvent, opener, Priority.LOW)
    assert await bus.handler_count(AsyncTestEvent) == 2
    await asyncio.wait_for(bus.emit(AsyncTestEvent(1)), timeout=2)
    assert sorted(done) == ["opener", "waiter"]
    assert await bus.is_processing() is False


@pytest.mark.asyncio
async def test_is_processing_during_emit():
    bus = AsyncEventBus()
    observed = []

    async def handler(event):
        observed.append(await bus.is_processing())

    await bus.on(AsyncTestEvent, handler)
    await bus.emit(AsyncTestEvent(1))
    assert observed == [True]
    assert await bus.is_processing() is False


@pytest.mark.asyncio
async def test_async_handler_unregistration():
    bus = AsyncEventBus()
    calls = []
    handler_id = await bus.on(AsyncTestEvent, lambda e: calls.append(e))
    assert await bus.total_handler_count() == 1

    assert await bus.off(handler_id) is True
    assert await bus.total_handler_count() == 0
    assert await bus.off(handler_id) is False

    await bus.emit(AsyncTestEvent(5))
    assert calls == []


@pytest.mark.asyncio
async def test_async_clear_all_handlers():
    bus = AsyncEventBus()

    async def noop(event):
        return None

    await bus.on(AsyncTestEvent, noop)
    await bus.on(AsyncTestEvent, noop)
    assert await bus.total_handler_count() == 2

    await bus.clear()
    assert await bus.total_handler_count() == 0
    assert await bus.handler_count(AsyncTestEvent) == 0


@pytest.mark.asyncio
async def test_async_shutdown():
    bus = AsyncEventBus()
    await bus.shutdown()
    with pytest.raises(ShuttingDownError):
        await bus.emit(AsyncTestEvent(42))


@pytest.mark.asyncio
async def test_validation_failure_is_wrapped():
    bus = AsyncEventBus()
    calls = []
    await bus.on(CheckedEvent, lambda e: calls.append(e))
    with pytest.raises(EventBusError) as info:
        await bus.emit(CheckedEvent(""))
    assert isinstance(info.value.source, MissingFieldError)
    assert str(info.value) == "Event validation failed: Required field missing: to"
    assert calls == []


@pytest.mark.asyncio
async def test_validation_can_be_disabled():
    bus = AsyncEventBus(AsyncEventBusConfig(validate_events=False))
    calls = []
    await bus.on(CheckedEvent, lambda e: calls.append(e.to))
    await bus.emit(CheckedEvent(""))
    assert calls == [""]


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_others_by_default():
    bus = AsyncEventBus()
    calls = []

    async def broken(event):
        raise RuntimeError("boom")

    await bus.on_with_priority(AsyncTestEvent, broken, Priority.HIGH)
    await bus.on(AsyncTestEvent, lambda e: calls.append(e.value))
    await bus.emit(AsyncTestEvent(7))
    assert calls == [7]


@pytest.mark.asyncio
async def test_failing_handler_raises_when_not_continuing():
    bus = AsyncEventBus(AsyncEventBusConfig(continue_on_handler_failure=False))
    calls = []

    async def broken(event):
        raise RuntimeError("boom")

    await bus.on_with_priority(AsyncTestEvent, broken, Priority.HIGH)
    await bus.on(AsyncTestEvent, lambda e: calls.append(e.value))
    with pytest.raises(EventBusError) as info:
        await bus.emit(AsyncTestEvent(7))
    assert isinstance(info.value.source, HandlerCustomError)
    assert calls == []


@pytest.mark.asyncio
async def test_total_handler_limit():
    bus = AsyncEventBus(AsyncEventBusConfig(max_total_handlers=1))
    await bus.on(AsyncTestEvent, lambda e: None)
    with pytest.raises(ResourceExhaustedError):
        await bus.on(OtherEvent, lambda e: None)
    assert await bus.total_handler_count() == 1


@pytest.mark.asyncio
async def test_per_event_handler_limit():
    bus = AsyncEventBus(AsyncEventBusConfig(max_handlers_per_event=1))
    await bus.on(AsyncTestEvent, lambda e: None)
    with pytest.raises(EventBusError):
        await bus.on(AsyncTestEvent, lambda e: None)
    await bus.on(OtherEvent, lambda e: None)
    assert await bus.total_handler_count() == 2


@pytest.mark.asyncio
async def test_registration_rejects_bad_arguments():
    bus = AsyncEventBus()
    with pytest.raises(TypeError):
        await bus.on("AsyncTestEvent", lambda e: None)
    with pytest.raises(TypeError):
        await bus.on(AsyncTestEvent, 42)
    with pytest.raises(TypeError):
        await bus.on_with_priority(AsyncTestEvent, lambda e: None, 3)
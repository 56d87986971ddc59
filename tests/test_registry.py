from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pyfleetalerts.exceptions import FeedAuthenticationError
from pyfleetalerts.models.alert import PersistedAlert
from pyfleetalerts.registry import SubscriptionRegistry

from tests.conftest import TENANT, FakeAlertBackend, FakeTelemetryStore, make_config, settle


def _registry(backend: FakeAlertBackend, store: FakeTelemetryStore, **overrides: Any) -> SubscriptionRegistry:
    return SubscriptionRegistry(make_config(**overrides), transport=backend, store=store)


@pytest.mark.asyncio
async def test_first_subscriber_starts_engine_and_receives_initial_list(
    backend: FakeAlertBackend,
    store: FakeTelemetryStore,
) -> None:
    registry = _registry(backend, store)
    received: list[list[PersistedAlert]] = []

    unsubscribe = await registry.subscribe(received.append)

    assert registry.running
    assert store.auth_calls == 1
    assert len(store.active_subscriptions) == 1
    assert store.active_subscriptions[0].path == f"tenants/{TENANT}/devices"
    assert received == [[]]
    unsubscribe()


@pytest.mark.asyncio
async def test_engine_runs_until_last_observer_leaves(backend: FakeAlertBackend, store: FakeTelemetryStore) -> None:
    registry = _registry(backend, store, poll_interval=0.02)

    handles = [await registry.subscribe(lambda _alerts: None) for _ in range(3)]
    assert store.auth_calls == 1
    assert len(store.subscriptions) == 1

    handles[0]()
    handles[1]()
    assert registry.running
    assert registry.observer_count == 1
    assert len(store.active_subscriptions) == 1
    polls = backend.count("GET", "/alerts")
    await asyncio.sleep(0.08)
    assert backend.count("GET", "/alerts") > polls

    handles[2]()
    assert not registry.running
    assert registry.last_alerts is None
    assert store.active_subscriptions == []
    polls = backend.count("GET", "/alerts")
    await asyncio.sleep(0.08)
    assert backend.count("GET", "/alerts") == polls


@pytest.mark.asyncio
async def test_double_unsubscribe_is_a_no_op(backend: FakeAlertBackend, store: FakeTelemetryStore) -> None:
    registry = _registry(backend, store)
    first = await registry.subscribe(lambda _alerts: None)
    second = await registry.subscribe(lambda _alerts: None)

    first()
    first()

    assert registry.running
    assert registry.observer_count == 1
    second()
    second()
    assert not registry.running


@pytest.mark.asyncio
async def test_late_subscriber_gets_last_known_list_immediately(
    backend: FakeAlertBackend,
    store: FakeTelemetryStore,
) -> None:
    backend.alerts.append(
        {
            "_id": "a1",
            "type": "humidity",
            "severity": "medium",
            "message": "High humidity detected",
            "vehicle": {"id": "D1"},
            "timestamp": "2026-01-01T00:00:00Z",
            "status": "active",
        }
    )
    registry = _registry(backend, store)
    first = await registry.subscribe(lambda _alerts: None)
    received: list[list[PersistedAlert]] = []

    second = await registry.subscribe(received.append)

    assert [[a.id for a in alerts] for alerts in received] == [["a1"]]
    assert backend.count("GET", "/alerts") == 1
    first()
    second()


@pytest.mark.asyncio
async def test_handshake_failure_propagates_and_registers_nothing(
    backend: FakeAlertBackend,
    store: FakeTelemetryStore,
) -> None:
    store.fail_auth = True
    registry = _registry(backend, store)

    with pytest.raises(FeedAuthenticationError):
        await registry.subscribe(lambda _alerts: None)

    assert not registry.running
    assert registry.observer_count == 0
    assert store.subscriptions == []
    assert backend.calls == []

    store.fail_auth = False
    unsubscribe = await registry.subscribe(lambda _alerts: None)
    assert registry.running
    unsubscribe()


@pytest.mark.asyncio
async def test_failing_observer_does_not_block_others(backend: FakeAlertBackend, store: FakeTelemetryStore) -> None:
    registry = _registry(backend, store)
    received: list[list[PersistedAlert]] = []

    def _broken(_alerts: list[PersistedAlert]) -> None:
        raise RuntimeError("render failed")

    first = await registry.subscribe(_broken)
    second = await registry.subscribe(received.append)
    assert registry.last_alerts == []

    store.emit({"D1": {"sensor": {"temperature_C": 42}}})
    await settle()

    assert received and len(received[-1]) == 1
    first()
    second()


@pytest.mark.asyncio
async def test_temperature_breach_end_to_end(backend: FakeAlertBackend, store: FakeTelemetryStore) -> None:
    registry = _registry(backend, store)
    received: list[list[PersistedAlert]] = []
    unsubscribe = await registry.subscribe(received.append)

    store.emit({"D1": {"gps": {"lat": 6.93, "lng": 79.85}, "sensor": {"temperature_C": 42, "humidity": 40}}})
    await settle()

    assert backend.count("POST", "/alerts") == 1
    posted = backend.alerts[0]
    assert posted["type"] == "temperature"
    assert posted["severity"] == "medium"
    assert posted["status"] == "active"
    assert posted["triggerCondition"] == {"threshold": 35.0, "currentValue": 42.0, "unit": "°C"}
    assert posted["details"] == "Temperature exceeded threshold of 35°C. Current temperature: 42°C"
    assert posted["location"]["lat"] == 6.93

    latest = received[-1]
    assert [(a.type, a.device_id) for a in latest] == [("temperature", "D1")]
    assert store.writes == []
    unsubscribe()


@pytest.mark.asyncio
async def test_accident_flag_end_to_end(backend: FakeAlertBackend, store: FakeTelemetryStore) -> None:
    registry = _registry(backend, store)
    received: list[list[PersistedAlert]] = []
    unsubscribe = await registry.subscribe(received.append)
    accident = {"D2": {"gps": {"lat": 6.9, "lng": 79.8}, "flags": {"accident_detected": True}}}

    store.emit(accident)
    await settle()
    # Flag reset has not reached the feed yet; the same state arrives again.
    store.emit(accident)
    await settle()

    assert backend.count("POST", "/alerts") == 1
    assert len(backend.alerts) == 1
    posted = backend.alerts[0]
    assert posted["type"] == "accident"
    assert posted["severity"] == "critical"
    assert posted["message"] == "Accident detected!"
    assert posted["triggerCondition"]["gpsSignal"] == "active"
    assert (f"tenants/{TENANT}/devices/D2/flags/accident_detected", False) in store.writes
    assert [a.type for a in received[-1]] == ["accident"]
    unsubscribe()


@pytest.mark.asyncio
async def test_unsubscribe_during_pending_debounce_prevents_evaluation(
    backend: FakeAlertBackend,
    store: FakeTelemetryStore,
) -> None:
    registry = _registry(backend, store)
    unsubscribe = await registry.subscribe(lambda _alerts: None)
    calls_before = len(backend.calls)

    store.emit({"D1": {"sensor": {"temperature_C": 42}}})
    unsubscribe()
    await settle()

    assert len(backend.calls) == calls_before
    assert backend.alerts == []


@pytest.mark.asyncio
async def test_close_stops_everything(backend: FakeAlertBackend, store: FakeTelemetryStore) -> None:
    registry = _registry(backend, store, poll_interval=0.02)
    await registry.subscribe(lambda _alerts: None)

    registry.close()
    lists_before = backend.count("GET", "/alerts")
    await asyncio.sleep(0.08)

    assert not registry.running
    assert registry.observer_count == 0
    assert backend.count("GET", "/alerts") == lists_before

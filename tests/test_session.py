from __future__ import annotations

import asyncio

import pytest

from gattscout.errors import RadioUnavailableError
from gattscout.events import AdvertisementEvent, ScanStopped
from gattscout.session import ScanSession, ScanState

from fakes import FakeRadio


def _drain(queue: asyncio.Queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


def test_start_then_stop_walks_the_state_machine() -> None:
    radio = FakeRadio()

    async def scenario():
        session = ScanSession(radio)
        queue = session.bus.subscribe(AdvertisementEvent, ScanStopped)
        states = [session.state]
        await session.start()
        states.append(session.state)
        radio.advertise(AdvertisementEvent(address=1))
        radio.advertise(AdvertisementEvent(address=1))
        await session.stop()
        states.append(session.state)
        await session.wait_stopped()
        return states, _drain(queue), session

    states, events, session = asyncio.run(scenario())

    assert states == [ScanState.IDLE, ScanState.SCANNING, ScanState.IDLE]
    assert [type(e) for e in events] == [AdvertisementEvent, AdvertisementEvent, ScanStopped]
    assert session.advertisements_received == 2


def test_stop_twice_publishes_one_scan_stopped() -> None:
    radio = FakeRadio()

    async def scenario():
        session = ScanSession(radio)
        queue = session.bus.subscribe(ScanStopped)
        await session.start()
        await session.stop()
        await session.stop()
        return _drain(queue)

    events = asyncio.run(scenario())

    assert len(events) == 1
    assert radio.stop_calls == 1


def test_stop_while_idle_is_a_no_op() -> None:
    radio = FakeRadio()

    async def scenario():
        session = ScanSession(radio)
        await session.stop()
        await session.wait_stopped()
        return session.state

    assert asyncio.run(scenario()) is ScanState.IDLE
    assert radio.stop_calls == 0


def test_start_while_scanning_does_not_resubscribe() -> None:
    radio = FakeRadio()

    async def scenario():
        session = ScanSession(radio)
        queue = session.bus.subscribe(AdvertisementEvent)
        await session.start()
        await session.start()
        radio.advertise(AdvertisementEvent(address=7))
        return _drain(queue)

    events = asyncio.run(scenario())

    assert radio.start_calls == 1
    assert len(events) == 1


def test_radio_unavailable_is_raised_and_session_stays_idle() -> None:
    radio = FakeRadio(start_error=RadioUnavailableError("Bluetooth adapter is powered off"))

    async def scenario():
        session = ScanSession(radio)
        with pytest.raises(RadioUnavailableError, match="powered off"):
            await session.start()
        return session.state

    assert asyncio.run(scenario()) is ScanState.IDLE


def test_session_can_restart_after_stop() -> None:
    radio = FakeRadio()

    async def scenario():
        session = ScanSession(radio)
        queue = session.bus.subscribe(ScanStopped)
        for _ in range(2):
            await session.start()
            await session.stop()
        return _drain(queue), session.state

    events, state = asyncio.run(scenario())

    assert len(events) == 2
    assert state is ScanState.IDLE
    assert radio.start_calls == 2

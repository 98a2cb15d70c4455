from __future__ import annotations

import asyncio
import time
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from src.punch_engine.punch_engine.attendance.model import PunchConfirmation, RemotePunchStatus
from src.punch_engine.punch_engine.core.enums import (
    PunchFailure,
    PunchKind,
    PunchOutcome,
    PunchPhase,
    ShiftStatus,
    SyncStatus,
)
from src.punch_engine.punch_engine.core.exceptions import (
    AuthExpiredError,
    NetworkUnavailableError,
    ServerRejectedError,
)
from src.punch_engine.punch_engine.geofence.location import LocationService
from src.punch_engine.punch_engine.geofence.model import Coordinate, OfficeAnchor
from src.punch_engine.punch_engine.geofence.validator import GeofenceValidator
from src.punch_engine.punch_engine.ledger.repository import OfflineAttendanceLedger
from src.punch_engine.punch_engine.punch.service import LAST_SEEN_DATE_KEY, PunchStateMachine
from src.punch_engine.punch_engine.shifts.classifier import ShiftWindowClassifier
from src.punch_engine.punch_engine.shifts.model import ShiftWindow
from src.punch_engine.punch_engine.storage.memory_store import InMemoryKeyValueStore

OFFICE = OfficeAnchor(latitude=23.0352554, longitude=72.5616832, radius_meters=200.0)
WINDOW = ShiftWindow.from_settings({"start": "09:30", "end": "18:30", "timezone_offset_minutes": 330})
AT_OFFICE = Coordinate(latitude=OFFICE.latitude, longitude=OFFICE.longitude, accuracy=5.0)


def north_of_office(meters: float) -> Coordinate:
    return Coordinate(latitude=OFFICE.latitude + meters / 111111, longitude=OFFICE.longitude)


class FakeProvider:
    def __init__(self, coordinate: Optional[Coordinate] = AT_OFFICE, *, granted=True):
        self.coordinate = coordinate
        self.granted = granted
        self.requests = 0
        self.gate: Optional[asyncio.Event] = None

    async def has_permission(self):
        return self.granted

    async def request_permission(self):
        return self.granted

    async def get_current_coordinate(self):
        self.requests += 1
        if self.gate is not None:
            await self.gate.wait()
        return self.coordinate


class FakeAttendanceApi:
    def __init__(self):
        self.submitted: list[tuple[PunchKind, datetime, Coordinate]] = []
        self.error: Optional[BaseException] = None
        self.confirmed_at: Optional[datetime] = None
        self.remote = RemotePunchStatus(phase=PunchPhase.NOT_PUNCHED)

    async def submit_punch(self, kind, requested_at, location):
        self.submitted.append((kind, requested_at, location))
        if self.error is not None:
            raise self.error
        return PunchConfirmation(kind=kind, confirmed_at_utc=self.confirmed_at or requested_at, message=None)

    async def fetch_punch_status(self):
        return self.remote


class Harness:
    def __init__(self, clock, *, storage=None, provider=None, api=None):
        self.clock = clock
        self.storage = storage if storage is not None else InMemoryKeyValueStore()
        self.provider = provider or FakeProvider()
        self.api = api or FakeAttendanceApi()
        self.ledger = OfflineAttendanceLedger(self.storage, clock=clock)
        self.machine = PunchStateMachine(
            location=LocationService(self.provider, timeout_seconds=1.0),
            geofence=GeofenceValidator(),
            anchor=OFFICE,
            classifier=ShiftWindowClassifier(),
            window=WINDOW,
            attendance_api=self.api,
            ledger=self.ledger,
            storage=self.storage,
            clock=clock,
        )

    def punch(self, kind):
        return asyncio.run(self.machine.request_punch(kind))


@pytest.fixture
def harness(clock):
    return Harness(clock)


def test_starts_not_punched_for_today(harness):
    state = harness.machine.state

    assert state.local_date == date(2025, 1, 6)
    assert state.phase == PunchPhase.NOT_PUNCHED
    assert harness.storage.get(LAST_SEEN_DATE_KEY) == "2025-01-06"


def test_punch_in_then_out(harness, clock):
    result = harness.punch(PunchKind.IN)

    assert result.success is True
    assert result.classification.status == ShiftStatus.ON_TIME
    assert harness.machine.state.phase == PunchPhase.PUNCHED_IN
    assert harness.machine.state.punch_in_at_utc == clock.now

    clock.advance(hours=9)
    result = harness.punch(PunchKind.OUT)

    assert result.success is True
    state = harness.machine.state
    assert state.phase == PunchPhase.PUNCHED_OUT
    assert state.worked_minutes(clock.now) == 9 * 60
    assert [e.event.outcome for e in harness.ledger.all()] == [PunchOutcome.ACCEPTED, PunchOutcome.ACCEPTED]


def test_server_confirmed_time_is_recorded(harness, clock):
    harness.api.confirmed_at = clock.now + timedelta(seconds=3)

    harness.punch(PunchKind.IN)

    assert harness.machine.state.punch_in_at_utc == clock.now + timedelta(seconds=3)
    assert harness.ledger.latest_for(date(2025, 1, 6), PunchKind.IN).event.confirmed_at_utc == clock.now + timedelta(seconds=3)


def test_late_punch_carries_warning(harness, clock):
    clock.advance(minutes=5)

    result = harness.punch(PunchKind.IN)

    assert result.success is True
    assert result.classification.status == ShiftStatus.LATE
    assert result.classification.offset_minutes == 5
    assert "5 minutes after 9:30 AM" in result.warning


@pytest.mark.parametrize(
    "setup, kind",
    [
        ([], PunchKind.OUT),
        ([PunchKind.IN], PunchKind.IN),
        ([PunchKind.IN, PunchKind.OUT], PunchKind.IN),
        ([PunchKind.IN, PunchKind.OUT], PunchKind.OUT),
    ],
)
def test_invalid_transitions_make_no_network_call(harness, setup, kind):
    for previous in setup:
        assert harness.punch(previous).success
    phase_before = harness.machine.state.phase
    submitted_before = len(harness.api.submitted)
    location_requests_before = harness.provider.requests
    ledger_before = len(harness.ledger.all())

    result = harness.punch(kind)

    assert result.failure == PunchFailure.INVALID_TRANSITION
    assert harness.machine.state.phase == phase_before
    assert len(harness.api.submitted) == submitted_before
    assert harness.provider.requests == location_requests_before
    assert len(harness.ledger.all()) == ledger_before


def test_double_tap_submits_once(harness):
    async def scenario():
        harness.provider.gate = asyncio.Event()
        first = asyncio.create_task(harness.machine.request_punch(PunchKind.IN))
        await asyncio.sleep(0)
        second = await harness.machine.request_punch(PunchKind.IN)
        harness.provider.gate.set()
        return await first, second

    first, second = asyncio.run(scenario())

    assert first.success is True
    assert second.failure == PunchFailure.ALREADY_IN_PROGRESS
    assert len(harness.api.submitted) == 1
    assert [e.event.outcome for e in harness.ledger.all()] == [PunchOutcome.ACCEPTED]
    # The rejected tap does not replace the real result.
    assert harness.machine.last_result == first


def test_out_of_range_rejects_without_network(clock):
    harness = Harness(clock, provider=FakeProvider(north_of_office(220)))

    result = harness.punch(PunchKind.IN)

    assert result.failure == PunchFailure.OUT_OF_RANGE
    assert round(result.distance_meters) == 220
    assert "220m away" in result.message
    assert harness.api.submitted == []
    assert harness.machine.state.phase == PunchPhase.NOT_PUNCHED
    latest = harness.ledger.latest_for(date(2025, 1, 6), PunchKind.IN)
    assert latest.event.reason == PunchFailure.OUT_OF_RANGE
    assert latest.sync_status == SyncStatus.SYNCED


def test_inside_radius_is_submitted(clock):
    harness = Harness(clock, provider=FakeProvider(north_of_office(180)))

    assert harness.punch(PunchKind.IN).success is True
    assert len(harness.api.submitted) == 1


def test_missing_location_is_its_own_failure(clock):
    harness = Harness(clock, provider=FakeProvider(None))

    result = harness.punch(PunchKind.IN)

    assert result.failure == PunchFailure.LOCATION_UNAVAILABLE
    assert harness.api.submitted == []


def test_denied_permission_is_location_unavailable(clock):
    harness = Harness(clock, provider=FakeProvider(granted=False))

    assert harness.punch(PunchKind.IN).failure == PunchFailure.LOCATION_UNAVAILABLE
    assert harness.provider.requests == 0


@pytest.mark.parametrize(
    "error, failure",
    [
        (AuthExpiredError(), PunchFailure.AUTH_EXPIRED),
        (NetworkUnavailableError(), PunchFailure.NETWORK_UNAVAILABLE),
        (ServerRejectedError(400, {}, "Already punched in for today"), PunchFailure.SERVER_REJECTED),
    ],
)
def test_submit_failures_stay_distinct(harness, error, failure):
    harness.api.error = error

    result = harness.punch(PunchKind.IN)

    assert result.failure == failure
    assert result.message == error.message
    assert harness.machine.state.phase == PunchPhase.NOT_PUNCHED
    assert harness.ledger.latest_for(date(2025, 1, 6), PunchKind.IN).event.reason == failure


def test_network_failure_is_kept_for_sync(harness):
    harness.api.error = NetworkUnavailableError()

    harness.punch(PunchKind.IN)

    pending = harness.ledger.pending()
    assert len(pending) == 1
    assert pending[0].sync_status == SyncStatus.PENDING_SYNC


def test_guard_released_after_unexpected_error(harness):
    harness.api.error = RuntimeError("bug")

    with pytest.raises(RuntimeError):
        harness.punch(PunchKind.IN)

    assert harness.ledger.latest_for(date(2025, 1, 6), PunchKind.IN).event.reason == PunchFailure.UNEXPECTED

    harness.api.error = None
    assert harness.punch(PunchKind.IN).success is True


def test_day_rolls_over_at_civil_midnight(clock):
    clock.now = datetime(2025, 1, 6, 17, 0, tzinfo=timezone.utc)  # 22:30 IST
    harness = Harness(clock)
    assert harness.punch(PunchKind.IN).success

    clock.advance(minutes=29)  # 23:59 IST
    assert harness.machine.state.phase == PunchPhase.PUNCHED_IN

    clock.advance(minutes=2)  # 00:01 IST next day
    state = harness.machine.state

    assert state.local_date == date(2025, 1, 7)
    assert state.phase == PunchPhase.NOT_PUNCHED
    assert harness.machine.last_result is None
    assert harness.storage.get(LAST_SEEN_DATE_KEY) == "2025-01-07"
    assert harness.punch(PunchKind.IN).success is True


def test_rollover_notifies_subscribers(harness, clock):
    seen = []
    harness.machine.subscribe(lambda state, result: seen.append(state.local_date))

    clock.advance(days=1)

    assert asyncio.run(harness.machine.on_foreground()) is True
    assert asyncio.run(harness.machine.on_foreground()) is False
    assert seen == [date(2025, 1, 7)]


def test_watcher_resets_day(harness, clock):
    seen = []
    harness.machine.subscribe(lambda state, result: seen.append(state.local_date))

    async def scenario():
        watcher = asyncio.create_task(harness.machine.watch_rollover(0.01))
        clock.advance(days=1)
        for _ in range(200):
            if seen:
                break
            await asyncio.sleep(0.01)
        watcher.cancel()

    asyncio.run(scenario())

    assert seen == [date(2025, 1, 7)]


def test_listener_errors_do_not_break_punch(harness):
    def broken(state, result):
        raise RuntimeError("ui gone")

    harness.machine.subscribe(broken)

    assert harness.punch(PunchKind.IN).success is True


def test_unsubscribe(harness):
    seen = []
    unsubscribe = harness.machine.subscribe(lambda state, result: seen.append(result))
    unsubscribe()

    harness.punch(PunchKind.IN)

    assert seen == []


def test_restart_restores_today_from_ledger(clock):
    storage = InMemoryKeyValueStore()
    first = Harness(clock, storage=storage)
    first.punch(PunchKind.IN)

    restarted = Harness(clock, storage=storage)

    assert restarted.machine.state.phase == PunchPhase.PUNCHED_IN
    assert restarted.punch(PunchKind.IN).failure == PunchFailure.INVALID_TRANSITION


def test_restart_ignores_rejected_attempts(clock):
    storage = InMemoryKeyValueStore()
    first = Harness(clock, storage=storage)
    first.api.error = NetworkUnavailableError()
    first.punch(PunchKind.IN)

    restarted = Harness(clock, storage=storage)

    assert restarted.machine.state.phase == PunchPhase.NOT_PUNCHED


def test_reconcile_adopts_server_state(harness):
    harness.api.remote = RemotePunchStatus(
        phase=PunchPhase.PUNCHED_IN,
        local_date=date(2025, 1, 6),
        last_punch_at_utc=datetime(2025, 1, 6, 3, 50, tzinfo=timezone.utc),
    )

    state = asyncio.run(harness.machine.reconcile())

    assert state.phase == PunchPhase.PUNCHED_IN
    assert state.punch_in_at_utc == datetime(2025, 1, 6, 3, 50, tzinfo=timezone.utc)


def test_reconcile_never_moves_backwards(harness):
    harness.punch(PunchKind.IN)
    harness.api.remote = RemotePunchStatus(phase=PunchPhase.NOT_PUNCHED, local_date=date(2025, 1, 6))

    assert asyncio.run(harness.machine.reconcile()).phase == PunchPhase.PUNCHED_IN


def test_reconcile_is_restored_after_restart(clock):
    storage = InMemoryKeyValueStore()
    first = Harness(clock, storage=storage)
    first.api.remote = RemotePunchStatus(
        phase=PunchPhase.PUNCHED_OUT,
        local_date=date(2025, 1, 6),
        last_punch_at_utc=datetime(2025, 1, 6, 13, 5, tzinfo=timezone.utc),
    )

    asyncio.run(first.machine.reconcile())
    restarted = Harness(clock, storage=storage)

    state = restarted.machine.state
    assert state.phase == PunchPhase.PUNCHED_OUT
    assert state.punch_out_at_utc == datetime(2025, 1, 6, 13, 5, tzinfo=timezone.utc)
    out = restarted.ledger.latest_for(date(2025, 1, 6), PunchKind.OUT)
    assert out.event.outcome == PunchOutcome.ACCEPTED
    assert out.sync_status == SyncStatus.SYNCED


def test_reconcile_settles_pending_punch(harness, clock):
    harness.api.error = NetworkUnavailableError()
    harness.punch(PunchKind.IN)
    waiting = harness.ledger.pending()
    assert [e.kind for e in waiting] == [PunchKind.IN]

    harness.api.remote = RemotePunchStatus(
        phase=PunchPhase.PUNCHED_IN,
        local_date=date(2025, 1, 6),
        last_punch_at_utc=datetime(2025, 1, 6, 4, 0, 2, tzinfo=timezone.utc),
    )
    asyncio.run(harness.machine.reconcile())

    assert harness.ledger.pending() == []
    latest = harness.ledger.latest_for(date(2025, 1, 6), PunchKind.IN)
    assert latest.event.outcome == PunchOutcome.ACCEPTED
    assert latest.event.requested_at_utc == waiting[0].event.requested_at_utc
    statuses = [(e.event.outcome, e.sync_status) for e in harness.ledger.all()]
    assert statuses == [
        (PunchOutcome.REJECTED, SyncStatus.PENDING_SYNC),
        (PunchOutcome.REJECTED, SyncStatus.SYNCED),
        (PunchOutcome.ACCEPTED, SyncStatus.SYNCED),
    ]


class SlowStore(InMemoryKeyValueStore):
    delay = 0.0

    def set(self, key, value):
        time.sleep(self.delay)
        super().set(key, value)


def test_slow_storage_does_not_stall_the_loop(clock):
    storage = SlowStore()
    harness = Harness(clock, storage=storage)
    storage.delay = 0.2

    async def scenario():
        gaps = []
        done = asyncio.Event()

        async def ticker():
            last = time.monotonic()
            while not done.is_set():
                await asyncio.sleep(0.01)
                now = time.monotonic()
                gaps.append(now - last)
                last = now

        task = asyncio.create_task(ticker())
        result = await harness.machine.request_punch(PunchKind.IN)
        done.set()
        await task
        return result, max(gaps)

    result, worst_gap = asyncio.run(scenario())

    assert result.success is True
    assert worst_gap < 0.15

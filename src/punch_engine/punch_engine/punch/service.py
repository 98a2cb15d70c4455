from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, Iterator, Optional

from ..attendance.api import RemoteAttendanceApi
from ..attendance.model import RemotePunchStatus
from ..common.datetime_utils import civil_date, parse_iso_date, utc_now
from ..core.constants import MAX_ROLLOVER_CHECK_SECONDS
from ..core.enums import PunchFailure, PunchKind, PunchOutcome, PunchPhase, SyncStatus
from ..core.exceptions import (
    AlreadyInProgressError,
    InvalidTransitionError,
    NetworkUnavailableError,
    OutOfRangeError,
    PunchError,
)
from ..geofence.location import LocationService
from ..geofence.model import OfficeAnchor
from ..geofence.validator import GeofenceValidator
from ..ledger.model import LedgerEntry, PunchEvent
from ..ledger.repository import OfflineAttendanceLedger
from ..shifts.classifier import ShiftWindowClassifier
from ..shifts.model import ShiftWindow
from ..storage.repository import KeyValueStore
from .model import DayAttendanceState, PunchResult

logger = logging.getLogger(__name__)

LAST_SEEN_DATE_KEY = "punch:last_seen_date"

Listener = Callable[[DayAttendanceState, Optional[PunchResult]], None]

_PHASE_ORDER = (PunchPhase.NOT_PUNCHED, PunchPhase.PUNCHED_IN, PunchPhase.PUNCHED_OUT)
_KIND_INTO_PHASE = {PunchPhase.PUNCHED_IN: PunchKind.IN, PunchPhase.PUNCHED_OUT: PunchKind.OUT}


class PunchStateMachine:
    """Owns today's attendance state and runs punch attempts.

    Flow per attempt: in-flight guard, transition guard, location, geofence,
    advisory classification, submit, ledger, state update, notify.
    At most one attempt runs at a time; a concurrent one is rejected, never
    queued. The day resets to NOT_PUNCHED when the civil date changes.
    """

    def __init__(
        self,
        *,
        location: LocationService,
        geofence: GeofenceValidator,
        anchor: OfficeAnchor,
        classifier: ShiftWindowClassifier,
        window: ShiftWindow,
        attendance_api: RemoteAttendanceApi,
        ledger: OfflineAttendanceLedger,
        storage: KeyValueStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._location = location
        self._geofence = geofence
        self._anchor = anchor
        self._classifier = classifier
        self._window = window
        self._api = attendance_api
        self._ledger = ledger
        self._storage = storage
        self._clock = clock

        self._guard = threading.Lock()
        self._listeners: list[Listener] = []
        self._last_result: Optional[PunchResult] = None

        today = self._today()
        previous = self._load_last_seen()
        if previous is not None and previous != today:
            logger.info("Civil date moved from %s to %s while stopped", previous, today)
        self._state = self._restore_day(today)
        self._save_last_seen(today)

    @property
    def state(self) -> DayAttendanceState:
        self.check_rollover()
        return self._state

    @property
    def last_result(self) -> Optional[PunchResult]:
        return self._last_result

    @property
    def window(self) -> ShiftWindow:
        return self._window

    def now(self) -> datetime:
        return self._clock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change callback; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def request_punch(self, kind: PunchKind) -> PunchResult:
        with self._in_flight() as acquired:
            if not acquired:
                error = AlreadyInProgressError()
                logger.info("Ignoring %s punch: another punch is in progress", kind.value)
                return PunchResult.failed(kind, error.kind, error.message)
            return await self._run_punch(kind)

    def check_rollover(self) -> bool:
        """Reset the day state when the civil date changed. Returns True on reset.

        Reads the ledger inline; coroutines use `sync_day` instead.
        """
        today = self._today()
        if today == self._state.local_date:
            return False
        restored = self._restore_day(today)
        self._save_last_seen(today)
        return self._start_day(restored)

    async def sync_day(self) -> bool:
        """`check_rollover` with the storage work on a worker thread."""
        today = self._today()
        if today == self._state.local_date:
            return False
        restored = await asyncio.to_thread(self._restore_day, today)
        await asyncio.to_thread(self._save_last_seen, today)
        return self._start_day(restored)

    async def on_foreground(self) -> bool:
        return await self.sync_day()

    async def watch_rollover(self, interval_seconds: float = MAX_ROLLOVER_CHECK_SECONDS) -> None:
        """Check for a date change at least once a minute until cancelled."""
        interval = min(float(interval_seconds), MAX_ROLLOVER_CHECK_SECONDS)
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sync_day()
            except Exception:
                logger.exception("Rollover check failed")

    async def reconcile(self) -> DayAttendanceState:
        """Adopt the server's view of today when it is ahead of the local one.

        Adopted punches are written to the ledger as Accepted so a restart
        restores them; a pending entry for the same punch is marked synced.
        """
        with self._in_flight() as acquired:
            if not acquired:
                return self._state
            await self.sync_day()
            remote = await self._api.fetch_punch_status()
            day = self._state

            if remote.local_date is not None and remote.local_date != day.local_date:
                logger.info("Server reports day %s, local day is %s; not reconciling", remote.local_date, day.local_date)
                return day
            if _PHASE_ORDER.index(remote.phase) <= _PHASE_ORDER.index(day.phase):
                return day

            adopted = await asyncio.to_thread(self._adopt_remote, day, remote)
            if self._state.local_date != day.local_date:
                return self._state
            self._state = adopted
            logger.info("Local day state reconciled to %s", adopted.phase.value)
            self._notify()
            return self._state

    def _adopt_remote(self, day: DayAttendanceState, remote: RemotePunchStatus) -> DayAttendanceState:
        waiting = {e.kind: e for e in self._ledger.pending() if e.local_date == day.local_date}
        start = _PHASE_ORDER.index(day.phase) + 1
        stop = _PHASE_ORDER.index(remote.phase) + 1
        state = day
        for phase in _PHASE_ORDER[start:stop]:
            kind = _KIND_INTO_PHASE[phase]
            pending = waiting.get(kind)
            if pending is not None:
                self._ledger.mark_synced(pending)

            confirmed_at = remote.last_punch_at_utc if phase == remote.phase else None
            if confirmed_at is None and pending is not None:
                confirmed_at = pending.event.requested_at_utc
            event = PunchEvent(
                kind=kind,
                requested_at_utc=pending.event.requested_at_utc if pending else self._clock(),
                location=pending.event.location if pending else None,
            ).accepted(confirmed_at_utc=confirmed_at, message="Reconciled with the server")
            self._ledger.append(
                LedgerEntry(
                    local_date=day.local_date,
                    event=event,
                    sync_status=SyncStatus.SYNCED,
                    recorded_at_utc=self._clock(),
                )
            )
            if kind == PunchKind.IN:
                state = state.punched_in(confirmed_at)
            else:
                state = state.punched_out(confirmed_at)
        return state

    async def _run_punch(self, kind: PunchKind) -> PunchResult:
        await self.sync_day()
        day = self._state
        if not day.allows(kind):
            error = InvalidTransitionError(self._transition_message(day.phase, kind))
            result = PunchResult.failed(kind, error.kind, error.message)
            self._publish(result)
            return result

        requested_at = self._clock()
        event = PunchEvent(kind=kind, requested_at_utc=requested_at)
        distance: Optional[float] = None
        try:
            location = await self._location.acquire()
            event = event.with_location(location)

            geofence = self._geofence.evaluate(location, self._anchor)
            distance = geofence.distance_meters
            if not geofence.within_radius:
                raise OutOfRangeError(geofence.distance_meters, self._anchor.radius_meters)

            classification = self._classifier.classify(requested_at, self._window, kind)
            event = event.with_classification(classification)

            confirmation = await self._api.submit_punch(kind, requested_at, location)
        except PunchError as exc:
            return await self._reject(day.local_date, event, exc, distance)
        except Exception:
            logger.exception("Unexpected failure during %s punch", kind.value)
            rejected = event.rejected(PunchFailure.UNEXPECTED, PunchError.default_message)
            await self._record(day.local_date, rejected, SyncStatus.SYNCED)
            self._publish(PunchResult.failed(kind, PunchFailure.UNEXPECTED, PunchError.default_message, event=rejected))
            raise

        confirmed_at = confirmation.confirmed_at_utc or requested_at
        accepted = event.accepted(
            confirmed_at_utc=confirmed_at,
            classification=classification,
            message=confirmation.message,
        )
        await self._record(day.local_date, accepted, SyncStatus.SYNCED)

        if self._state.local_date == day.local_date:
            if kind == PunchKind.IN:
                self._state = self._state.punched_in(confirmed_at)
            else:
                self._state = self._state.punched_out(confirmed_at)
        else:
            logger.warning(
                "%s punch for %s completed after the day rolled over; %s stays %s",
                kind.value,
                day.local_date,
                self._state.local_date,
                self._state.phase.value,
            )

        result = PunchResult.accepted(
            accepted,
            message=confirmation.message or f"Punch {kind.value} recorded successfully",
            warning=classification.warning(self._window),
        )
        self._publish(result)
        return result

    async def _reject(
        self,
        local_date: date,
        event: PunchEvent,
        error: PunchError,
        distance: Optional[float],
    ) -> PunchResult:
        logger.warning("%s punch rejected (%s): %s", event.kind.value, error.kind.value, error.message)
        rejected = event.rejected(error.kind, error.message)
        # A submission that never reached the server is kept for a later sync.
        sync = SyncStatus.PENDING_SYNC if isinstance(error, NetworkUnavailableError) else SyncStatus.SYNCED
        await self._record(local_date, rejected, sync)

        result = PunchResult.failed(
            event.kind,
            error.kind,
            error.message,
            event=rejected,
            distance_meters=distance if isinstance(error, OutOfRangeError) else None,
        )
        self._publish(result)
        return result

    async def _record(self, local_date: date, event: PunchEvent, sync: SyncStatus) -> None:
        entry = LedgerEntry(local_date=local_date, event=event, sync_status=sync, recorded_at_utc=self._clock())
        # Never block the engine loop on storage.
        await asyncio.to_thread(self._ledger.append, entry)

    def _publish(self, result: PunchResult) -> None:
        self._last_result = result
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state, self._last_result)
            except Exception:
                logger.exception("Punch state listener raised")

    @contextmanager
    def _in_flight(self) -> Iterator[bool]:
        acquired = self._guard.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._guard.release()

    def _today(self) -> date:
        return civil_date(self._clock(), self._window.timezone_offset_minutes)

    def _start_day(self, restored: DayAttendanceState) -> bool:
        if restored.local_date == self._state.local_date:
            return False
        logger.info("Civil date changed %s -> %s; starting a new attendance day", self._state.local_date, restored.local_date)
        self._state = restored
        self._last_result = None
        self._notify()
        return True

    def _restore_day(self, local_date: date) -> DayAttendanceState:
        state = DayAttendanceState.fresh(local_date)
        punch_in = self._ledger.latest_for(local_date, PunchKind.IN)
        if punch_in is not None and punch_in.event.outcome == PunchOutcome.ACCEPTED:
            state = state.punched_in(punch_in.event.confirmed_at_utc)
            punch_out = self._ledger.latest_for(local_date, PunchKind.OUT)
            if punch_out is not None and punch_out.event.outcome == PunchOutcome.ACCEPTED:
                state = state.punched_out(punch_out.event.confirmed_at_utc)
        if state.phase != PunchPhase.NOT_PUNCHED:
            logger.info("Restored %s for %s from the ledger", state.phase.value, local_date)
        return state

    def _load_last_seen(self) -> Optional[date]:
        try:
            raw = self._storage.get(LAST_SEEN_DATE_KEY)
            return parse_iso_date(raw) if raw else None
        except Exception:
            logger.exception("Could not read the last seen date")
            return None

    def _save_last_seen(self, local_date: date) -> None:
        try:
            self._storage.set(LAST_SEEN_DATE_KEY, local_date.isoformat())
        except Exception:
            logger.exception("Could not persist the last seen date")

    @staticmethod
    def _transition_message(phase: PunchPhase, kind: PunchKind) -> str:
        if kind == PunchKind.IN:
            if phase == PunchPhase.PUNCHED_IN:
                return "You have already punched in today."
            return "You have already completed today's attendance."
        if phase == PunchPhase.NOT_PUNCHED:
            return "Please punch in before punching out."
        return "You have already punched out today."

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

import httpx

from .attendance.api import RemoteAttendanceApi
from .common.datetime_utils import utc_now
from .common.event_loop import EngineLoop
from .core.constants import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_LOCATION_MAX_AGE_SECONDS,
    DEFAULT_LOCATION_TIMEOUT_SECONDS,
)
from .core.exceptions import ValidationError
from .database.connection import DBConfig, DatabaseConnection
from .geofence.location import LocationProvider, LocationService, ReportedLocationProvider
from .geofence.model import OfficeAnchor
from .geofence.validator import GeofenceValidator
from .ledger.repository import OfflineAttendanceLedger
from .punch.service import PunchStateMachine
from .session.client import ResilientSessionClient, create_http_client
from .session.store import SessionStore
from .shifts.classifier import ShiftWindowClassifier
from .shifts.model import ShiftWindow
from .storage.memory_store import InMemoryKeyValueStore
from .storage.mysql_store import MySQLKeyValueStore
from .storage.repository import KeyValueStore


@dataclass(frozen=True)
class Container:
    storage: KeyValueStore
    sessions: SessionStore
    session_client: ResilientSessionClient
    attendance_api: RemoteAttendanceApi
    ledger: OfflineAttendanceLedger
    location_provider: LocationProvider
    punch_machine: PunchStateMachine
    engine: EngineLoop


def build_storage(settings: Any) -> KeyValueStore:
    backend = str(getattr(settings, "STORAGE_BACKEND", "memory")).lower()
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "mysql":
        conn = DatabaseConnection.get_instance(DBConfig.from_settings(getattr(settings, "DB_CONFIG")))
        return MySQLKeyValueStore(conn, namespace=str(getattr(settings, "STORAGE_NAMESPACE", "default")))
    raise ValidationError(f"Unknown STORAGE_BACKEND: {backend!r}")


def build_container(
    settings: Any,
    *,
    storage: Optional[KeyValueStore] = None,
    location_provider: Optional[LocationProvider] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], datetime] = utc_now,
) -> Container:
    storage = storage if storage is not None else build_storage(settings)
    window = ShiftWindow.from_settings(getattr(settings, "SHIFT_WINDOW"))
    anchor = OfficeAnchor.from_settings(getattr(settings, "OFFICE_ANCHOR"))

    if location_provider is None:
        location_provider = ReportedLocationProvider(
            max_age_seconds=float(getattr(settings, "LOCATION_MAX_AGE_SECONDS", DEFAULT_LOCATION_MAX_AGE_SECONDS)),
            clock=clock,
        )

    sessions = SessionStore(storage)
    http = create_http_client(
        str(getattr(settings, "API_BASE_URL")),
        timeout=float(getattr(settings, "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS)),
        transport=http_transport,
    )
    session_client = ResilientSessionClient(http, sessions)
    attendance_api = RemoteAttendanceApi(
        session_client,
        timezone_offset_minutes=window.timezone_offset_minutes,
        is_away=bool(getattr(settings, "PUNCH_IS_AWAY", False)),
    )
    ledger = OfflineAttendanceLedger(storage, clock=clock)

    punch_machine = PunchStateMachine(
        location=LocationService(
            location_provider,
            timeout_seconds=float(getattr(settings, "LOCATION_TIMEOUT_SECONDS", DEFAULT_LOCATION_TIMEOUT_SECONDS)),
        ),
        geofence=GeofenceValidator(),
        anchor=anchor,
        classifier=ShiftWindowClassifier(),
        window=window,
        attendance_api=attendance_api,
        ledger=ledger,
        storage=storage,
        clock=clock,
    )

    return Container(
        storage=storage,
        sessions=sessions,
        session_client=session_client,
        attendance_api=attendance_api,
        ledger=ledger,
        location_provider=location_provider,
        punch_machine=punch_machine,
        engine=EngineLoop(),
    )

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import utc_now
from ..core.enums import PunchKind, SyncStatus
from ..storage.repository import KeyValueStore
from .model import LedgerEntry

logger = logging.getLogger(__name__)

LOG_PREFIX = "ledger:log:"
LATEST_PREFIX = "ledger:latest:"
SEQUENCE_KEY = "ledger:seq"


def _log_key(seq: int) -> str:
    # Zero-padded so lexical key order is append order.
    return f"{LOG_PREFIX}{seq:012d}"


def _latest_key(local_date: date, kind: PunchKind) -> str:
    return f"{LATEST_PREFIX}{local_date.isoformat()}:{kind.value}"


class OfflineAttendanceLedger:
    """Append-only local record of punch attempts.

    Reads are latest-wins per (date, kind); `all()` returns the full log in
    append order. Appends never raise: a storage failure is logged and
    reported through `on_failure`. Appends are serialised so callers may use
    worker threads.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        on_failure: Optional[Callable[[LedgerEntry, Exception], None]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._storage = storage
        self._on_failure = on_failure
        self._clock = clock
        self._append_lock = threading.Lock()

    def append(self, entry: LedgerEntry) -> None:
        try:
            with self._append_lock:
                seq = self._next_sequence()
                self._storage.set(_log_key(seq), json.dumps(entry.to_dict()))
                self._storage.set(_latest_key(entry.local_date, entry.kind), str(seq))
        except Exception as exc:
            logger.exception("Failed to persist ledger entry for %s %s", entry.local_date, entry.kind.value)
            if self._on_failure is not None:
                try:
                    self._on_failure(entry, exc)
                except Exception:
                    logger.exception("Ledger failure callback raised")

    def latest_for(self, local_date: date, kind: PunchKind) -> Optional[LedgerEntry]:
        raw_seq = self._storage.get(_latest_key(local_date, kind))
        if raw_seq is None:
            return None
        return self._load(int(raw_seq))

    def all(self) -> list[LedgerEntry]:
        entries: list[LedgerEntry] = []
        for key in self._storage.keys(LOG_PREFIX):
            raw = self._storage.get(key)
            if raw is not None:
                entries.append(LedgerEntry.from_dict(json.loads(raw)))
        return entries

    def for_date(self, local_date: date) -> list[LedgerEntry]:
        return [e for e in self.all() if e.local_date == local_date]

    def pending(self) -> list[LedgerEntry]:
        """Latest entries per (date, kind) still waiting to reach the server."""
        out: list[LedgerEntry] = []
        for key in self._storage.keys(LATEST_PREFIX):
            raw_seq = self._storage.get(key)
            if raw_seq is None:
                continue
            entry = self._load(int(raw_seq))
            if entry is not None and entry.sync_status == SyncStatus.PENDING_SYNC:
                out.append(entry)
        return out

    def mark_synced(self, entry: LedgerEntry) -> LedgerEntry:
        """Supersede a pending entry by appending its synced copy.

        Called when reconciliation finds the punch on the server; also usable
        by external sync tools.
        """
        synced = replace(entry, sync_status=SyncStatus.SYNCED, recorded_at_utc=self._clock())
        self.append(synced)
        return synced

    def _load(self, seq: int) -> Optional[LedgerEntry]:
        raw = self._storage.get(_log_key(seq))
        if raw is None:
            return None
        return LedgerEntry.from_dict(json.loads(raw))

    def _next_sequence(self) -> int:
        current = self._storage.get(SEQUENCE_KEY)
        seq = int(current) + 1 if current else 1
        self._storage.set(SEQUENCE_KEY, str(seq))
        return seq

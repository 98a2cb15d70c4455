"""Export the local punch ledger to CSV.

Usage: python scripts/export_ledger.py [--pending]
"""

from __future__ import annotations

import argparse
import csv
import importlib
import sys
from datetime import datetime
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.punch_engine.punch_engine.container import build_storage
from src.punch_engine.punch_engine.ledger.repository import OfflineAttendanceLedger

COLUMNS = [
    "local_date",
    "kind",
    "outcome",
    "reason",
    "message",
    "requested_at_utc",
    "confirmed_at_utc",
    "status",
    "offset_minutes",
    "latitude",
    "longitude",
    "sync_status",
]


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--pending", action="store_true", help="only entries still waiting for sync")
    args = parser.parse_args()

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    ledger = OfflineAttendanceLedger(build_storage(settings))
    entries = ledger.pending() if args.pending else ledger.all()

    out_dir = REPO_ROOT / "exports"
    out_dir.mkdir(parents=True, exist_ok=True)
    out_file = out_dir / f"punch_ledger_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"

    with out_file.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=COLUMNS)
        writer.writeheader()
        for entry in entries:
            event = entry.event
            writer.writerow(
                {
                    "local_date": entry.local_date.isoformat(),
                    "kind": event.kind.value,
                    "outcome": event.outcome.value,
                    "reason": event.reason.value if event.reason else "",
                    "message": event.message or "",
                    "requested_at_utc": event.requested_at_utc.isoformat(),
                    "confirmed_at_utc": event.confirmed_at_utc.isoformat() if event.confirmed_at_utc else "",
                    "status": event.classification.status.value if event.classification else "",
                    "offset_minutes": event.classification.offset_minutes if event.classification else "",
                    "latitude": event.location.latitude if event.location else "",
                    "longitude": event.location.longitude if event.location else "",
                    "sync_status": entry.sync_status.value,
                }
            )

    print(f"OK: {len(entries)} ledger entries exported to {out_file}")


if __name__ == "__main__":
    main()

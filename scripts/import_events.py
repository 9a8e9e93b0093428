"""
CSV backfill of historical analytics events

Usage:
    python scripts/import_events.py <path-to-csv>

CSV Format:
    event_id,occurred_at,action,context,user_id,artist_id,song_id,value,metadata_json

Only event_id, occurred_at and action are required; empty cells become NULL.
Rows are validated like API input (known action, typed metadata) and
rejected rows are reported and skipped.
Rows whose event_id already exists are skipped.
"""

import sys
import csv
import json
from pathlib import Path
from datetime import datetime
from uuid import UUID

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import sessionmaker
from sqlalchemy.dialects.postgresql import insert as pg_insert
from app.core.clock import as_utc
from app.core.database import sync_engine
from app.models.event import Event
from app.schemas.actions import EventContext
from app.schemas.event import EventCreate

REQUIRED_HEADERS = {"event_id", "occurred_at", "action"}
OPTIONAL_REFS = ("user_id", "artist_id", "song_id")


def parse_row(row: dict) -> dict:
    """Validate one CSV row the way the ingest API does. Raises ValueError on bad rows."""
    metadata = {}
    if (row.get("metadata_json") or "").strip():
        metadata = json.loads(row["metadata_json"])
    if not isinstance(metadata, dict):
        raise ValueError("metadata_json must be a JSON object")

    value = (row.get("value") or "").strip()
    event = EventCreate.model_validate({
        "action": row["action"].strip(),
        "context": (row.get("context") or "").strip() or EventContext.UNKNOWN.value,
        **{ref: (row.get(ref) or "").strip() or None for ref in OPTIONAL_REFS},
        "value": value or None,
        "metadata": metadata,
    })

    return {
        "event_id": UUID(row["event_id"]),
        "occurred_at": as_utc(datetime.fromisoformat(row["occurred_at"].replace("Z", "+00:00"))),
        "action": event.action.value,
        "context": event.context.value,
        **{ref: getattr(event, ref) for ref in OPTIONAL_REFS},
        "value": event.value,
        "properties": event.metadata,
    }


def flush(session, batch: list) -> int:
    """Insert a batch, skipping ids that are already stored. Returns rows inserted."""
    stmt = pg_insert(Event).values(batch).on_conflict_do_nothing(index_elements=["event_id"])
    result = session.execute(stmt)
    session.commit()
    return result.rowcount if result.rowcount >= 0 else len(batch)


def import_csv(file_path: str, batch_size: int = 1000):
    """
    Import events from CSV file

    Args:
        file_path: Path to CSV file
        batch_size: Number of events to process per batch
    """
    file_path = Path(file_path)

    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        sys.exit(1)

    print(f"Starting import from: {file_path}")

    Session = sessionmaker(bind=sync_engine)

    total_processed = 0
    total_inserted = 0
    total_rejected = 0

    with Session() as session, open(file_path, "r", encoding="utf-8") as f:
        reader = csv.DictReader(f)

        if not REQUIRED_HEADERS.issubset(reader.fieldnames or []):
            print(f"Error: CSV must have headers: {REQUIRED_HEADERS}")
            print(f"Found headers: {reader.fieldnames}")
            sys.exit(1)

        batch = []

        for i, row in enumerate(reader, 1):
            try:
                batch.append(parse_row(row))
            except (ValueError, KeyError, json.JSONDecodeError) as e:
                total_rejected += 1
                print(f"Error on row {i}: {e}")
                continue

            if len(batch) >= batch_size:
                total_inserted += flush(session, batch)
                total_processed += len(batch)
                print(f"Processed {total_processed} events | Inserted: {total_inserted}")
                batch = []

        if batch:
            total_inserted += flush(session, batch)
            total_processed += len(batch)

    print("\n" + "=" * 50)
    print("Import completed!")
    print(f"Total processed: {total_processed}")
    print(f"Total inserted: {total_inserted}")
    print(f"Total duplicates: {total_processed - total_inserted}")
    print(f"Total rejected: {total_rejected}")
    print("=" * 50)


def main():
    if len(sys.argv) != 2:
        print("Usage: python scripts/import_events.py <path-to-csv>")
        sys.exit(1)

    import_csv(sys.argv[1])


if __name__ == "__main__":
    main()

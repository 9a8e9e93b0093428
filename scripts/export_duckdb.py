"""
Snapshot the event log into a DuckDB file for offline analysis

Usage:
    python scripts/export_duckdb.py [--days N]

Rebuilds the `events` table in settings.duckdb_path from the primary
database. With --days only the last N days are exported.
"""
import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
import pandas as pd
import structlog

from app.core.clock import utcnow, window_start
from app.core.config import settings
from app.core.database import get_duckdb_connection, sync_engine
from app.models.event import Event

logger = structlog.get_logger()

COLUMNS = [
    "event_id", "occurred_at", "action", "context", "user_id", "artist_id",
    "song_id", "merch_id", "order_id", "nft_id", "value", "properties",
]


def load_events(days: int | None = None) -> pd.DataFrame:
    stmt = select(*(getattr(Event, column) for column in COLUMNS))
    if days is not None:
        stmt = stmt.where(Event.occurred_at >= window_start(utcnow(), days))

    with sync_engine.connect() as conn:
        df = pd.DataFrame(conn.execute(stmt).fetchall(), columns=COLUMNS)

    if not df.empty:
        df["event_id"] = df["event_id"].astype(str)
        # DuckDB gets metadata as a JSON string column
        df["properties"] = df["properties"].apply(
            lambda x: json.dumps(x) if isinstance(x, (dict, list)) else str(x)
        )
    return df


def export(days: int | None = None, path: str | None = None) -> int:
    df = load_events(days)
    duckdb_path = Path(path or settings.duckdb_path)
    duckdb_path.parent.mkdir(parents=True, exist_ok=True)

    con = get_duckdb_connection(str(duckdb_path))
    try:
        con.register("events_df", df)
        con.execute("CREATE OR REPLACE TABLE events AS SELECT * FROM events_df")
    finally:
        con.close()

    logger.info("duckdb_export_success", rows=len(df), path=str(duckdb_path))
    return len(df)


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--days", type=int, default=None, help="Only export the last N days")
    args = parser.parse_args()

    rows = export(args.days)
    print(f"Exported {rows} events to {settings.duckdb_path}")


if __name__ == "__main__":
    main()

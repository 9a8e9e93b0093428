"""
Session expiry sweep - closes sessions abandoned without an explicit end

Usage:
    python scripts/close_idle_sessions.py [--idle-minutes N] [--loop SECONDS]

Run it from cron, or with --loop to keep sweeping on an interval.
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.services.sessions import SessionTracker

logger = structlog.get_logger()


async def sweep(idle_minutes: int) -> int:
    async with AsyncSessionLocal() as db:
        return await SessionTracker(db).close_idle_sessions(idle_minutes)


async def run(idle_minutes: int, loop_seconds: int | None):
    logger.info("session_sweeper_started", idle_minutes=idle_minutes, loop_seconds=loop_seconds)

    while True:
        closed = await sweep(idle_minutes)
        print(f"Closed {closed} idle sessions")

        if not loop_seconds:
            return
        await asyncio.sleep(loop_seconds)


def main():
    parser = argparse.ArgumentParser(description="Close idle analytics sessions")
    parser.add_argument("--idle-minutes", type=int, default=settings.session_idle_timeout_minutes)
    parser.add_argument("--loop", type=int, default=None, help="Repeat every N seconds")
    args = parser.parse_args()

    try:
        asyncio.run(run(args.idle_minutes, args.loop))
    except KeyboardInterrupt:
        logger.info("session_sweeper_stopped")
        print("\nSweeper stopped.")


if __name__ == "__main__":
    main()

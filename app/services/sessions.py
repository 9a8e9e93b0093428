from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import timedelta
from typing import Optional
import random
import string
from app.core.clock import Clock, utcnow
from app.core.config import settings
from app.models.session import UserSession
from app.schemas.event import DeviceInfo, Location
from app.schemas.session import SessionUpdate
import structlog

logger = structlog.get_logger()

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id(user_id: str, now_ms: int) -> str:
    """Timestamp plus a random base36 suffix; unique, not a secret."""
    suffix = "".join(random.choices(_TOKEN_ALPHABET, k=9))
    return f"session_{user_id}_{now_ms}_{suffix}"


class SessionTracker:
    """Lifecycle of user sessions: start, update, end and idle expiry.

    Writes follow the telemetry policy: errors are logged and swallowed.
    """

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except Exception as e:
            logger.warning("rollback_failed", error=str(e))

    async def get(self, session_id: str) -> Optional[UserSession]:
        result = await self.db.execute(
            select(UserSession).where(UserSession.session_id == session_id)
        )
        return result.scalar_one_or_none()

    async def start(
            self,
            user_id: str,
            device_info: Optional[DeviceInfo] = None,
            location: Optional[Location] = None
    ) -> Optional[str]:
        """Open a session and return its token, or None if it could not be stored."""
        now = self.clock()
        session_id = generate_session_id(user_id, int(now.timestamp() * 1000))
        try:
            self.db.add(UserSession(
                session_id=session_id,
                user_id=user_id,
                start_time=now,
                last_activity=now,
                page_views=1,
                actions=["session_start"],
                device_info=device_info.model_dump(exclude_none=True) if device_info else None,
                location=location.model_dump(exclude_none=True) if location else None,
                is_active=True,
            ))
            await self.db.commit()

            logger.info("session_started", session_id=session_id, user_id=user_id)
            return session_id

        except Exception as e:
            await self._rollback()
            logger.error("session_start_failed", user_id=user_id, error=str(e))
            return None

    async def update(self, session_id: str, changes: SessionUpdate) -> bool:
        """Merge page views, actions and device/location into a session."""
        try:
            session = await self.get(session_id)
            if session is None:
                logger.warning("session_update_unknown", session_id=session_id)
                return False

            session.page_views = (session.page_views or 0) + changes.page_views_increment
            if changes.actions:
                session.actions = [*(session.actions or []), *changes.actions]
            if changes.device_info is not None:
                session.device_info = changes.device_info.model_dump(exclude_none=True)
            if changes.location is not None:
                session.location = changes.location.model_dump(exclude_none=True)
            session.last_activity = self.clock()

            await self.db.commit()
            return True

        except Exception as e:
            await self._rollback()
            logger.error("session_update_failed", session_id=session_id, error=str(e))
            return False

    async def end(self, session_id: str) -> bool:
        """Close a session. Calling it again re-stamps the end time."""
        try:
            session = await self.get(session_id)
            if session is None:
                logger.warning("session_end_unknown", session_id=session_id)
                return False

            now = self.clock()
            self._close(session, now)
            await self.db.commit()

            logger.info("session_ended", session_id=session_id, duration=session.duration)
            return True

        except Exception as e:
            await self._rollback()
            logger.error("session_end_failed", session_id=session_id, error=str(e))
            return False

    async def close_idle_sessions(self, idle_minutes: Optional[int] = None) -> int:
        """Close active sessions with no activity inside the idle timeout.

        The end time of a swept session is its last recorded activity.
        """
        idle_minutes = idle_minutes or settings.session_idle_timeout_minutes
        cutoff = self.clock() - timedelta(minutes=idle_minutes)
        try:
            result = await self.db.execute(
                select(UserSession).where(
                    UserSession.is_active.is_(True),
                    UserSession.last_activity < cutoff,
                )
            )
            stale = result.scalars().all()
            for session in stale:
                self._close(session, session.last_activity)
            await self.db.commit()

            logger.info("idle_sessions_closed", count=len(stale), idle_minutes=idle_minutes)
            return len(stale)

        except Exception as e:
            await self._rollback()
            logger.error("idle_session_sweep_failed", error=str(e))
            return 0

    @staticmethod
    def _close(session: UserSession, end_time) -> None:
        session.is_active = False
        session.end_time = end_time
        session.duration = max(0.0, (end_time - session.start_time).total_seconds())

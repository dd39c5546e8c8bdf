"""
Challenge lifecycle helpers and the expired-challenge janitor.

The ceremony services reject expired challenges at verification time
through ``is_valid_challenge``. The janitor only bounds the amount of stale
challenge (and session) state left in the database; skipping it has no
correctness impact.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from swordfighters_admin.models.admin import Admin
from swordfighters_admin.repositories.admin import AdminRepository
from swordfighters_admin.repositories.session import SessionRepository

logger = logging.getLogger(__name__)


def is_valid_challenge(admin: Optional[Admin], now: Optional[datetime] = None) -> bool:
    """
    Whether the admin holds a usable challenge.

    Both the value and the expiry must be present and the expiry must be
    strictly in the future.
    """
    if admin is None:
        return False
    pending = admin.challenge
    return pending is not None and pending.is_valid(now)


class ChallengeJanitor:
    """
    Periodic sweep clearing expired challenges and sessions.

    Runs as a background asyncio task owned by the application lifespan,
    decoupled from request handling. Each sweep uses its own database
    session; failures are logged and the loop keeps going.

    Example:
        janitor = ChallengeJanitor(async_session_maker, interval_seconds=300)
        janitor.start()
        ...
        await janitor.stop()
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        interval_seconds: float = 300.0
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def sweep(self, now: Optional[datetime] = None) -> int:
        """
        Clear every expired challenge in one bulk update.

        Returns:
            Number of admins whose challenge was cleared
        """
        async with self.session_factory() as session:
            cleared = await AdminRepository(session).clear_expired_challenges(now)
            await session.commit()

        if cleared:
            logger.info("Cleared expired challenges", extra={"count": cleared})
        return cleared

    async def purge_sessions(self, now: Optional[datetime] = None) -> int:
        """
        Delete expired server-side sessions.

        Returns:
            Number of sessions deleted
        """
        async with self.session_factory() as session:
            purged = await SessionRepository(session).purge_expired(now)
            await session.commit()

        if purged:
            logger.info("Purged expired sessions", extra={"count": purged})
        return purged

    async def run_once(self) -> None:
        """One best-effort pass; never raises (except cancellation)."""
        try:
            await self.sweep()
            await self.purge_sessions()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Janitor sweep failed", exc_info=True)

    async def run_forever(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="challenge-janitor")
            logger.info(
                "Challenge janitor started",
                extra={"interval_seconds": self.interval_seconds}
            )
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Challenge janitor stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

"""
Polling scheduler for near-real-time challenge views.

Each caller owns its scheduler; there is no shared module-level loop. A
failed fetch is logged and the next wait is doubled once, after which the
normal cadence resumes. The loop only ends through stop().
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional

from app.core.config import settings
from app.models.challenge import ChallengeDashboard
from app.services.challenge_service import ChallengeService, challenge_service
from app.services.logger import logger


class PollingScheduler:
    """Run fetch() every interval seconds and hand each result to callback."""

    def __init__(
        self,
        fetch: Callable[[], Awaitable[Any]],
        callback: Callable[[Any], Any],
        interval: Optional[float] = None,
        name: str = "poller",
    ):
        self.fetch = fetch
        self.callback = callback
        self.interval = float(interval if interval is not None else settings.POLL_INTERVAL_SECONDS)
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop. No-op if already running."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def tick(self) -> bool:
        """One fetch/callback round. Returns False when it failed."""
        try:
            result = await self.fetch()
            outcome = self.callback(result)
            if inspect.isawaitable(outcome):
                await outcome
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"{self.name} poll failed, backing off",
                {"error": str(e), "interval": self.interval},
            )
            return False

    async def _run(self) -> None:
        while True:
            ok = await self.tick()
            await asyncio.sleep(self.interval if ok else self.interval * 2)


class ChallengeWatcher:
    """
    Keeps the latest dashboard of one challenge, rebuilt on every tick.

    Each snapshot replaces the previous one wholesale.
    """

    def __init__(
        self,
        challenge_id: str,
        service: Optional[ChallengeService] = None,
        interval: Optional[float] = None,
        on_update: Optional[Callable[[ChallengeDashboard], Any]] = None,
    ):
        self.challenge_id = challenge_id
        self.service = service or challenge_service
        self.on_update = on_update
        self.snapshot: Optional[ChallengeDashboard] = None
        self.scheduler = PollingScheduler(
            self._fetch,
            self._apply,
            interval=interval,
            name=f"challenge-watcher:{challenge_id}",
        )

    async def _fetch(self) -> ChallengeDashboard:
        def build() -> ChallengeDashboard:
            challenge = self.service.get_challenge_or_404(self.challenge_id)
            return self.service.build_dashboard(challenge)

        # Storage calls are blocking
        return await asyncio.to_thread(build)

    async def _apply(self, dashboard: ChallengeDashboard) -> None:
        self.snapshot = dashboard
        if self.on_update is not None:
            outcome = self.on_update(dashboard)
            if inspect.isawaitable(outcome):
                await outcome

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running

    def start(self) -> None:
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

"""
Periodic netwatch polling
Runs one cancellable asyncio task per router profile; each tick syncs the
router into the device store and records the outcome.
"""

import asyncio
from typing import Callable, Dict, Optional

import structlog
from sqlalchemy.orm import Session

from netwatch_monitor.collectors.snapshot_source import SnapshotSource
from netwatch_monitor.core.config import settings
from netwatch_monitor.core.exceptions import NotFoundError, RouterConnectionError
from netwatch_monitor.database.connection import SessionLocal, utcnow
from netwatch_monitor.schemas.netwatch import PollStatus
from netwatch_monitor.services.summary import summarize
from netwatch_monitor.services.sync import sync_netwatch

logger = structlog.get_logger(__name__)

class NetwatchPoller:
    """Owns the periodic refresh of router profiles"""

    def __init__(self, source: SnapshotSource,
                 session_factory: Callable[[], Session] = SessionLocal,
                 interval: Optional[float] = None,
                 timeout: Optional[float] = None):
        self.source = source
        self.session_factory = session_factory
        self.interval = interval if interval is not None else settings.poll_interval
        self.timeout = timeout if timeout is not None else settings.snapshot_timeout
        self.statuses: Dict[int, PollStatus] = {}
        self._tasks: Dict[int, asyncio.Task] = {}

    def is_running(self, router_profile_id: int) -> bool:
        task = self._tasks.get(router_profile_id)
        return task is not None and not task.done()

    def start(self, router_profile_id: int) -> asyncio.Task:
        """Start polling a profile; a running poller is left as is"""
        if self.is_running(router_profile_id):
            return self._tasks[router_profile_id]

        task = asyncio.create_task(self._poll_loop(router_profile_id))
        self._tasks[router_profile_id] = task
        logger.info("Started netwatch poller", router_profile_id=router_profile_id, interval=self.interval)
        return task

    async def stop(self, router_profile_id: int):
        task = self._tasks.pop(router_profile_id, None)
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped netwatch poller", router_profile_id=router_profile_id)

    async def stop_all(self):
        for router_profile_id in list(self._tasks):
            await self.stop(router_profile_id)

    async def poll_once(self, router_profile_id: int) -> PollStatus:
        """Run one sync and record its outcome.

        A failed fetch keeps the last known summary and marks the status as
        ``refresh_failed``. NotFoundError propagates.
        """
        previous = self.statuses.get(router_profile_id)
        attempted_at = utcnow()
        db = self.session_factory()
        try:
            try:
                result = await sync_netwatch(db, router_profile_id, self.source, self.timeout)
            except RouterConnectionError as e:
                logger.warning("Netwatch refresh failed, serving last known data",
                               router_profile_id=router_profile_id,
                               kind=e.kind,
                               retryable=e.retryable,
                               error=e.message)
                status = PollStatus(
                    router_profile_id=router_profile_id,
                    refresh_failed=True,
                    message=e.message,
                    error_kind=e.kind,
                    last_attempt=attempted_at,
                    last_success=previous.last_success if previous else None,
                    summary=summarize(db, router_profile_id)
                )
            else:
                status = PollStatus(
                    router_profile_id=router_profile_id,
                    last_attempt=attempted_at,
                    last_success=attempted_at,
                    summary=result.summary
                )
        finally:
            db.close()

        self.statuses[router_profile_id] = status
        return status

    async def _poll_loop(self, router_profile_id: int):
        """Main polling loop"""
        while True:
            try:
                await self.poll_once(router_profile_id)
            except NotFoundError:
                logger.warning("Router profile no longer exists, stopping poller",
                               router_profile_id=router_profile_id)
                self._tasks.pop(router_profile_id, None)
                return
            except Exception as e:
                logger.error("Error in netwatch poll loop", router_profile_id=router_profile_id, error=str(e))
            await asyncio.sleep(self.interval)

"""
Fetch a netwatch snapshot from a router and fold it into the device store
"""

import asyncio
from typing import List, Optional

from sqlalchemy.orm import Session
import structlog

from netwatch_monitor.collectors.snapshot_source import SnapshotSource
from netwatch_monitor.core.config import settings
from netwatch_monitor.core.exceptions import RouterConnectionError
from netwatch_monitor.schemas.netwatch import SnapshotDevice, SyncResult, DeviceResponse
from netwatch_monitor.schemas.router_profile import RouterConnection, ConnectionResult
from netwatch_monitor.services.profile_store import get_profile
from netwatch_monitor.services.reconciler import reconcile
from netwatch_monitor.services.summary import summarize

logger = structlog.get_logger(__name__)


async def _bounded(coro, connection: RouterConnection, timeout: float):
    try:
        return await asyncio.wait_for(coro, timeout)
    except asyncio.TimeoutError:
        raise RouterConnectionError(
            RouterConnectionError.TIMEOUT,
            f"Router did not answer within {timeout:g}s",
            address=connection.address
        )


async def fetch_snapshot(source: SnapshotSource, connection: RouterConnection,
                         timeout: Optional[float] = None) -> List[SnapshotDevice]:
    """Snapshot from ``source``; a timeout is raised as a retryable RouterConnectionError"""
    timeout = timeout if timeout is not None else settings.snapshot_timeout
    return await _bounded(source.fetch_snapshot(connection), connection, timeout)


async def sync_netwatch(db: Session, router_profile_id: int, source: SnapshotSource,
                        timeout: Optional[float] = None) -> SyncResult:
    """Fetch, reconcile and summarize one router profile.

    A failed fetch propagates before anything is written.
    """
    profile = get_profile(db, router_profile_id)
    connection = RouterConnection(
        address=profile.address,
        username=profile.username,
        password=profile.password
    )

    try:
        snapshot = await fetch_snapshot(source, connection, timeout)
    except RouterConnectionError as e:
        logger.warning("Netwatch fetch failed",
                       router_profile_id=router_profile_id,
                       kind=e.kind,
                       error=e.message)
        raise

    devices = reconcile(db, router_profile_id, snapshot)
    summary = summarize(db, router_profile_id)

    return SyncResult(
        devices=[DeviceResponse.model_validate(device) for device in devices],
        summary=summary
    )


async def check_connection(source: SnapshotSource, connection: RouterConnection,
                           timeout: Optional[float] = None) -> ConnectionResult:
    """Try to read the router identity; failures are reported, not raised"""
    timeout = timeout if timeout is not None else settings.snapshot_timeout
    try:
        identity = await _bounded(source.fetch_identity(connection), connection, timeout)
    except RouterConnectionError as e:
        logger.info("Router connection test failed", address=connection.address, kind=e.kind)
        return ConnectionResult(success=False, message=e.message, kind=e.kind)

    logger.info("Router connection test succeeded", address=connection.address, identity=identity)
    return ConnectionResult(
        success=True,
        message="Successfully connected to router",
        router_identity=identity
    )

"""
Netwatch sync, device listing and summary endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import structlog

from netwatch_monitor.api.dependencies import get_poller, get_snapshot_source
from netwatch_monitor.collectors.netwatch_poller import NetwatchPoller
from netwatch_monitor.collectors.snapshot_source import SnapshotSource
from netwatch_monitor.database.connection import get_database
from netwatch_monitor.schemas.netwatch import (
    DeviceResponse, NetwatchSummary, PollStatus, SnapshotDevice,
    StatusChangeResponse, StatusFilter, SyncResult
)
from netwatch_monitor.services import device_store
from netwatch_monitor.services.device_query import list_devices
from netwatch_monitor.services.profile_store import get_profile
from netwatch_monitor.services.reconciler import reconcile
from netwatch_monitor.services.summary import summarize
from netwatch_monitor.services.sync import sync_netwatch

logger = structlog.get_logger(__name__)
router = APIRouter()

@router.post("/router-profiles/{router_profile_id}/sync", response_model=SyncResult)
async def sync_router(
    router_profile_id: int,
    db: Session = Depends(get_database),
    source: SnapshotSource = Depends(get_snapshot_source)
):
    """Fetch the router's netwatch list and reconcile it"""
    return await sync_netwatch(db, router_profile_id, source)

@router.post("/router-profiles/{router_profile_id}/snapshot", response_model=SyncResult)
async def push_snapshot(
    router_profile_id: int,
    snapshot: List[SnapshotDevice],
    db: Session = Depends(get_database)
):
    """Reconcile a snapshot supplied by the caller"""
    devices = reconcile(db, router_profile_id, snapshot)
    return SyncResult(
        devices=[DeviceResponse.model_validate(device) for device in devices],
        summary=summarize(db, router_profile_id)
    )

@router.get("/router-profiles/{router_profile_id}/devices", response_model=List[DeviceResponse])
async def get_netwatch_devices(
    router_profile_id: int,
    search: Optional[str] = Query(None),
    status: StatusFilter = Query("all"),
    db: Session = Depends(get_database)
):
    """List netwatch devices filtered by search term and status"""
    return list_devices(db, router_profile_id, search=search, status=status)

@router.get("/router-profiles/{router_profile_id}/summary", response_model=NetwatchSummary)
async def get_netwatch_summary(router_profile_id: int, db: Session = Depends(get_database)):
    """Up/down counts for a router profile"""
    return summarize(db, router_profile_id)

@router.get("/devices/{device_id}", response_model=DeviceResponse)
async def get_device(device_id: int, db: Session = Depends(get_database)):
    """Get a specific netwatch device"""
    return device_store.get_device(db, device_id)

@router.get("/devices/{device_id}/history", response_model=List[StatusChangeResponse])
async def get_device_history(device_id: int, db: Session = Depends(get_database)):
    """Status periods of a device, newest first"""
    return device_store.get_status_history(db, device_id)

@router.post("/router-profiles/{router_profile_id}/polling", response_model=PollStatus)
async def start_polling(
    router_profile_id: int,
    db: Session = Depends(get_database),
    poller: NetwatchPoller = Depends(get_poller)
):
    """Start periodic refresh of a router profile"""
    get_profile(db, router_profile_id)
    poller.start(router_profile_id)
    return poller.statuses.get(router_profile_id) or PollStatus(router_profile_id=router_profile_id)

@router.delete("/router-profiles/{router_profile_id}/polling")
async def stop_polling(router_profile_id: int, poller: NetwatchPoller = Depends(get_poller)):
    """Stop periodic refresh of a router profile"""
    await poller.stop(router_profile_id)
    return {"success": True}

@router.get("/router-profiles/{router_profile_id}/poll-status", response_model=PollStatus)
async def get_poll_status(router_profile_id: int, poller: NetwatchPoller = Depends(get_poller)):
    """Latest poller outcome for a router profile"""
    status = poller.statuses.get(router_profile_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Router profile has not been polled yet")
    return status

"""
Router profile management endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
import structlog

from netwatch_monitor.api.dependencies import get_snapshot_source
from netwatch_monitor.collectors.snapshot_source import SnapshotSource
from netwatch_monitor.database.connection import get_database
from netwatch_monitor.schemas.router_profile import (
    RouterProfileCreate, RouterProfilePatch, RouterProfileResponse,
    RouterConnection, ConnectionResult
)
from netwatch_monitor.services import profile_store
from netwatch_monitor.services.sync import check_connection

logger = structlog.get_logger(__name__)
router = APIRouter()

@router.post("/router-profiles", response_model=RouterProfileResponse, status_code=201)
async def create_router_profile(profile_data: RouterProfileCreate, db: Session = Depends(get_database)):
    """Create a router profile"""
    return profile_store.create_profile(db, profile_data)

@router.get("/router-profiles", response_model=List[RouterProfileResponse])
async def get_router_profiles(db: Session = Depends(get_database)):
    """List router profiles, most recently updated first"""
    return profile_store.list_profiles(db)

@router.get("/router-profiles/{router_profile_id}", response_model=RouterProfileResponse)
async def get_router_profile(router_profile_id: int, db: Session = Depends(get_database)):
    """Get a specific router profile"""
    return profile_store.get_profile(db, router_profile_id)

@router.patch("/router-profiles/{router_profile_id}", response_model=RouterProfileResponse)
async def update_router_profile(
    router_profile_id: int,
    patch: RouterProfilePatch,
    db: Session = Depends(get_database)
):
    """Update the supplied fields of a router profile"""
    return profile_store.update_profile(db, router_profile_id, patch)

@router.delete("/router-profiles/{router_profile_id}")
async def delete_router_profile(router_profile_id: int, db: Session = Depends(get_database)):
    """Delete a router profile that has no netwatch devices"""
    profile_store.delete_profile(db, router_profile_id)
    return {"success": True, "message": f"Router profile with ID {router_profile_id} has been deleted"}

@router.post("/router-connection/test", response_model=ConnectionResult)
async def test_router_connection(
    connection: RouterConnection,
    source: SnapshotSource = Depends(get_snapshot_source)
):
    """Check that a router answers with the given credentials"""
    return await check_connection(source, connection)

"""
Netwatch Pydantic schemas
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime, timezone

NetwatchStatus = Literal["up", "down"]
StatusFilter = Literal["all", "up", "down"]

def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

class SnapshotDevice(BaseModel):
    """One monitored host as reported by a router"""
    native_id: str = Field(..., min_length=1, description="Router-assigned identifier")
    address: str = Field(..., min_length=1, description="Monitored host address")
    label: Optional[str] = Field(None, description="Router comment for the host")
    status: NetwatchStatus
    since: datetime = Field(..., description="When the status last changed")
    timeout: Optional[str] = None
    interval: Optional[str] = None

    @field_validator("label", "timeout", "interval", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("since")
    @classmethod
    def normalize_since(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

class DeviceResponse(BaseModel):
    """Schema for netwatch device response"""
    id: int
    router_profile_id: int
    native_id: str
    address: str
    label: Optional[str] = None
    status: NetwatchStatus
    since: datetime
    timeout: Optional[str] = None
    interval: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class StatusChangeResponse(BaseModel):
    """Schema for one status period"""
    id: int
    device_id: int
    status: NetwatchStatus
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None

    class Config:
        from_attributes = True

class NetwatchSummary(BaseModel):
    """Aggregate counts for one router profile"""
    total_devices: int
    up_devices: int
    down_devices: int
    last_updated: datetime

class SyncResult(BaseModel):
    """Devices touched by one sync plus the profile summary afterwards"""
    devices: List[DeviceResponse]
    summary: NetwatchSummary

class PollStatus(BaseModel):
    """Latest outcome of the background poller for one profile"""
    router_profile_id: int
    refresh_failed: bool = False
    message: Optional[str] = None
    error_kind: Optional[str] = None
    last_attempt: Optional[datetime] = None
    last_success: Optional[datetime] = None
    summary: Optional[NetwatchSummary] = None

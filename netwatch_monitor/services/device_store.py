"""
Netwatch device storage keyed by (router profile, native id)
"""

from typing import Dict, Any, List, Optional
from datetime import datetime

from sqlalchemy import desc
from sqlalchemy.orm import Session, Query

from netwatch_monitor.core.exceptions import NotFoundError
from netwatch_monitor.models.netwatch_device import NetwatchDevice
from netwatch_monitor.models.status_change import NetwatchStatusChange
from netwatch_monitor.schemas.netwatch import SnapshotDevice


def get_by_native_id(db: Session, router_profile_id: int, native_id: str) -> Optional[NetwatchDevice]:
    return db.query(NetwatchDevice).filter(
        NetwatchDevice.router_profile_id == router_profile_id,
        NetwatchDevice.native_id == native_id
    ).first()


def get_device(db: Session, device_id: int) -> NetwatchDevice:
    device = db.get(NetwatchDevice, device_id)
    if device is None:
        raise NotFoundError("Netwatch device", device_id)
    return device


def insert_device(db: Session, router_profile_id: int, entry: SnapshotDevice,
                  now: datetime) -> NetwatchDevice:
    device = NetwatchDevice(
        router_profile_id=router_profile_id,
        native_id=entry.native_id,
        address=entry.address,
        label=entry.label,
        status=entry.status,
        since=entry.since,
        timeout=entry.timeout,
        interval=entry.interval,
        created_at=now,
        updated_at=now
    )
    db.add(device)
    # autoflush is off; later lookups in the same pass must see this row
    db.flush()
    return device


def update_device(db: Session, device_id: int, values: Dict[str, Any],
                  now: datetime) -> NetwatchDevice:
    device = get_device(db, device_id)
    for field, value in values.items():
        setattr(device, field, value)
    device.updated_at = now
    db.flush()
    return device


def scan_devices(db: Session, router_profile_id: int) -> Query:
    """Query over every device of a profile, ordered by surrogate id"""
    return db.query(NetwatchDevice).filter(
        NetwatchDevice.router_profile_id == router_profile_id
    ).order_by(NetwatchDevice.id)


def open_status_period(db: Session, device_id: int) -> Optional[NetwatchStatusChange]:
    return db.query(NetwatchStatusChange).filter(
        NetwatchStatusChange.device_id == device_id,
        NetwatchStatusChange.ended_at.is_(None)
    ).first()


def get_status_history(db: Session, device_id: int) -> List[NetwatchStatusChange]:
    """Status periods of a device, newest first"""
    get_device(db, device_id)
    return db.query(NetwatchStatusChange).filter(
        NetwatchStatusChange.device_id == device_id
    ).order_by(desc(NetwatchStatusChange.started_at), desc(NetwatchStatusChange.id)).all()

"""
Aggregate counts over the stored devices of a router profile
"""

from typing import Optional
from datetime import datetime

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from netwatch_monitor.database.connection import utcnow
from netwatch_monitor.models.netwatch_device import NetwatchDevice, STATUS_UP, STATUS_DOWN
from netwatch_monitor.schemas.netwatch import NetwatchSummary
from netwatch_monitor.services.profile_store import get_profile


def summarize(db: Session, router_profile_id: int, now: Optional[datetime] = None) -> NetwatchSummary:
    """Re-scan the profile's devices; never served from a cache"""
    get_profile(db, router_profile_id)

    total, up, down, last_updated = db.query(
        func.count(NetwatchDevice.id),
        func.sum(case((NetwatchDevice.status == STATUS_UP, 1), else_=0)),
        func.sum(case((NetwatchDevice.status == STATUS_DOWN, 1), else_=0)),
        func.max(NetwatchDevice.updated_at)
    ).filter(NetwatchDevice.router_profile_id == router_profile_id).one()

    return NetwatchSummary(
        total_devices=total or 0,
        up_devices=int(up or 0),
        down_devices=int(down or 0),
        last_updated=last_updated or now or utcnow()
    )

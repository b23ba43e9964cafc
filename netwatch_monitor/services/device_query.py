"""
Read-side filtering over stored netwatch devices
"""

from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from netwatch_monitor.core.exceptions import ValidationError
from netwatch_monitor.models.netwatch_device import NetwatchDevice, STATUSES
from netwatch_monitor.services.device_store import scan_devices

STATUS_ALL = "all"


def _like_pattern(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def list_devices(db: Session, router_profile_id: int, search: Optional[str] = None,
                 status: Optional[str] = STATUS_ALL) -> List[NetwatchDevice]:
    """Devices of a profile matching ``search`` (address or label) AND ``status``"""
    if status and status != STATUS_ALL and status not in STATUSES:
        raise ValidationError(f"Unknown status filter: {status}")

    query = scan_devices(db, router_profile_id)

    if status and status != STATUS_ALL:
        query = query.filter(NetwatchDevice.status == status)
    if search:
        pattern = _like_pattern(search)
        # LOWER(NULL) LIKE ... is never true, so unlabeled devices only match on address
        query = query.filter(or_(
            func.lower(NetwatchDevice.address).like(pattern, escape="\\"),
            func.lower(NetwatchDevice.label).like(pattern, escape="\\")
        ))

    return query.all()

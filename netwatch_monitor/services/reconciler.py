"""
Device-status reconciliation

Merges a freshly fetched netwatch snapshot into the stored devices of one
router profile. Devices are matched on the router-assigned native id, never on
the local surrogate id, so identity survives across polls.
"""

import threading
from typing import Dict, Iterable, List, Mapping, Optional, Union
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import structlog

from netwatch_monitor.core.exceptions import ValidationError
from netwatch_monitor.database.connection import utcnow
from netwatch_monitor.models.netwatch_device import NetwatchDevice
from netwatch_monitor.models.status_change import NetwatchStatusChange
from netwatch_monitor.schemas.netwatch import SnapshotDevice
from netwatch_monitor.services import device_store
from netwatch_monitor.services.profile_store import get_profile

logger = structlog.get_logger(__name__)

SnapshotEntry = Union[SnapshotDevice, Mapping]

_profile_locks: Dict[int, threading.Lock] = {}
_profile_locks_guard = threading.Lock()


def profile_lock(router_profile_id: int) -> threading.Lock:
    """Lock serialising reconciliation passes for one router profile"""
    with _profile_locks_guard:
        lock = _profile_locks.get(router_profile_id)
        if lock is None:
            lock = _profile_locks[router_profile_id] = threading.Lock()
        return lock


def validate_snapshot(snapshot: Iterable[SnapshotEntry]) -> List[SnapshotDevice]:
    entries = []
    for position, entry in enumerate(snapshot):
        if isinstance(entry, SnapshotDevice):
            entries.append(entry)
            continue
        try:
            entries.append(SnapshotDevice.model_validate(entry))
        except PydanticValidationError as e:
            raise ValidationError(f"Snapshot entry {position} is invalid: {e}") from e
    return entries


def reconcile(db: Session, router_profile_id: int, snapshot: Iterable[SnapshotEntry],
              now: Optional[datetime] = None) -> List[NetwatchDevice]:
    """Upsert every snapshot entry for ``router_profile_id``.

    Returns the created and updated devices, one per native id. Devices the
    snapshot does not mention are left as last seen. Raises NotFoundError
    before any write when the profile does not exist.
    """
    entries = validate_snapshot(snapshot)
    get_profile(db, router_profile_id)
    now = now or utcnow()

    with profile_lock(router_profile_id):
        try:
            reconciled = _apply_snapshot(db, router_profile_id, entries, now)
            db.commit()
        except IntegrityError:
            # Another process inserted one of our native ids first
            db.rollback()
            logger.warning("Concurrent insert detected, retrying reconciliation",
                           router_profile_id=router_profile_id)
            try:
                reconciled = _apply_snapshot(db, router_profile_id, entries, now)
                db.commit()
            except Exception:
                db.rollback()
                raise
        except Exception:
            db.rollback()
            raise

    devices = list(reconciled.values())
    logger.info("Netwatch snapshot reconciled",
                router_profile_id=router_profile_id,
                snapshot_size=len(entries),
                devices=len(devices))
    return devices


def _apply_snapshot(db: Session, router_profile_id: int, entries: List[SnapshotDevice],
                    now: datetime) -> Dict[str, NetwatchDevice]:
    reconciled: Dict[str, NetwatchDevice] = {}
    for entry in entries:
        existing = device_store.get_by_native_id(db, router_profile_id, entry.native_id)
        if existing is None:
            device = device_store.insert_device(db, router_profile_id, entry, now)
            _start_period(db, device.id, entry.status, entry.since)
            logger.info("Netwatch device discovered",
                        router_profile_id=router_profile_id,
                        native_id=entry.native_id,
                        address=entry.address,
                        status=entry.status)
        else:
            device = _update_existing(db, existing, entry, now)
        reconciled[entry.native_id] = device
    return reconciled


def _update_existing(db: Session, device: NetwatchDevice, entry: SnapshotDevice,
                     now: datetime) -> NetwatchDevice:
    values = {
        "address": entry.address,
        "label": entry.label,
        "timeout": entry.timeout,
        "interval": entry.interval,
    }

    old_status = device.status
    if old_status != entry.status:
        # since tracks the last status change, not the last poll
        changed_at = entry.since
        if changed_at < device.since:
            logger.warning("Status change reported before the previous one, keeping order",
                           router_profile_id=device.router_profile_id,
                           native_id=device.native_id,
                           reported_since=entry.since,
                           stored_since=device.since)
            changed_at = device.since
        changed_at = _end_period(db, device.id, changed_at)
        values["status"] = entry.status
        values["since"] = changed_at
        _start_period(db, device.id, entry.status, changed_at)
        logger.info("Netwatch status changed",
                    router_profile_id=device.router_profile_id,
                    native_id=device.native_id,
                    old_status=old_status,
                    new_status=entry.status)

    return device_store.update_device(db, device.id, values, now)


def _start_period(db: Session, device_id: int, status: str, started_at: datetime):
    db.add(NetwatchStatusChange(device_id=device_id, status=status, started_at=started_at))
    db.flush()


def _end_period(db: Session, device_id: int, ended_at: datetime) -> datetime:
    """Close the open period; returns the effective end, never before its start"""
    period = device_store.open_status_period(db, device_id)
    if period is None:
        return ended_at
    period.ended_at = max(ended_at, period.started_at)
    period.duration_seconds = int((period.ended_at - period.started_at).total_seconds())
    return period.ended_at

"""
Router profile storage
"""

from typing import List, Optional, Union, Dict, Any
from datetime import datetime

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy import desc, func
from sqlalchemy.orm import Session
import structlog

from netwatch_monitor.core.exceptions import NotFoundError, ConflictError, ValidationError
from netwatch_monitor.database.connection import utcnow
from netwatch_monitor.models.router_profile import RouterProfile
from netwatch_monitor.models.netwatch_device import NetwatchDevice
from netwatch_monitor.schemas.router_profile import RouterProfileCreate, RouterProfilePatch

logger = structlog.get_logger(__name__)


def coerce(schema, data: Union[BaseModel, Dict[str, Any]]):
    """Validate a mapping into ``schema``, raising the service ValidationError"""
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(str(e)) from e


def create_profile(db: Session, data: Union[RouterProfileCreate, Dict[str, Any]]) -> RouterProfile:
    data = coerce(RouterProfileCreate, data)
    now = utcnow()
    profile = RouterProfile(**data.model_dump(), created_at=now, updated_at=now)
    db.add(profile)
    db.commit()
    db.refresh(profile)

    logger.info("Router profile created", router_profile_id=profile.id, name=profile.name)
    return profile


def get_profile(db: Session, router_profile_id: int) -> RouterProfile:
    profile = db.get(RouterProfile, router_profile_id)
    if profile is None:
        raise NotFoundError("Router profile", router_profile_id)
    return profile


def list_profiles(db: Session) -> List[RouterProfile]:
    """All profiles, most recently updated first"""
    return (
        db.query(RouterProfile)
        .order_by(desc(RouterProfile.updated_at), desc(RouterProfile.id))
        .all()
    )


def update_profile(db: Session, router_profile_id: int,
                   patch: Union[RouterProfilePatch, Dict[str, Any]],
                   now: Optional[datetime] = None) -> RouterProfile:
    """Apply the supplied fields only; ``updated_at`` is always refreshed"""
    patch = coerce(RouterProfilePatch, patch)
    profile = get_profile(db, router_profile_id)

    changes = patch.changes()
    for field, value in changes.items():
        setattr(profile, field, value)
    profile.updated_at = now or utcnow()

    db.commit()
    db.refresh(profile)

    logger.info("Router profile updated", router_profile_id=profile.id, fields=sorted(changes))
    return profile


def delete_profile(db: Session, router_profile_id: int) -> None:
    profile = get_profile(db, router_profile_id)

    device_count = db.query(func.count(NetwatchDevice.id)).filter(
        NetwatchDevice.router_profile_id == router_profile_id
    ).scalar() or 0
    if device_count:
        raise ConflictError(router_profile_id, device_count)

    db.delete(profile)
    db.commit()

    logger.info("Router profile deleted", router_profile_id=router_profile_id)

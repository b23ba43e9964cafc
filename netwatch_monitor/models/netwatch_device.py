"""
Netwatch device model for hosts monitored by a router
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from netwatch_monitor.database.connection import Base, utcnow

STATUS_UP = "up"
STATUS_DOWN = "down"
STATUSES = (STATUS_UP, STATUS_DOWN)

class NetwatchDevice(Base):
    """A monitored host, keyed by (router_profile_id, native_id)"""

    __tablename__ = "netwatch_devices"
    __table_args__ = (
        UniqueConstraint("router_profile_id", "native_id", name="uq_netwatch_devices_profile_native_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    router_profile_id = Column(Integer, ForeignKey("router_profiles.id"), nullable=False, index=True)
    native_id = Column(String(64), nullable=False)  # router-assigned, e.g. "*1"
    address = Column(String(255), nullable=False)
    label = Column(String(255))
    status = Column(String(8), nullable=False)  # up, down
    since = Column(DateTime, nullable=False)  # last status change
    timeout = Column(String(32))
    interval = Column(String(32))
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    router_profile = relationship("RouterProfile", back_populates="devices")
    status_changes = relationship(
        "NetwatchStatusChange",
        back_populates="device",
        cascade="all, delete-orphan",
        order_by="NetwatchStatusChange.started_at",
    )

    def __repr__(self):
        return f"<NetwatchDevice(native_id={self.native_id}, address={self.address}, status={self.status})>"

"""
Status history for netwatch devices
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from netwatch_monitor.database.connection import Base, utcnow

class NetwatchStatusChange(Base):
    """One up or down period of a netwatch device"""

    __tablename__ = "netwatch_status_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(Integer, ForeignKey("netwatch_devices.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(8), nullable=False)
    started_at = Column(DateTime, nullable=False, index=True)
    ended_at = Column(DateTime)
    duration_seconds = Column(Integer)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationship
    device = relationship("NetwatchDevice", back_populates="status_changes")

    def __repr__(self):
        return f"<NetwatchStatusChange(device_id={self.device_id}, status={self.status}, duration={self.duration_seconds})>"

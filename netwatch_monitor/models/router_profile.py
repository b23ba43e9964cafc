"""
Router profile model for saved router connections
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from netwatch_monitor.database.connection import Base, utcnow

class RouterProfile(Base):
    """Saved connection credentials and metadata for one router"""

    __tablename__ = "router_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)
    username = Column(String(255), nullable=False)
    password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # Relationships
    devices = relationship("NetwatchDevice", back_populates="router_profile")

    def __repr__(self):
        return f"<RouterProfile(id={self.id}, name={self.name}, address={self.address})>"

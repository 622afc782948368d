# buildings.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship

from shared.core.database import Base


class Building(Base):
    __tablename__ = "buildings"
    __table_args__ = (
        Index("ix_building_manager", "manager_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # one building per address; concurrent provisioning relies on this
    address_id = Column(Uuid, ForeignKey("addresses.id"),
                        nullable=False, unique=True)
    name = Column(String(128), nullable=False)
    manager_id = Column(Uuid, nullable=False)
    created_at = Column(DateTime(timezone=True),
                        default=lambda: datetime.now(timezone.utc))

    address = relationship("Address", back_populates="building")
    flats = relationship("Flat", back_populates="building")

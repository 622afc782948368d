# flats.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from shared.core.database import Base


class Flat(Base):
    __tablename__ = "flats"
    __table_args__ = (
        UniqueConstraint("building_id", "unit_number",
                         name="uq_flat_building_unit"),
        Index("ix_flat_tenant", "tenant_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    building_id = Column(Uuid, ForeignKey(
        "buildings.id", ondelete="CASCADE"), nullable=False)
    unit_number = Column(String(32), nullable=False)
    tenant_id = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True),
                        default=lambda: datetime.now(timezone.utc))

    building = relationship("Building", back_populates="flats")

    @property
    def is_occupied(self) -> bool:
        return self.tenant_id is not None

# addresses.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship

from shared.core.database import Base
from shared.utils.enums import ApprovalStatus


class Address(Base):
    __tablename__ = "addresses"
    __table_args__ = (
        # Filter + Sort: WHERE status='pending' ORDER BY created_at DESC
        Index("ix_address_status_created", "status", "created_at"),
        Index("ix_address_created_by", "created_by"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    street_and_number = Column(String(200), nullable=False)
    settlement_id = Column(Uuid, ForeignKey(
        "settlements.id"), nullable=False)
    status = Column(
        Enum(ApprovalStatus, name="address_status_enum"),
        default=ApprovalStatus.pending,
        nullable=False
    )
    created_by = Column(Uuid, nullable=False)
    approved_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True),
                        default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True)

    settlement = relationship("Settlement")
    building = relationship("Building", back_populates="address", uselist=False)

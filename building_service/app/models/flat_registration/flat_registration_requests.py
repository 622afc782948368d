# flat_registration_requests.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Text, Uuid, text
from sqlalchemy.orm import relationship

from shared.core.database import Base
from shared.utils.enums import ApprovalStatus


class FlatRegistrationRequest(Base):
    __tablename__ = "flat_registration_requests"
    __table_args__ = (
        # at most one pending request per (flat, user)
        Index(
            "uq_flat_request_pending",
            "flat_id",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("ix_flat_request_user", "user_id"),
        Index("ix_flat_request_requested", "requested_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    flat_id = Column(Uuid, ForeignKey(
        "flats.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, nullable=False)
    status = Column(
        Enum(ApprovalStatus, name="flat_request_status_enum"),
        default=ApprovalStatus.pending,
        nullable=False
    )
    requested_at = Column(DateTime(timezone=True),
                          default=lambda: datetime.now(timezone.utc))
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Uuid, nullable=True)
    notes = Column(Text, nullable=True)

    flat = relationship("Flat")

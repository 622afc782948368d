from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel

from shared.utils.enums import ApprovalStatus


class FlatRequestCreate(BaseModel):
    flat_id: UUID


class FlatRequestReview(BaseModel):
    notes: Optional[str] = None


class FlatRequestOut(BaseModel):
    id: UUID
    flat_id: UUID
    user_id: UUID
    status: ApprovalStatus
    requested_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[UUID] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class FlatRequestDetail(FlatRequestOut):
    # read-time joins, placeholders when unresolved
    unit_number: str = "Unknown"
    building_name: str = "Unknown Building"
    address_full: str = "Unknown Address"
    user_name: Optional[str] = None
    user_email: str = "Unknown Email"

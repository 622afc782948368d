from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel

from shared.utils.enums import ApprovalStatus


class AddressCreate(BaseModel):
    # kept optional so missing fields surface as workflow validation errors
    street_and_number: Optional[str] = None
    settlement_id: Optional[UUID] = None


class AddressDecision(BaseModel):
    decision: Optional[str] = None  # approved | rejected


class AddressOut(BaseModel):
    id: UUID
    street_and_number: str
    settlement_id: UUID
    status: ApprovalStatus
    created_by: UUID
    created_at: Optional[datetime] = None
    approved_by: Optional[UUID] = None
    full_address: str
    creator_email: Optional[str] = None
    creator_name: Optional[str] = None

    class Config:
        from_attributes = True


class SettlementLookup(BaseModel):
    id: UUID
    name: str
    settlement_type: Optional[str] = None
    municipality_id: UUID

    class Config:
        from_attributes = True


class MunicipalityLookup(BaseModel):
    id: UUID
    name: str
    county_id: UUID

    class Config:
        from_attributes = True

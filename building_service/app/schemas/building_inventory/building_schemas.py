from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class BuildingOut(BaseModel):
    id: UUID
    address_id: UUID
    name: str
    manager_id: UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BuildingOverview(BuildingOut):
    full_address: str
    total_flats: int = 0
    occupied_flats: int = 0


class FlatCreate(BaseModel):
    unit_number: Optional[str] = None


class FlatOut(BaseModel):
    id: UUID
    building_id: UUID
    unit_number: str
    tenant_id: Optional[UUID] = None
    is_occupied: bool = False
    tenant_name: Optional[str] = None
    tenant_email: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MyFlatOut(FlatOut):
    building_name: str
    full_address: str


class BulkFlatCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    building_id: Optional[UUID] = Field(default=None, alias="buildingId")
    flat_numbers: Optional[List[str]] = Field(default=None, alias="flatNumbers")


class BulkFlatCreateResult(BaseModel):
    created: List[FlatOut]
    skipped_duplicates: List[str]

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_duplicates)


class BulkFlatCreateResponse(BaseModel):
    created_count: int
    skipped_count: int
    created: List[FlatOut]
    duplicates: List[str]

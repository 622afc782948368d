from pydantic import BaseModel


class RepairBuildingsResult(BaseModel):
    created_count: int


class CloseStuckRequestsResult(BaseModel):
    closed_count: int


class ManagerStats(BaseModel):
    total_buildings: int = 0
    total_flats: int = 0
    occupied_flats: int = 0
    vacant_flats: int = 0
    pending_requests: int = 0


class AdminStats(BaseModel):
    total_users: int = 0
    building_managers: int = 0
    pending_addresses: int = 0

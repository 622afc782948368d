from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    BUILDING_MANAGER = "building_manager"
    ADMIN = "admin"
    ACCOUNTANT = "accountant"


class ApprovalStatus(str, Enum):
    # shared by addresses and flat registration requests
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

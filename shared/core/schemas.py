from pydantic import BaseModel
from typing import Generic, Optional, TypeVar, Union
from uuid import UUID

from shared.utils.enums import UserRole

# Shared properties
T = TypeVar("T")


class UserToken(BaseModel):
    user_id: UUID
    role: UserRole
    email: Optional[str] = None
    name: Optional[str] = None
    exp: Optional[int] = None


class Lookup(BaseModel):
    id: Union[str, UUID]  # accepts both UUID and str
    name: str

    class Config:
        from_attributes = True


class JsonOutResult(BaseModel, Generic[T]):
    data: Optional[T] = None
    status: str
    status_code: str
    message: str

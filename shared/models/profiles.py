import uuid
from sqlalchemy import Column, DateTime, Enum, String, Uuid, func
from shared.core.database import Base
from shared.utils.enums import UserRole


class Profile(Base):
    __tablename__ = "profiles"

    # same id the identity provider issues
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(200), nullable=False)
    full_name = Column(String(200), nullable=True)
    phone = Column(String(20), nullable=True)
    role = Column(Enum(UserRole, name="user_role_enum", values_callable=lambda e: [m.value for m in e]),
                  nullable=False, default=UserRole.USER)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

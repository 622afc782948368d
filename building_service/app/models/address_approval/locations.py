# locations.py
import uuid
from sqlalchemy import Column, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship

from shared.core.database import Base


class County(Base):
    __tablename__ = "counties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(128), nullable=False)

    municipalities = relationship("Municipality", back_populates="county")


class Municipality(Base):
    __tablename__ = "municipalities"
    __table_args__ = (
        Index("ix_municipality_county", "county_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    county_id = Column(Uuid, ForeignKey("counties.id"), nullable=False)
    name = Column(String(128), nullable=False)

    county = relationship("County", back_populates="municipalities")
    settlements = relationship("Settlement", back_populates="municipality")


class Settlement(Base):
    __tablename__ = "settlements"
    __table_args__ = (
        Index("ix_settlement_municipality", "municipality_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    municipality_id = Column(Uuid, ForeignKey(
        "municipalities.id"), nullable=False)
    name = Column(String(128), nullable=False)
    settlement_type = Column(String(64), nullable=True)  # e.g. "village", "town"

    municipality = relationship("Municipality", back_populates="settlements")

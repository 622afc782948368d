from typing import List
from uuid import UUID
from sqlalchemy.orm import Session

from shared.core.schemas import Lookup, UserToken
from shared.utils.db_resilience import with_store_retry
from ...core.policy import Action, authorize
from ...models.address_approval.locations import County, Municipality, Settlement
from ...schemas.address_approval.address_schemas import MunicipalityLookup, SettlementLookup


@with_store_retry()
def county_lookup(db: Session, current_user: UserToken) -> List[Lookup]:
    authorize(Action.VIEW_LOCATIONS, current_user)
    counties = db.query(County).order_by(County.name).all()
    return [Lookup.model_validate(c) for c in counties]


@with_store_retry()
def municipality_lookup(db: Session, county_id: UUID, current_user: UserToken) -> List[MunicipalityLookup]:
    authorize(Action.VIEW_LOCATIONS, current_user)
    municipalities = (
        db.query(Municipality)
        .filter(Municipality.county_id == county_id)
        .order_by(Municipality.name)
        .all()
    )
    return [MunicipalityLookup.model_validate(m) for m in municipalities]


@with_store_retry()
def settlement_lookup(db: Session, municipality_id: UUID, current_user: UserToken) -> List[SettlementLookup]:
    authorize(Action.VIEW_LOCATIONS, current_user)
    settlements = (
        db.query(Settlement)
        .filter(Settlement.municipality_id == municipality_id)
        .order_by(Settlement.name)
        .all()
    )
    return [SettlementLookup.model_validate(s) for s in settlements]

from typing import Any, Optional


def compose_full_address(address: Any, settlement: Optional[Any] = None,
                         municipality: Optional[Any] = None, county: Optional[Any] = None) -> str:
    """
    Display label for an address: "street, settlement type, municipality, county".

    Pure read-side projection. Accepts any objects exposing ``street_and_number``
    / ``name`` / ``settlement_type`` attributes, so ORM rows and joined query
    rows both work. Without a settlement only the street is returned.
    """
    street = (getattr(address, "street_and_number", None) or "").strip()
    if settlement is None:
        return street

    settlement_label = " ".join(
        part.strip() for part in (settlement.name, getattr(settlement, "settlement_type", None))
        if part and part.strip()
    )
    parts = [street, settlement_label]
    if municipality is not None:
        parts.append(municipality.name)
    if county is not None:
        parts.append(county.name)

    return ", ".join(p for p in parts if p)


def label_for_address(address) -> str:
    """Compose the label from an ORM Address walking its location relationships."""
    settlement = address.settlement
    municipality = settlement.municipality if settlement else None
    county = municipality.county if municipality else None
    return compose_full_address(address, settlement, municipality, county)

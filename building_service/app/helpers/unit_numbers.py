import re
from typing import Iterable, List, Tuple, TypeVar

from shared.core.config import settings
from shared.utils.errors import ValidationError

T = TypeVar("T")

_LEADING_DIGITS = re.compile(r"^\d+")
_DIGIT_RUNS = re.compile(r"(\d+)")
_UNIT_NUMBER = re.compile(r"^[A-Za-z0-9]+$")


def _natural_key(value: str) -> Tuple:
    # re.split keeps str/int/str/... positions stable, so tuples compare safely
    return tuple(int(chunk) if chunk.isdigit() else chunk.casefold()
                 for chunk in _DIGIT_RUNS.split(value))


def unit_sort_key(unit_number: str) -> Tuple:
    """Numeric prefix first, then natural order, then raw string: 1 < 2 < 2A < 10."""
    match = _LEADING_DIGITS.match(unit_number)
    prefix = int(match.group(0)) if match else 0
    return (prefix, _natural_key(unit_number), unit_number)


def sort_by_unit_number(items: Iterable[T], attr: str = "unit_number") -> List[T]:
    return sorted(items, key=lambda item: unit_sort_key(getattr(item, attr)))


def normalize_unit_number(raw) -> str:
    """Trim and validate a unit number; raises ValidationError."""
    max_len = settings.MAX_FLAT_NUMBER_LENGTH
    value = str(raw).strip() if raw is not None else ""
    if not value:
        raise ValidationError("Flat number is required", field="unit_number", value=raw)
    if len(value) > max_len:
        raise ValidationError(
            f"Flat number must be 1-{max_len} characters", field="unit_number", value=raw)
    if not _UNIT_NUMBER.match(value):
        raise ValidationError(
            "Flat number may only contain letters and digits", field="unit_number", value=raw)
    return value

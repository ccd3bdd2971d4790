"""
Shared Value Objects used across the BOM engine.

Value Objects are immutable objects that describe characteristics of a thing.
Two value objects are equal if all their properties are equal.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Optional
import re

from .exceptions import InvalidNumberException, InvalidSkuException


# =============================================================================
# ENUMERATIONS
# =============================================================================

class PartType(str, Enum):
    """How a part is sourced."""

    PURCHASED = "PURCHASED"
    MANUFACTURED = "MANUFACTURED"
    PHANTOM = "PHANTOM"  # logical grouping, no cost of its own

    @property
    def has_own_cost(self) -> bool:
        """Phantom parts pass their children's cost through and add none."""
        return self is not PartType.PHANTOM


class LifecycleStatus(str, Enum):
    """Engineering lifecycle of a part. Moves forward only, unless overridden."""

    ACTIVE = "ACTIVE"
    PHASE_OUT = "PHASE_OUT"
    OBSOLETE = "OBSOLETE"
    DISCONTINUED = "DISCONTINUED"

    @property
    def rank(self) -> int:
        return _LIFECYCLE_ORDER.index(self)

    @property
    def is_retired(self) -> bool:
        """Retired parts may not be newly added to a BOM."""
        return self in (LifecycleStatus.OBSOLETE, LifecycleStatus.DISCONTINUED)

    def is_forward_to(self, target: LifecycleStatus) -> bool:
        return target.rank > self.rank

    def forward_transitions(self) -> list[LifecycleStatus]:
        return [s for s in _LIFECYCLE_ORDER if s.rank > self.rank]


_LIFECYCLE_ORDER = [
    LifecycleStatus.ACTIVE,
    LifecycleStatus.PHASE_OUT,
    LifecycleStatus.OBSOLETE,
    LifecycleStatus.DISCONTINUED,
]


# =============================================================================
# VALUE OBJECTS
# =============================================================================

SKU_PATTERN = re.compile(r"^[A-Z0-9_-]+$")


@dataclass(frozen=True)
class Sku:
    """
    Human key of a part.

    Example: BRKT-100_A
    """

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not SKU_PATTERN.match(self.value):
            raise InvalidSkuException(self.value)
        if len(self.value) > 64:
            raise InvalidSkuException(self.value)

    def __str__(self) -> str:
        return self.value


# Scale of the stored numeric columns. Input that does not fit is
# rejected rather than rounded on its way to storage.
QUANTITY_DIGITS, QUANTITY_PLACES = 15, 6
AMOUNT_DIGITS, AMOUNT_PLACES = 18, 6
PERCENT_DIGITS, PERCENT_PLACES = 5, 2


def round_money(amount: Decimal, places: int) -> Decimal:
    """Round to the currency's minimum unit, half up."""
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def round_quantity(value: Decimal, precision: int) -> Decimal:
    """Round a quantity to a part's decimal precision, half up."""
    return value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)


def to_decimal(
    value: Optional[object],
    field: Optional[str] = None,
    max_digits: Optional[int] = None,
    places: Optional[int] = None,
) -> Optional[Decimal]:
    """
    Coerce user input to Decimal without passing through binary float.

    With ``max_digits``/``places`` the value must fit a
    ``numeric(max_digits, places)`` column exactly.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidNumberException(field, value)
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidNumberException(field, value) from None
    if not number.is_finite():
        raise InvalidNumberException(field, value, "must be finite")
    if places is not None and number != 0:
        exponent = number.normalize().as_tuple().exponent
        if -exponent > places:
            raise InvalidNumberException(field, value, f"has more than {places} decimal places")
        if max_digits is not None and number.adjusted() >= max_digits - places:
            raise InvalidNumberException(field, value, f"exceeds {max_digits - places} integer digits")
    return number


def to_quantity(value: Optional[object], field: str) -> Optional[Decimal]:
    return to_decimal(value, field, QUANTITY_DIGITS, QUANTITY_PLACES)


def to_amount(value: Optional[object], field: str) -> Optional[Decimal]:
    """Costs and conversion factors."""
    return to_decimal(value, field, AMOUNT_DIGITS, AMOUNT_PLACES)


def to_percent(value: Optional[object], field: str) -> Optional[Decimal]:
    return to_decimal(value, field, PERCENT_DIGITS, PERCENT_PLACES)

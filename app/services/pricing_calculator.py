"""
Weight and charge calculator for bookings.

Pure functions shared by the booking wizard (client side) and the booking service
(server side), so both arrive at identical totals from identical inputs.

Rules:
- volumetric weight = length * breadth * height * unit multiplier / 5000, taken from
  the FIRST dimension entry only (cm = 1, mm = 0.1, m = 100), rounded to 2 places
- chargeable weight = max(actual weight, volumetric weight)
- freight = chargeable weight * per-kg rate
- GST = 18% of freight when GST applies, else 0; grand total = freight + GST

Money is handled as Decimal and rendered as 2-decimal strings ("0.00").
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Mapping, Optional, Sequence


GST_RATE = Decimal("0.18")
VOLUMETRIC_DIVISOR = Decimal("5000")
TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")

UNIT_MULTIPLIERS = {
    "cm": Decimal("1"),
    "mm": Decimal("0.1"),
    "m": Decimal("100"),
}


def to_decimal(value: Any) -> Decimal:
    """Parse user input leniently; blanks and garbage count as zero."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not number.is_finite():
        return ZERO
    return number


def quantize(value: Any) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_amount(value: Any) -> str:
    """Canonical 2-decimal form of a money field, applied when the field loses focus."""
    return str(quantize(value))


def _dimension_value(dimension: Mapping[str, Any], key: str) -> Any:
    if isinstance(dimension, Mapping):
        return dimension.get(key)
    return getattr(dimension, key, None)


def entry_volumetric_weight(
    dimension: Mapping[str, Any],
    divisor: Decimal = VOLUMETRIC_DIVISOR,
) -> Decimal:
    """Volumetric weight of one dimension entry; 0 until all three sides are filled."""
    length = _dimension_value(dimension, "length")
    breadth = _dimension_value(dimension, "breadth")
    height = _dimension_value(dimension, "height")
    if not (length and breadth and height):
        return ZERO

    unit = _dimension_value(dimension, "unit") or "cm"
    multiplier = UNIT_MULTIPLIERS.get(unit, UNIT_MULTIPLIERS["m"])
    volume = to_decimal(length) * to_decimal(breadth) * to_decimal(height) * multiplier
    return (volume / divisor).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def volumetric_weight(
    dimensions: Optional[Sequence[Mapping[str, Any]]],
    divisor: Decimal = VOLUMETRIC_DIVISOR,
) -> Decimal:
    """Volumetric weight used for pricing. Only the first entry counts."""
    if not dimensions:
        return ZERO
    return entry_volumetric_weight(dimensions[0], divisor)


def per_entry_volumetric_weights(
    dimensions: Optional[Sequence[Mapping[str, Any]]],
    divisor: Decimal = VOLUMETRIC_DIVISOR,
) -> list[Decimal]:
    """Volumetric weight of every entry, for display. Not used in pricing."""
    return [entry_volumetric_weight(d, divisor) for d in dimensions or []]


def chargeable_weight(actual_weight: Any, volumetric: Any) -> Decimal:
    return max(to_decimal(actual_weight), to_decimal(volumetric))


def freight_charge(chargeable: Any, per_kg_rate: Any) -> Decimal:
    return quantize(to_decimal(chargeable) * to_decimal(per_kg_rate))


def gst_amount(freight: Any, gst_applicable: bool, rate: Decimal = GST_RATE) -> Decimal:
    if not gst_applicable:
        return quantize(ZERO)
    return quantize(to_decimal(freight) * rate)


def grand_total(freight: Any, gst_applicable: bool, rate: Decimal = GST_RATE) -> Decimal:
    return quantize(to_decimal(freight) + gst_amount(freight, gst_applicable, rate))


def is_gst_applicable(gst_flag: Optional[str]) -> bool:
    return (gst_flag or "").strip().lower() == "yes"


@dataclass(frozen=True)
class ChargeBreakdown:
    volumetric_weight: Decimal
    chargeable_weight: Decimal
    freight_charge: Decimal
    gst_amount: Decimal
    grand_total: Decimal

    def weights(self) -> dict[str, float]:
        return {
            "volumetricWeight": float(self.volumetric_weight),
            "chargeableWeight": float(self.chargeable_weight),
        }

    def amounts(self) -> dict[str, str]:
        return {
            "freightCharge": str(self.freight_charge),
            "gstAmount": str(self.gst_amount),
            "grandTotal": str(self.grand_total),
        }


def compute_charges(
    dimensions: Optional[Sequence[Mapping[str, Any]]],
    actual_weight: Any,
    per_kg_rate: Any,
    gst_applicable: bool,
    gst_rate: Decimal = GST_RATE,
    divisor: Decimal = VOLUMETRIC_DIVISOR,
) -> ChargeBreakdown:
    """Derive every weight and amount from the raw shipment inputs."""
    volumetric = volumetric_weight(dimensions, divisor)
    chargeable = chargeable_weight(actual_weight, volumetric)
    freight = freight_charge(chargeable, per_kg_rate)
    return ChargeBreakdown(
        volumetric_weight=volumetric,
        chargeable_weight=chargeable,
        freight_charge=freight,
        gst_amount=gst_amount(freight, gst_applicable, gst_rate),
        grand_total=grand_total(freight, gst_applicable, gst_rate),
    )

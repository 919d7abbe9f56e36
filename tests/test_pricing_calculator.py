from decimal import Decimal

import pytest

from app.services.pricing_calculator import (
    chargeable_weight,
    compute_charges,
    entry_volumetric_weight,
    format_amount,
    grand_total,
    gst_amount,
    is_gst_applicable,
    per_entry_volumetric_weights,
    to_decimal,
    volumetric_weight,
)


@pytest.mark.parametrize(
    "unit, expected",
    [
        ("cm", Decimal("24.00")),
        ("mm", Decimal("2.40")),
        ("m", Decimal("2400.00")),
    ],
)
def test_volumetric_weight_scales_with_unit(unit, expected):
    dims = [{"length": 50, "breadth": 40, "height": 60, "unit": unit}]
    assert volumetric_weight(dims) == expected


def test_volumetric_weight_uses_first_entry_only():
    dims = [
        {"length": 10, "breadth": 10, "height": 10, "unit": "cm"},
        {"length": 100, "breadth": 100, "height": 100, "unit": "cm"},
    ]
    assert volumetric_weight(dims) == Decimal("0.20")
    assert per_entry_volumetric_weights(dims) == [Decimal("0.20"), Decimal("200.00")]


def test_volumetric_weight_is_zero_until_all_sides_filled():
    assert entry_volumetric_weight({"length": "10", "breadth": "", "height": "10"}) == Decimal("0")
    assert volumetric_weight([]) == Decimal("0")
    assert volumetric_weight(None) == Decimal("0")


def test_chargeable_weight_is_the_larger_weight():
    assert chargeable_weight("2", Decimal("0.20")) == Decimal("2")
    assert chargeable_weight("1.5", Decimal("24.00")) == Decimal("24.00")


def test_gst_toggle():
    freight = Decimal("100.00")
    assert gst_amount(freight, False) == Decimal("0.00")
    assert grand_total(freight, False) == Decimal("100.00")
    assert gst_amount(freight, True) == Decimal("18.00")
    assert grand_total(freight, True) == Decimal("118.00")


def test_grand_total_rounds_to_two_places():
    assert grand_total(Decimal("33.33"), True) == Decimal("39.33")


def test_compute_charges_end_to_end():
    dims = [{"length": "50", "breadth": "40", "height": "60", "unit": "cm"}]
    breakdown = compute_charges(dims, actual_weight="10", per_kg_rate="12.5", gst_applicable=True)

    assert breakdown.volumetric_weight == Decimal("24.00")
    assert breakdown.chargeable_weight == Decimal("24.00")
    assert breakdown.amounts() == {
        "freightCharge": "300.00",
        "gstAmount": "54.00",
        "grandTotal": "354.00",
    }
    assert breakdown.weights() == {"volumetricWeight": 24.0, "chargeableWeight": 24.0}


def test_compute_charges_is_deterministic():
    dims = [{"length": "12", "breadth": "7", "height": "3", "unit": "cm"}]
    first = compute_charges(dims, "1", "80", False)
    second = compute_charges(dims, "1", "80", False)
    assert first == second
    assert first.grand_total == first.freight_charge


@pytest.mark.parametrize(
    "raw, expected",
    [("12.", "12.00"), ("", "0.00"), ("abc", "0.00"), ("7.005", "7.01"), (None, "0.00"), ("3", "3.00")],
)
def test_format_amount_canonicalises(raw, expected):
    assert format_amount(raw) == expected


def test_to_decimal_rejects_non_finite():
    assert to_decimal("NaN") == Decimal("0")
    assert to_decimal("Infinity") == Decimal("0")


def test_is_gst_applicable():
    assert is_gst_applicable("Yes")
    assert is_gst_applicable(" yes ")
    assert not is_gst_applicable("No")
    assert not is_gst_applicable(None)

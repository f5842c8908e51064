from types import SimpleNamespace

import pytest

from bilty.src import validators
from bilty.src.enums import Capability, Role
from bilty.src.exceptions import NoPermission


@pytest.mark.parametrize(
    "vehicleNo", ["MH12AB1234", "mh12ab1234", "MH 12 AB 1234", "MH-12-AB-1234"]
)
def test_valid_vehicle_numbers(vehicleNo):
    assert validators.vehicleNumberError(vehicleNo) is None
    assert validators.normalizeVehicleNumber(vehicleNo) == "MH12AB1234"


@pytest.mark.parametrize("vehicleNo", ["MH12A1234", "1212AB1234", "MH12AB123"])
def test_invalid_vehicle_numbers(vehicleNo):
    assert validators.vehicleNumberError(vehicleNo).startswith("Invalid format")


def test_vehicle_number_required():
    assert validators.vehicleNumberError("  ") == "Vehicle number is required"
    assert validators.vehicleNumberError(None) == "Vehicle number is required"


def test_format_vehicle_number():
    assert validators.formatVehicleNumber("mh12ab1234") == "MH 12 AB 1234"
    assert validators.formatVehicleNumber("KA5") == "KA5"


@pytest.mark.parametrize(
    "mobile", ["9876543210", "+91 9876543210", "919876543210", "98765-43210", ""]
)
def test_valid_mobile_numbers(mobile):
    assert validators.mobileNumberError(mobile) is None


@pytest.mark.parametrize("mobile", ["5876543210", "98765", "+44 9876543210"])
def test_invalid_mobile_numbers(mobile):
    assert validators.mobileNumberError(mobile).startswith("Invalid mobile number")


def test_normalize_mobile_number_drops_country_code():
    assert validators.normalizeMobileNumber("+91 98765 43210") == "9876543210"
    assert validators.normalizeMobileNumber(None) == ""


def biltyForm(**overrides):
    form = dict(
        seller_id=1,
        transport_name="Shree Ganesh Transport",
        driver_name="Vijay More",
        driver_mobile="9988776655",
        transport_mobile="",
        vehicle_no="MH12AB1234",
        delivery_address="Market Yard, Pune",
        rent=5000,
        advance=2000,
        driver_tips=0,
        product_details=[
            SimpleNamespace(product_name="Tomato", unit_type="kg", quantity=500)
        ],
    )
    form.update(overrides)
    return SimpleNamespace(**form)


def test_valid_bilty_form():
    assert validators.biltyFormErrors(biltyForm()) == {}


def test_bilty_form_collects_every_error():
    errors = validators.biltyFormErrors(
        biltyForm(
            seller_id=None,
            transport_name="",
            driver_mobile="",
            vehicle_no="XX",
            rent=0,
            advance=-1,
            product_details=[],
        )
    )
    assert errors["seller_id"] == "Please select a seller"
    assert errors["transport_name"] == "Transport name is required"
    assert errors["driver_mobile"] == "Driver mobile is required"
    assert errors["vehicle_no"].startswith("Invalid format")
    assert errors["rent"] == "Rent must be greater than 0"
    assert errors["advance"] == "Advance cannot be negative"
    assert errors["product_details"] == "At least one product is required"


def test_advance_cannot_exceed_rent():
    errors = validators.biltyFormErrors(biltyForm(rent=1000, advance=1500))
    assert errors == {"advance": "Advance cannot be greater than rent"}


def test_product_line_errors_are_indexed():
    errors = validators.biltyFormErrors(
        biltyForm(
            product_details=[
                SimpleNamespace(product_name="Tomato", unit_type="kg", quantity=10),
                SimpleNamespace(product_name=" ", unit_type="", quantity=0),
            ]
        )
    )
    assert errors == {
        "product_1_name": "Product name is required",
        "product_1_unit_type": "Unit type is required",
        "product_1_quantity": "Quantity must be greater than 0",
    }


def test_update_keeps_lines_when_omitted():
    form = biltyForm(product_details=None)
    assert validators.biltyFormErrors(form, linesRequired=False) == {}
    assert "product_details" in validators.biltyFormErrors(form)


def test_billing_form_requires_every_sold_price():
    form = SimpleNamespace(
        lines=[SimpleNamespace(product_detail_id=1, sold_price=100)],
        commission=0,
        driver_paid=0,
    )
    assert validators.billingFormErrors(form, [1]) == {}
    assert validators.billingFormErrors(form, [1, 2]) == {
        "lines": "Please enter sold price for all products"
    }


def test_billing_form_rejects_negative_deductions():
    form = SimpleNamespace(
        lines=[SimpleNamespace(product_detail_id=1, sold_price=100)],
        commission=-5,
        driver_paid=0,
    )
    assert validators.billingFormErrors(form, [1]) == {
        "deductions": "Commission and driver payment cannot be negative"
    }


def test_schedule_form_limits():
    form = SimpleNamespace(driver_id="", operating_days=32, tax_deduction=-1)
    assert validators.scheduleFormErrors(form, -1) == {
        "driver_id": "Driver ID is required",
        "operating_days": "Operating days must be between 0 and 31",
        "tax_deduction": "Tax deduction cannot be negative",
        "final_payment": "Final payment cannot be negative",
    }


def test_permissions():
    validators.permission(Role.ADMIN, Capability.BILLING, Capability.VEHICLE)
    validators.anyPermission(Role.ENTRY_OPERATOR, Capability.BILLING, Capability.BILTY)
    with pytest.raises(NoPermission):
        validators.permission(Role.ENTRY_OPERATOR, Capability.BILLING)
    with pytest.raises(NoPermission):
        validators.anyPermission(Role.ACCOUNTANT, Capability.BILTY, Capability.VEHICLE)

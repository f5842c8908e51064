"""
Validation and permission checks for Bilty API.

This module centralizes guard logic such as:
- Token validation and capability checks
- Registration and mobile number validation and normalization
- Field validation of the bilty, billing, vehicle and schedule forms

Guards raise the appropriate exceptions from `bilty.src.exceptions`.
Form validators return a `{field: message}` mapping which is empty when
the form is valid, so that every error of a form is reported at once.
"""

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from bilty.src.db import UserToken
from bilty.src import exceptions
from bilty.src.accounts import capabilitiesOf
from bilty.src.enums import Capability, Role
from bilty.src.constants import (
    MAX_OPERATING_DAYS,
    REGEX_MOBILE_NUMBER,
    REGEX_MOBILE_NUMBER_WITH_CODE,
    REGEX_MOBILE_SEPARATORS,
    REGEX_VEHICLE_NUMBER,
    REGEX_VEHICLE_SEPARATORS,
)


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------
def userToken(access_token: str, session: Session) -> UserToken:
    """
    Validate a user access token.

    Args:
        access_token (str): The bearer token string provided by the client.
        session (Session): Active SQLAlchemy session for DB lookup.

    Returns:
        UserToken: The valid token object from the database.

    Raises:
        exceptions.InvalidToken: If the token is not found or has expired.
    """
    current_time = datetime.now(timezone.utc)

    token = (
        session.query(UserToken)
        .filter(
            UserToken.access_token == access_token,
            UserToken.expires_at > current_time,
        )
        .first()
    )

    if token is None:
        raise exceptions.InvalidToken()

    return token


# ---------------------------------------------------------------------------
# Permission checks
# ---------------------------------------------------------------------------
def permission(role: Role, *capabilities: Capability) -> None:
    """
    Ensure a role holds every one of the given capabilities.

    Raises:
        exceptions.NoPermission: If any capability is missing.
    """
    allowed = capabilitiesOf(role)
    for capability in capabilities:
        if capability not in allowed:
            raise exceptions.NoPermission()


def anyPermission(role: Role, *capabilities: Capability) -> None:
    """Ensure a role holds at least one of the given capabilities."""
    allowed = capabilitiesOf(role)
    if not any(capability in allowed for capability in capabilities):
        raise exceptions.NoPermission()


# ---------------------------------------------------------------------------
# Registration and mobile numbers
# ---------------------------------------------------------------------------
def normalizeVehicleNumber(vehicleNo: str) -> str:
    """Storage form of a registration number, e.g. `mh 12 ab 1234` -> `MH12AB1234`."""
    return re.sub(REGEX_VEHICLE_SEPARATORS, "", vehicleNo or "").upper()


def formatVehicleNumber(vehicleNo: str) -> str:
    """Display form of a registration number, e.g. `MH12AB1234` -> `MH 12 AB 1234`."""
    cleanVehicleNo = normalizeVehicleNumber(vehicleNo)
    if len(cleanVehicleNo) == 10:
        return " ".join(
            [
                cleanVehicleNo[0:2],
                cleanVehicleNo[2:4],
                cleanVehicleNo[4:6],
                cleanVehicleNo[6:10],
            ]
        )
    return cleanVehicleNo


def vehicleNumberError(vehicleNo: str | None) -> Optional[str]:
    if vehicleNo is None or vehicleNo.strip() == "":
        return "Vehicle number is required"
    if re.match(REGEX_VEHICLE_NUMBER, normalizeVehicleNumber(vehicleNo)) is None:
        return "Invalid format. Use format: MH12AB1234 (State-District-Series-Number)"
    return None


def normalizeMobileNumber(mobile: str | None) -> str:
    """Storage form of a mobile number, digits only without the `91` country code."""
    if not mobile:
        return ""
    cleanMobile = re.sub(r"\D", "", mobile)
    if len(cleanMobile) == 12 and cleanMobile.startswith("91"):
        return cleanMobile[2:]
    return cleanMobile


def mobileNumberError(mobile: str | None) -> Optional[str]:
    """
    Validate an optional Indian mobile number.

    An empty value is valid; a required mobile number is checked by the form.
    """
    if mobile is None or mobile.strip() == "":
        return None
    cleanMobile = re.sub(REGEX_MOBILE_SEPARATORS, "", mobile)
    if re.match(REGEX_MOBILE_NUMBER, cleanMobile) is None and (
        re.match(REGEX_MOBILE_NUMBER_WITH_CODE, cleanMobile) is None
    ):
        return "Invalid mobile number. Use 10-digit format (6XXXXXXXXX) or with country code (+91XXXXXXXXXX)"
    return None


def isBlank(value: str | None) -> bool:
    return value is None or value.strip() == ""


# ---------------------------------------------------------------------------
# Form validation
# ---------------------------------------------------------------------------
def _productLineErrors(productDetails: List) -> Dict[str, str]:
    errors = {}
    for index, line in enumerate(productDetails):
        if isBlank(line.product_name):
            errors[f"product_{index}_name"] = "Product name is required"
        if isBlank(line.unit_type):
            errors[f"product_{index}_unit_type"] = "Unit type is required"
        if line.quantity is None or line.quantity <= 0:
            errors[f"product_{index}_quantity"] = "Quantity must be greater than 0"
    return errors


def biltyFormErrors(fParam, linesRequired: bool = True) -> Dict[str, str]:
    """
    Validate a bilty form.

    Every rule is applied and all failures are returned together.
    `linesRequired` is False on update, where omitting the product
    lines keeps the existing ones.
    """
    errors = {}
    if fParam.seller_id is None:
        errors["seller_id"] = "Please select a seller"
    if isBlank(fParam.transport_name):
        errors["transport_name"] = "Transport name is required"
    if isBlank(fParam.driver_name):
        errors["driver_name"] = "Driver name is required"
    if isBlank(fParam.driver_mobile):
        errors["driver_mobile"] = "Driver mobile is required"
    else:
        mobileError = mobileNumberError(fParam.driver_mobile)
        if mobileError:
            errors["driver_mobile"] = mobileError
    mobileError = mobileNumberError(fParam.transport_mobile)
    if mobileError:
        errors["transport_mobile"] = mobileError
    vehicleError = vehicleNumberError(fParam.vehicle_no)
    if vehicleError:
        errors["vehicle_no"] = vehicleError
    if fParam.delivery_address is not None and isBlank(fParam.delivery_address):
        errors["delivery_address"] = "Delivery address is required"
    if fParam.rent is None or fParam.rent <= 0:
        errors["rent"] = "Rent must be greater than 0"
    if fParam.advance < 0:
        errors["advance"] = "Advance cannot be negative"
    elif fParam.rent is not None and fParam.advance > fParam.rent:
        errors["advance"] = "Advance cannot be greater than rent"
    if fParam.driver_tips < 0:
        errors["driver_tips"] = "Driver tips cannot be negative"

    if fParam.product_details is None:
        if linesRequired:
            errors["product_details"] = "At least one product is required"
    elif len(fParam.product_details) == 0:
        errors["product_details"] = "At least one product is required"
    else:
        errors.update(_productLineErrors(fParam.product_details))
    return errors


def billingFormErrors(fParam, productDetailIds: List[int]) -> Dict[str, str]:
    """
    Validate a detailed billing form against the product lines of its bilty.

    Every product line needs a sold price greater than 0.
    """
    errors = {}
    soldPrices = {line.product_detail_id: line.sold_price for line in fParam.lines}
    for productDetailId in productDetailIds:
        soldPrice = soldPrices.get(productDetailId)
        if soldPrice is None or soldPrice <= 0:
            errors["lines"] = "Please enter sold price for all products"
            break
    unknownIds = set(soldPrices) - set(productDetailIds)
    if unknownIds:
        errors["lines"] = "Sold price given for a product not in this bilty"
    if fParam.commission < 0 or fParam.driver_paid < 0:
        errors["deductions"] = "Commission and driver payment cannot be negative"
    return errors


def vehicleFormErrors(fParam) -> Dict[str, str]:
    errors = {}
    if fParam.transport_name is not None and isBlank(fParam.transport_name):
        errors["transport_name"] = "Transport name is required"
    if fParam.driver_name is not None and isBlank(fParam.driver_name):
        errors["driver_name"] = "Driver name is required"
    if fParam.vehicle_no is not None:
        vehicleError = vehicleNumberError(fParam.vehicle_no)
        if vehicleError:
            errors["vehicle_no"] = vehicleError
    if fParam.driver_mobile is not None and isBlank(fParam.driver_mobile):
        errors["driver_mobile"] = "Driver mobile is required"
    for field in ("driver_mobile", "transport_mobile"):
        mobileError = mobileNumberError(getattr(fParam, field, None))
        if mobileError:
            errors[field] = mobileError
    if fParam.advance is not None and fParam.advance < 0:
        errors["advance"] = "Advance cannot be negative"
    return errors


def partyFormErrors(fParam, mobileField: str) -> Dict[str, str]:
    """Validate a seller or supplier form, `mobileField` names its phone field."""
    errors = {}
    if fParam.name is not None and isBlank(fParam.name):
        errors["name"] = "Name is required"
    mobileError = mobileNumberError(getattr(fParam, mobileField, None))
    if mobileError:
        errors[mobileField] = mobileError
    return errors


def scheduleFormErrors(fParam, finalPayment: float | None = None) -> Dict[str, str]:
    errors = {}
    if fParam.driver_id is not None and isBlank(fParam.driver_id):
        errors["driver_id"] = "Driver ID is required"
    if fParam.operating_days is not None and not (
        0 <= fParam.operating_days <= MAX_OPERATING_DAYS
    ):
        errors["operating_days"] = "Operating days must be between 0 and 31"
    if fParam.tax_deduction is not None and fParam.tax_deduction < 0:
        errors["tax_deduction"] = "Tax deduction cannot be negative"
    if finalPayment is not None and finalPayment < 0:
        errors["final_payment"] = "Final payment cannot be negative"
    return errors


def billingRecordFormErrors(fParam) -> Dict[str, str]:
    errors = {}
    vehicleError = vehicleNumberError(fParam.vehicle_no)
    if vehicleError:
        errors["vehicle_no"] = vehicleError
    if fParam.date is None:
        errors["date"] = "Date is required"
    if fParam.amount is None:
        errors["amount"] = "Amount is required"
    elif fParam.amount < 0:
        errors["amount"] = "Amount cannot be negative"
    if fParam.advance < 0:
        errors["advance"] = "Advance cannot be negative"
    return errors

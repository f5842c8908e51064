from datetime import datetime
from secrets import token_hex
from typing import Dict, Iterable, List, Optional

from bilty.src import schemas
from bilty.src.constants import (
    BILTY_NUMBER_PREFIX,
    DEFAULT_PRODUCT_NAME,
    DEFAULT_UNIT_TYPE,
    SCHEDULE_DAILY_RATE,
    UNIT_CONVERSION_RATES,
)
from bilty.src.exceptions import APIException


def fuseExceptionResponses(exceptions: List[APIException]) -> Dict[int, dict]:
    """
    Generate OpenAPI response documentation by fusing multiple APIException instances.

    Args:
        exceptions (List[APIException]): List of instantiated exceptions.

    Returns:
        Dict[int, dict]: A dictionary of OpenAPI response specs grouped by status code.
    """
    responses = {}

    for exception in exceptions:
        status_code = exception.status_code
        example_key = type(exception).__name__
        example_value = {
            "summary": str(exception.headers),
            "value": {"detail": exception.detail},
        }

        if status_code not in responses:
            responses[status_code] = {
                "model": schemas.ErrorResponse,
                "content": {
                    "application/json": {"examples": {example_key: example_value}}
                },
            }
        else:
            responses[status_code]["content"]["application/json"]["examples"][
                example_key
            ] = example_value

    return responses


def enumStr(enumClass) -> str:
    """
    Convert an Enum class into a comma-separated string of its members.

    Each enum member is formatted as "<NAME>: <VALUE>".

    Example:
        >>> enumStr(BiltyStatus)
        'PENDING: 1, IN_TRANSIT: 2, DELIVERED: 3'
    """
    return ", ".join(f"{x.name}: {x.value}" for x in enumClass)


def updateIfChanged(targetObj, sourceObj, fields: List[str]) -> None:
    """
    Update attributes on a target object from a source object
    only if the values differ and the new value is not None.

    Designed for use with SQLAlchemy models, where `fields` are typically
    provided as `Model.field.key`.

    Example:
        >>> updateIfChanged(
        ...     seller,
        ...     fParam,
        ...     [
        ...         Seller.name.key,
        ...         Seller.address.key,
        ...     ],
        ... )
        # seller will be updated where values differ; unchanged fields are skipped silently
    """
    for field in fields:
        new_value = getattr(sourceObj, field, None)
        if new_value is not None:
            old_value = getattr(targetObj, field)
            if old_value != new_value:
                setattr(targetObj, field, new_value)


# ---------------------------------------------------------------------------
# Bilty computations
# ---------------------------------------------------------------------------
def convertToCratesBags(quantity: float, unitType: str) -> float:
    """
    Convert a quantity of the given unit type into crates/bags.

    The unit type is looked up case-insensitively in `UNIT_CONVERSION_RATES`;
    unknown unit types are converted at rate 1. The result is rounded
    to 2 decimal places.

    Example:
        >>> convertToCratesBags(100, "kg")
        2.0
        >>> convertToCratesBags(3, "TONS")
        60
    """
    rate = UNIT_CONVERSION_RATES.get((unitType or "").strip().lower(), 1)
    return round(quantity * rate, 2)


def aggregateCratesBags(cratesBags: Iterable[float]) -> float:
    """Sum the crate/bag counts of a bilty's product lines."""
    return round(sum(cratesBags), 2)


def generateBiltyNumber(now: Optional[datetime] = None) -> str:
    """
    Generate a human readable bilty number.

    Format: `BLT` + last 6 digits of the epoch milliseconds + 8 random
    uppercase hexadecimal characters, e.g. `BLT4821377F3A09C2E`.
    """
    now = now or datetime.now()
    milliseconds = str(int(now.timestamp() * 1000))[-6:]
    return f"{BILTY_NUMBER_PREFIX}{milliseconds}{token_hex(4).upper()}"


def summarizeProducts(
    productDetails: List[schemas.ProductDetailSchema],
) -> schemas.ProductSummary:
    """
    Derive the summary product of a bilty.

    Name and unit are taken from the first line, the quantity is the sum of
    the raw quantities of all lines. The plant is left empty.
    """
    if not productDetails:
        return schemas.ProductSummary()
    first = productDetails[0]
    return schemas.ProductSummary(
        name=first.product_name or DEFAULT_PRODUCT_NAME,
        quantity=sum(line.quantity for line in productDetails),
        unit=first.unit_type or DEFAULT_UNIT_TYPE,
        plant="",
    )


# ---------------------------------------------------------------------------
# Billing computations
# ---------------------------------------------------------------------------
def calculateNetAmount(amount: float, advance: float) -> float:
    """Net amount of a simple billing record, floored at 0."""
    return max(0, round(amount - advance, 2))


def calculateLineTotal(soldPrice: float, totalCratesBags: float) -> float:
    return round(soldPrice * totalCratesBags, 2)


def calculateNetTotal(grossTotal: float, commission: float, driverPaid: float) -> float:
    """
    Net total of a detailed billing.

    Not floored, a billing whose deductions exceed the gross total has a
    negative net total.
    """
    return round(grossTotal - commission - driverPaid, 2)


def calculateFinalPayment(operatingDays: int, taxDeduction: float) -> float:
    """Driver payment of a schedule, floored at 0."""
    return max(0, operatingDays * SCHEDULE_DAILY_RATE - taxDeduction)


def computeBilling(
    productDetails: List[schemas.ProductDetailSchema],
    soldPrices: Dict[int, float],
    commission: float,
    driverPaid: float,
) -> schemas.BillingPreview:
    """
    Price every product line of a bilty and derive the billing totals.

    Lines are billed per crate/bag, whatever unit the quantity was
    entered in. Missing sold prices count as 0.
    """
    lines = []
    for productDetail in productDetails:
        soldPrice = soldPrices.get(productDetail.id, 0)
        lines.append(
            schemas.BillingPreviewLine(
                product_detail_id=productDetail.id,
                product_name=productDetail.product_name,
                total_crates_bags=productDetail.total_crates_bags,
                sold_price=soldPrice,
                total_amount=calculateLineTotal(
                    soldPrice, productDetail.total_crates_bags
                ),
            )
        )
    grossTotal = round(sum(line.total_amount for line in lines), 2)
    return schemas.BillingPreview(
        lines=lines,
        gross_total=grossTotal,
        commission=commission,
        driver_paid=driverPaid,
        net_total=calculateNetTotal(grossTotal, commission, driverPaid),
    )

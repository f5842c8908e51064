"""
Multi-table write workflows for bilties, billings, billing records and schedules.

Every workflow validates the whole form first, performs its writes inside a
single transaction on the given session and commits once. The data store is
patched only after the commit succeeded. Errors propagate to the caller,
the uncommitted transaction is rolled back when the session is closed.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.orm.session import Session

from bilty.src import exceptions, schemas, services, validators
from bilty.src.constants import TMZ_SECONDARY, VEHICLE_PRODUCT_INFO
from bilty.src.db import Billing, Bilty, Schedule, Vehicle
from bilty.src.enums import BillingStatus, BiltyStatus, VehicleStatus
from bilty.src.functions import (
    aggregateCratesBags,
    calculateFinalPayment,
    calculateNetAmount,
    computeBilling,
    convertToCratesBags,
    generateBiltyNumber,
    updateIfChanged,
)
from bilty.src.store import DataStore, buildBilling, buildBilty, dataStore


# ---------------------------------------------------------------------------
# Vehicle upsert
# ---------------------------------------------------------------------------
def upsertVehicle(
    session: Session, fParam, quantity: Optional[float]
) -> Tuple[Vehicle, bool]:
    """
    Create or refresh the vehicle of a bilty form.

    The vehicle is matched by normalized registration number. A matched
    vehicle takes over the submitted transport and driver details, so a
    registration number never yields a second vehicle row.

    Returns:
        Tuple[Vehicle, bool]: The vehicle and whether it was created.
    """
    vehicleNo = validators.normalizeVehicleNumber(fParam.vehicle_no)
    values = {
        "transport_name": fParam.transport_name.strip(),
        "driver_name": fParam.driver_name.strip(),
        "vehicle_no": vehicleNo,
        "driver_mobile": validators.normalizeMobileNumber(fParam.driver_mobile),
        "transport_mobile": validators.normalizeMobileNumber(fParam.transport_mobile),
        "date_time": datetime.now(TMZ_SECONDARY),
        "product_info": VEHICLE_PRODUCT_INFO,
        "advance": fParam.advance,
        "status": VehicleStatus.ACTIVE,
    }
    if quantity is not None:
        values["quantity"] = quantity

    vehicle = services.vehicles.findByNumber(session, vehicleNo)
    if vehicle is None:
        return services.vehicles.create(session, **values), True
    return services.vehicles.update(session, vehicle, **values), False


def productLineValues(productDetails: List) -> List[dict]:
    return [
        {
            "product_name": line.product_name.strip(),
            "unit_type": line.unit_type.strip(),
            "quantity": line.quantity,
            "total_crates_bags": convertToCratesBags(line.quantity, line.unit_type),
            "remarks": line.remarks,
        }
        for line in productDetails
    ]


def _checkSeller(session: Session, fParam, errors: dict):
    if fParam.seller_id is None:
        return None
    seller = services.sellers.get(session, fParam.seller_id)
    if seller is None:
        errors["seller_id"] = "Please select a seller"
    return seller


def _storeVehicle(session: Session, store: DataStore, vehicle: Vehicle) -> None:
    session.refresh(vehicle)
    store.vehicles.replace(schemas.VehicleSchema.model_validate(vehicle))


# ---------------------------------------------------------------------------
# Bilty
# ---------------------------------------------------------------------------
def createBilty(
    session: Session, fParam, store: DataStore = dataStore
) -> schemas.BiltySchema:
    """
    Create a bilty with its product lines.

    Steps, all in one transaction:
        1. Validate the form and the referenced seller.
        2. Upsert the vehicle by registration number.
        3. Insert the bilty, numbered by `generateBiltyNumber`, and its lines.

    After the commit the vehicle is refreshed in the store and the bilty is
    prepended to the bilty list.

    Raises:
        exceptions.InvalidFormData: With every failing field.
    """
    errors = validators.biltyFormErrors(fParam)
    seller = _checkSeller(session, fParam, errors)
    deliveryAddress = fParam.delivery_address
    if deliveryAddress is None:
        deliveryAddress = seller.address if seller else ""
        if seller and validators.isBlank(deliveryAddress):
            errors["delivery_address"] = "Delivery address is required"
    if errors:
        raise exceptions.InvalidFormData(errors)

    lines = productLineValues(fParam.product_details)
    vehicle, _ = upsertVehicle(
        session, fParam, sum(line["quantity"] for line in lines)
    )
    bilty = services.bilties.create(
        session,
        bilty_number=generateBiltyNumber(),
        seller_id=seller.id,
        vehicle_id=vehicle.id,
        delivery_address=deliveryAddress.strip(),
        rent=fParam.rent,
        advance=fParam.advance,
        driver_tips=fParam.driver_tips,
        total_crates_bags=aggregateCratesBags(
            line["total_crates_bags"] for line in lines
        ),
        status=fParam.status or BiltyStatus.PENDING,
    )
    productRows = services.productDetails.createMany(session, bilty.id, lines)
    session.commit()

    session.refresh(bilty)
    for row in productRows:
        session.refresh(row)
    biltyData = buildBilty(bilty, productRows)
    _storeVehicle(session, store, vehicle)
    store.bilties.add(biltyData)
    return store.resolveBilty(biltyData)


def updateBilty(
    session: Session, fParam, store: DataStore = dataStore
) -> schemas.BiltySchema:
    """
    Update a bilty, its vehicle and optionally its product lines.

    When product lines are given they replace every existing line: the old
    lines and the billings priced on them are deleted and the new set is
    inserted. After the commit the lines are read back from the database
    and the cached bilty is rebuilt from that set.

    Raises:
        exceptions.InvalidIdentifier: If the bilty does not exist.
        exceptions.InvalidFormData: With every failing field.
    """
    bilty = services.bilties.get(session, fParam.id)
    if bilty is None:
        raise exceptions.InvalidIdentifier()

    errors = validators.biltyFormErrors(fParam, linesRequired=False)
    _checkSeller(session, fParam, errors)
    if errors:
        raise exceptions.InvalidFormData(errors)

    replaceLines = fParam.product_details is not None
    lines = productLineValues(fParam.product_details) if replaceLines else []
    quantity = sum(line["quantity"] for line in lines) if replaceLines else None
    vehicle, _ = upsertVehicle(session, fParam, quantity)

    bilty.seller_id = fParam.seller_id
    bilty.vehicle_id = vehicle.id
    updateIfChanged(
        bilty,
        fParam,
        [
            Bilty.delivery_address.key,
            Bilty.rent.key,
            Bilty.advance.key,
            Bilty.driver_tips.key,
            Bilty.status.key,
        ],
    )
    if replaceLines:
        services.billingLines.deleteByBiltyId(session, bilty.id)
        services.billingLines.deleteByProductDetailsOf(session, bilty.id)
        services.billings.deleteByBiltyId(session, bilty.id)
        services.productDetails.deleteByBiltyId(session, bilty.id)
        services.productDetails.createMany(session, bilty.id, lines)
        bilty.total_crates_bags = aggregateCratesBags(
            line["total_crates_bags"] for line in lines
        )
    session.commit()

    session.refresh(bilty)
    productRows = services.productDetails.getByBiltyId(session, bilty.id)
    biltyData = buildBilty(bilty, productRows)
    _storeVehicle(session, store, vehicle)
    store.bilties.replace(biltyData)
    if replaceLines:
        for billing in store.billingsOf(bilty.id):
            store.billings.remove(billing.id)
    return store.resolveBilty(biltyData)


def updateBiltyStatus(
    session: Session, biltyId: int, status: BiltyStatus, store: DataStore = dataStore
) -> schemas.BiltySchema:
    """Set the status of a bilty, any status may move to any other."""
    bilty = services.bilties.get(session, biltyId)
    if bilty is None:
        raise exceptions.InvalidIdentifier()
    services.bilties.update(session, bilty, status=status)
    session.commit()

    session.refresh(bilty)
    cached = store.bilties.get(bilty.id)
    if cached is None:
        cached = buildBilty(
            bilty, services.productDetails.getByBiltyId(session, bilty.id)
        )
    biltyData = cached.model_copy(
        update={"status": bilty.status, "updated_on": bilty.updated_on}
    )
    store.bilties.replace(biltyData)
    return store.resolveBilty(biltyData)


def deleteBilty(session: Session, biltyId: int, store: DataStore = dataStore) -> None:
    """
    Delete a bilty together with its billings and product lines.

    Billing lines, billings, product lines and the bilty are removed in
    one transaction.
    """
    bilty = services.bilties.get(session, biltyId)
    if bilty is None:
        raise exceptions.InvalidIdentifier()
    services.billingLines.deleteByBiltyId(session, bilty.id)
    services.billingLines.deleteByProductDetailsOf(session, bilty.id)
    services.billings.deleteByBiltyId(session, bilty.id)
    services.productDetails.deleteByBiltyId(session, bilty.id)
    services.bilties.delete(session, bilty)
    session.commit()
    store.removeBilty(biltyId)


# ---------------------------------------------------------------------------
# Detailed billing
# ---------------------------------------------------------------------------
def previewBilling(
    session: Session, fParam
) -> Tuple[Bilty, List, schemas.BillingPreview]:
    """
    Validate a billing form and compute its totals without writing.

    Returns:
        Tuple: The bilty, its product lines and the computed billing.
    """
    bilty = services.bilties.get(session, fParam.bilty_id)
    if bilty is None:
        raise exceptions.UnknownValue(Billing.bilty_id)
    productRows = services.productDetails.getByBiltyId(session, bilty.id)
    errors = validators.billingFormErrors(fParam, [row.id for row in productRows])
    if errors:
        raise exceptions.InvalidFormData(errors)

    productDetails = [
        schemas.ProductDetailSchema.model_validate(row) for row in productRows
    ]
    soldPrices = {line.product_detail_id: line.sold_price for line in fParam.lines}
    billing = computeBilling(
        productDetails, soldPrices, fParam.commission, fParam.driver_paid
    )
    return bilty, productRows, billing


def createBilling(
    session: Session, fParam, store: DataStore = dataStore
) -> schemas.BillingSchema:
    """
    Bill a bilty: one billing header and one line per product line.

    Billings are create-only. The net total is not floored.
    """
    bilty, productRows, preview = previewBilling(session, fParam)
    billing = services.billings.create(
        session,
        bilty_id=bilty.id,
        commission=fParam.commission,
        driver_paid=fParam.driver_paid,
        net_total=preview.net_total,
        billing_date=fParam.billing_date or datetime.now(TMZ_SECONDARY).date(),
        remark=fParam.remark,
    )
    lineRows = [
        services.billingLines.create(
            session,
            billing_id=billing.id,
            product_detail_id=line.product_detail_id,
            sold_price=line.sold_price,
            total_amount=line.total_amount,
        )
        for line in preview.lines
    ]
    session.commit()

    session.refresh(billing)
    for row in lineRows:
        session.refresh(row)
    billingData = buildBilling(billing, lineRows)
    store.billings.add(billingData)
    return billingData


# ---------------------------------------------------------------------------
# Simple billing records
# ---------------------------------------------------------------------------
def createBillingRecord(
    session: Session, fParam, store: DataStore = dataStore
) -> schemas.BillingRecordSchema:
    """Create a billing record, its net amount is fixed at creation."""
    errors = validators.billingRecordFormErrors(fParam)
    if fParam.seller_id is not None:
        if services.sellers.get(session, fParam.seller_id) is None:
            errors["seller_id"] = "Please select a seller"
    if errors:
        raise exceptions.InvalidFormData(errors)

    record = services.billingRecords.create(
        session,
        vehicle_no=validators.normalizeVehicleNumber(fParam.vehicle_no),
        date=fParam.date,
        amount=fParam.amount,
        seller_id=fParam.seller_id,
        advance=fParam.advance,
        net_amount=calculateNetAmount(fParam.amount, fParam.advance),
        status=fParam.status or BillingStatus.PENDING,
    )
    session.commit()

    session.refresh(record)
    recordData = schemas.BillingRecordSchema.model_validate(record)
    store.billingRecords.add(recordData)
    return recordData


def updateBillingRecordStatus(
    session: Session, recordId: int, status: BillingStatus, store: DataStore = dataStore
) -> schemas.BillingRecordSchema:
    """Set the status of a billing record. Amounts stay as created."""
    record = services.billingRecords.get(session, recordId)
    if record is None:
        raise exceptions.InvalidIdentifier()
    services.billingRecords.update(session, record, status=status)
    session.commit()

    session.refresh(record)
    recordData = schemas.BillingRecordSchema.model_validate(record)
    store.billingRecords.replace(recordData)
    return recordData


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------
def createSchedule(
    session: Session, fParam, store: DataStore = dataStore
) -> schemas.ScheduleSchema:
    """Create a schedule, the final payment is derived from days and tax."""
    finalPayment = calculateFinalPayment(fParam.operating_days, fParam.tax_deduction)
    errors = validators.scheduleFormErrors(fParam, finalPayment)
    if errors:
        raise exceptions.InvalidFormData(errors)

    schedule = services.schedules.create(
        session,
        shift=fParam.shift,
        in_time=fParam.in_time,
        out_time=fParam.out_time,
        driver_id=fParam.driver_id.strip(),
        operating_days=fParam.operating_days,
        tax_deduction=fParam.tax_deduction,
        final_payment=finalPayment,
        date=fParam.date or datetime.now(TMZ_SECONDARY).date(),
    )
    session.commit()

    session.refresh(schedule)
    scheduleData = schemas.ScheduleSchema.model_validate(schedule)
    store.schedules.add(scheduleData)
    return scheduleData


def updateSchedule(
    session: Session, fParam, store: DataStore = dataStore
) -> schemas.ScheduleSchema:
    """Update a schedule. The final payment is taken as given, never derived."""
    schedule = services.schedules.get(session, fParam.id)
    if schedule is None:
        raise exceptions.InvalidIdentifier()
    errors = validators.scheduleFormErrors(fParam, fParam.final_payment)
    if errors:
        raise exceptions.InvalidFormData(errors)

    updateIfChanged(
        schedule,
        fParam,
        [
            Schedule.shift.key,
            Schedule.in_time.key,
            Schedule.out_time.key,
            Schedule.driver_id.key,
            Schedule.operating_days.key,
            Schedule.tax_deduction.key,
            Schedule.final_payment.key,
            Schedule.date.key,
        ],
    )
    if session.is_modified(schedule):
        session.commit()
        session.refresh(schedule)

    scheduleData = schemas.ScheduleSchema.model_validate(schedule)
    store.schedules.replace(scheduleData)
    return scheduleData

from datetime import date as Date, datetime
from typing import List
import pandas as pd
from fastapi import APIRouter, Depends, Query, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from bilty.api.bearer import bearer_user
from bilty.src.db import BillingRecord, sessionMaker
from bilty.src import exceptions, validators, getters, workflows
from bilty.src.constants import (
    BILLING_CSV_COLUMNS,
    BILLING_CSV_FILENAME,
    TMZ_SECONDARY,
)
from bilty.src.enums import BillingStatus, Capability
from bilty.src.loggers import logEvent
from bilty.src.schemas import BillingRecordSchema
from bilty.src.store import dataStore
from bilty.src.functions import enumStr, fuseExceptionResponses
from bilty.src.urls import (
    URL_BILLING_RECORD,
    URL_BILLING_RECORD_CSV,
    URL_BILLING_RECORD_STATUS,
    URL_BILLING_RECORD_SUMMARY,
)

route_user = APIRouter()


## Output Schema
class BillingRecordSummary(BaseModel):
    total_amount: float
    total_advance: float
    total_net: float
    pending_amount: float
    overdue_amount: float


## Input Forms
class CreateForm(BaseModel):
    vehicle_no: str = Field(Form(max_length=16, default=""))
    date: Date | None = Field(Form(default=None))
    amount: float | None = Field(Form(default=None))
    seller_id: int | None = Field(Form(default=None))
    advance: float = Field(Form(default=0))
    status: BillingStatus = Field(
        Form(description=enumStr(BillingStatus), default=BillingStatus.PENDING)
    )


class StatusForm(BaseModel):
    id: int = Field(Form())
    status: BillingStatus = Field(Form(description=enumStr(BillingStatus)))


class DeleteForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class FilterParams(BaseModel):
    status: BillingStatus | None = Field(
        Query(default=None, description=enumStr(BillingStatus))
    )
    date: Date | None = Field(Query(default=None))
    search: str | None = Field(
        Query(
            default=None,
            description="Matches registration number, seller name or shop name",
        )
    )


class QueryParams(FilterParams):
    id: int | None = Field(Query(default=None))
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## Function
def filterBillingRecord(qParam: FilterParams) -> List[BillingRecordSchema]:
    records = dataStore.billingRecords.all()
    if getattr(qParam, "id", None) is not None:
        records = [r for r in records if r.id == qParam.id]
    if qParam.status is not None:
        records = [r for r in records if r.status == qParam.status]
    if qParam.date is not None:
        records = [r for r in records if r.date == qParam.date]
    if qParam.search:
        term = qParam.search.lower()
        vehicleNo = validators.normalizeVehicleNumber(qParam.search)
        matched = []
        for record in records:
            seller = dataStore.sellers.get(record.seller_id)
            if (
                (vehicleNo and vehicleNo in record.vehicle_no)
                or (seller and term in seller.name.lower())
                or (seller and term in seller.shop_name.lower())
            ):
                matched.append(record)
        records = matched
    return records


def summarizeBillingRecord(records: List[BillingRecordSchema]) -> BillingRecordSummary:
    return BillingRecordSummary(
        total_amount=sum(r.amount for r in records),
        total_advance=sum(r.advance for r in records),
        total_net=sum(r.net_amount for r in records),
        pending_amount=sum(
            r.net_amount for r in records if r.status == BillingStatus.PENDING
        ),
        overdue_amount=sum(
            r.net_amount for r in records if r.status == BillingStatus.OVERDUE
        ),
    )


def displayDate(value: Date) -> str:
    """Short Indian date format, e.g. `5 Jan 2025`."""
    return f"{value.day} {value.strftime('%b %Y')}"


def billingRecordFrame(records: List[BillingRecordSchema]) -> pd.DataFrame:
    rows = []
    for record in records:
        seller = dataStore.sellers.get(record.seller_id)
        rows.append(
            [
                validators.formatVehicleNumber(record.vehicle_no),
                displayDate(record.date),
                seller.name if seller else "",
                record.amount,
                record.advance,
                record.net_amount,
                BillingStatus(record.status).name.title(),
            ]
        )
    return pd.DataFrame(rows, columns=BILLING_CSV_COLUMNS)


## API endpoints
@route_user.post(
    URL_BILLING_RECORD,
    tags=["Billing Record"],
    response_model=BillingRecordSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Create a billing record of a vehicle trip.
    Requires a role with the BILLING capability.
    The net amount is computed once as amount - advance, never below 0.
    Logs the billing record creation activity with the associated token.
    """,
)
async def create_billing_record(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.BILLING)

        recordData = jsonable_encoder(workflows.createBillingRecord(session, fParam))
        logEvent(token, request_info, recordData)
        return recordData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.patch(
    URL_BILLING_RECORD_STATUS,
    tags=["Billing Record"],
    response_model=BillingRecordSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
        ]
    ),
    description="""
    Change the status of a billing record.
    Requires a role with the BILLING capability.
    Any status may be changed to any other, amounts are kept as created.
    Logs the status change with the associated token.
    """,
)
async def update_billing_record_status(
    fParam: StatusForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.BILLING)

        recordData = jsonable_encoder(
            workflows.updateBillingRecordStatus(session, fParam.id, fParam.status)
        )
        logEvent(token, request_info, recordData)
        return recordData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.delete(
    URL_BILLING_RECORD,
    tags=["Billing Record"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Delete an existing billing record by ID.
    Requires a role with the BILLING capability.
    If the billing record does not exist, the operation is silently ignored.
    """,
)
async def delete_billing_record(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.BILLING)

        record = (
            session.query(BillingRecord).filter(BillingRecord.id == fParam.id).first()
        )
        if record is not None:
            session.delete(record)
            session.commit()
            dataStore.billingRecords.remove(record.id)
            logEvent(token, request_info, jsonable_encoder(record))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_BILLING_RECORD,
    tags=["Billing Record"],
    response_model=List[BillingRecordSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Fetch the billing records, most recent first.
    Available to roles with the BILLING or REPORTS capability.
    Supports filtering by status and date, searching and pagination.
    """,
)
async def fetch_billing_record(
    qParam: QueryParams = Depends(), bearer=Depends(bearer_user)
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.anyPermission(token.role, Capability.BILLING, Capability.REPORTS)

        records = filterBillingRecord(qParam)
        return records[qParam.offset : qParam.offset + qParam.limit]
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_BILLING_RECORD_SUMMARY,
    tags=["Billing Record"],
    response_model=BillingRecordSummary,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Totals over the filtered billing records.
    Available to roles with the BILLING or REPORTS capability.
    pending_amount and overdue_amount sum the net amount of the records in that status.
    """,
)
async def fetch_billing_record_summary(
    qParam: FilterParams = Depends(), bearer=Depends(bearer_user)
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.anyPermission(token.role, Capability.BILLING, Capability.REPORTS)

        return summarizeBillingRecord(filterBillingRecord(qParam))
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_BILLING_RECORD_CSV,
    tags=["Billing Record"],
    response_class=Response,
    responses={
        **fuseExceptionResponses(
            [exceptions.InvalidToken(), exceptions.NoPermission()]
        ),
        200: {"content": {"text/csv": {}}},
    },
    description="""
    Export the filtered billing records as a CSV file.
    Requires a role with the REPORTS capability.
    Columns: Vehicle No, Date, Seller, Amount, Advance, Net Amount, Status.
    The file is named billing-records-<date>.csv after the current date.
    """,
)
async def fetch_billing_record_csv(
    qParam: FilterParams = Depends(), bearer=Depends(bearer_user)
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.REPORTS)

        frame = billingRecordFrame(filterBillingRecord(qParam))
        fileName = BILLING_CSV_FILENAME.format(
            date=datetime.now(TMZ_SECONDARY).date().isoformat()
        )
        return Response(
            content=frame.to_csv(index=False),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{fileName}"'},
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()

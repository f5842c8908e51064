from datetime import date as Date
from typing import List
from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from bilty.api.bearer import bearer_user
from bilty.src.db import Billing, sessionMaker
from bilty.src import exceptions, validators, getters, workflows
from bilty.src.enums import Capability
from bilty.src.loggers import logEvent
from bilty.src.schemas import BillingPreview, BillingSchema
from bilty.src.store import dataStore
from bilty.src.functions import fuseExceptionResponses
from bilty.src.urls import URL_BILLING, URL_BILLING_PREVIEW

route_user = APIRouter()


## Input Forms
class SoldPriceForm(BaseModel):
    product_detail_id: int
    sold_price: float | None = Field(default=None, description="Price per crate/bag")


class CreateForm(BaseModel):
    bilty_id: int = Field(Body())
    lines: List[SoldPriceForm] = Field(Body(default=[]))
    commission: float = Field(Body(default=0))
    driver_paid: float = Field(Body(default=0))
    billing_date: Date | None = Field(Body(default=None))
    remark: str | None = Field(Body(max_length=1024, default=None))


## Query Parameters
class QueryParams(BaseModel):
    bilty_id: int = Field(Query())


## API endpoints
@route_user.post(
    URL_BILLING_PREVIEW,
    tags=["Billing"],
    response_model=BillingPreview,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UnknownValue(Billing.bilty_id),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Compute the billing of a bilty without saving it.
    Available to roles with the BILTY or BILLING capability.
    Each product line is billed as sold_price * total_crates_bags.
    The net total is gross total - commission - driver_paid, it may be negative.
    """,
)
async def preview_billing(fParam: CreateForm = Depends(), bearer=Depends(bearer_user)):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.anyPermission(token.role, Capability.BILTY, Capability.BILLING)

        _, _, preview = workflows.previewBilling(session, fParam)
        return preview
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.post(
    URL_BILLING,
    tags=["Billing"],
    response_model=BillingSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UnknownValue(Billing.bilty_id),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Bill a bilty, saving one billing line per product line.
    Available to roles with the BILTY or BILLING capability.
    A sold price greater than 0 is required for every product line of the bilty.
    Commission and driver payment cannot be negative.
    A bilty may be billed more than once, billings cannot be edited.
    The billing date defaults to today in the business timezone.
    Logs the billing creation activity with the associated token.
    """,
)
async def create_billing(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.anyPermission(token.role, Capability.BILTY, Capability.BILLING)

        billingData = jsonable_encoder(workflows.createBilling(session, fParam))
        logEvent(token, request_info, billingData)
        return billingData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_BILLING,
    tags=["Billing"],
    response_model=List[BillingSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Fetch the billings of a bilty with their lines, most recent first.
    Available to roles with the BILTY or BILLING capability.
    """,
)
async def fetch_billing(qParam: QueryParams = Depends(), bearer=Depends(bearer_user)):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.anyPermission(token.role, Capability.BILTY, Capability.BILLING)

        return dataStore.billingsOf(qParam.bilty_id)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()

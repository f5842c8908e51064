from typing import List
from fastapi import APIRouter, Body, Depends, Query, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from bilty.api.bearer import bearer_user
from bilty.src.db import sessionMaker
from bilty.src import exceptions, validators, getters, workflows
from bilty.src.constants import DEFAULT_PRODUCT_NAME, DEFAULT_UNIT_TYPE
from bilty.src.enums import BiltyStatus, Capability, OrderIn
from bilty.src.loggers import logEvent
from bilty.src.schemas import BiltySchema
from bilty.src.store import dataStore
from bilty.src.functions import enumStr, fuseExceptionResponses
from bilty.src.urls import URL_BILTY, URL_BILTY_STATUS

route_user = APIRouter()


## Input Forms
class ProductLineForm(BaseModel):
    product_name: str = Field(default=DEFAULT_PRODUCT_NAME, max_length=128)
    unit_type: str = Field(default=DEFAULT_UNIT_TYPE, max_length=16)
    quantity: float | None = Field(default=None)
    remarks: str | None = Field(default=None, max_length=1024)


class CreateForm(BaseModel):
    seller_id: int | None = Field(Body(default=None))
    transport_name: str = Field(Body(max_length=128, default=""))
    driver_name: str = Field(Body(max_length=128, default=""))
    vehicle_no: str = Field(Body(max_length=16, default=""))
    driver_mobile: str = Field(Body(max_length=16, default=""))
    transport_mobile: str = Field(Body(max_length=16, default=""))
    delivery_address: str | None = Field(
        Body(
            max_length=1024,
            default=None,
            description="Defaults to the address of the seller",
        )
    )
    rent: float | None = Field(Body(default=None))
    advance: float = Field(Body(default=0))
    driver_tips: float = Field(Body(default=0))
    status: BiltyStatus = Field(
        Body(description=enumStr(BiltyStatus), default=BiltyStatus.PENDING)
    )
    product_details: List[ProductLineForm] | None = Field(Body(default=None))


class UpdateForm(CreateForm):
    id: int = Field(Body())
    status: BiltyStatus | None = Field(
        Body(description=enumStr(BiltyStatus), default=None)
    )
    product_details: List[ProductLineForm] | None = Field(
        Body(
            default=None,
            description="When given, replaces every existing product line of the bilty",
        )
    )


class StatusForm(BaseModel):
    id: int = Field(Body())
    status: BiltyStatus = Field(Body(description=enumStr(BiltyStatus)))


class DeleteForm(BaseModel):
    id: int = Field(Body(embed=True))


## Query Parameters
class QueryParams(BaseModel):
    id: int | None = Field(Query(default=None))
    seller_id: int | None = Field(Query(default=None))
    vehicle_id: int | None = Field(Query(default=None))
    status: BiltyStatus | None = Field(
        Query(default=None, description=enumStr(BiltyStatus))
    )
    search: str | None = Field(
        Query(
            default=None,
            description="Matches bilty number, registration number or seller name",
        )
    )
    order_in: OrderIn = Field(
        Query(default=OrderIn.DESC, description=enumStr(OrderIn))
    )
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## Function
def searchBilty(qParam: QueryParams) -> List[BiltySchema]:
    bilties = [dataStore.resolveBilty(b) for b in dataStore.bilties.all()]
    if qParam.id is not None:
        bilties = [b for b in bilties if b.id == qParam.id]
    if qParam.seller_id is not None:
        bilties = [b for b in bilties if b.seller_id == qParam.seller_id]
    if qParam.vehicle_id is not None:
        bilties = [b for b in bilties if b.vehicle_id == qParam.vehicle_id]
    if qParam.status is not None:
        bilties = [b for b in bilties if b.status == qParam.status]
    if qParam.search:
        term = qParam.search.lower()
        vehicleNo = validators.normalizeVehicleNumber(qParam.search)
        bilties = [
            b
            for b in bilties
            if term in b.bilty_number.lower()
            or (vehicleNo and vehicleNo in b.vehicle_no)
            or term in b.seller_name.lower()
        ]
    if qParam.order_in == OrderIn.ASC:
        bilties.reverse()
    return bilties[qParam.offset : qParam.offset + qParam.limit]


## API endpoints
@route_user.post(
    URL_BILTY,
    tags=["Bilty"],
    response_model=BiltySchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Create a new bilty with its product lines.
    Requires a role with the BILTY capability.
    Every field is validated and all failures are reported together, keyed by field name.
    Product line fields are reported as product_<index>_name, product_<index>_unit_type
    and product_<index>_quantity.
    The vehicle is looked up by registration number and refreshed with the submitted
    transport and driver details, or created when unknown.
    Crate/bag counts and the bilty number are generated by the server.
    Logs the bilty creation activity with the associated token.
    """,
)
async def create_bilty(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.BILTY)

        biltyData = jsonable_encoder(workflows.createBilty(session, fParam))
        logEvent(token, request_info, biltyData)
        return biltyData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.put(
    URL_BILTY,
    tags=["Bilty"],
    response_model=BiltySchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Update an existing bilty by ID.
    Requires a role with the BILTY capability.
    The header fields are validated as on creation and overwritten.
    When product_details is given, every existing product line is deleted and
    the new lines are inserted with new IDs. Billing lines priced on the removed
    product lines are deleted too. When omitted, the product lines are kept.
    Logs the bilty update activity with the associated token.
    """,
)
async def update_bilty(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.BILTY)

        biltyData = jsonable_encoder(workflows.updateBilty(session, fParam))
        logEvent(token, request_info, biltyData)
        return biltyData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.patch(
    URL_BILTY_STATUS,
    tags=["Bilty"],
    response_model=BiltySchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
        ]
    ),
    description="""
    Change the status of a bilty.
    Requires a role with the BILTY capability.
    Any status may be changed to any other.
    Logs the status change with the associated token.
    """,
)
async def update_bilty_status(
    fParam: StatusForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.BILTY)

        biltyData = jsonable_encoder(
            workflows.updateBiltyStatus(session, fParam.id, fParam.status)
        )
        logEvent(token, request_info, biltyData)
        return biltyData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.delete(
    URL_BILTY,
    tags=["Bilty"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Delete an existing bilty by ID, together with its product lines and billings.
    Requires a role with the BILTY capability.
    If the bilty does not exist, the operation is silently ignored.
    """,
)
async def delete_bilty(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.BILTY)

        bilty = dataStore.bilties.get(fParam.id)
        if bilty is not None:
            workflows.deleteBilty(session, fParam.id)
            logEvent(token, request_info, jsonable_encoder(bilty))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_BILTY,
    tags=["Bilty"],
    response_model=List[BiltySchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Fetch the bilties with their product lines, most recent first.
    Available to roles with the BILTY or BILLING capability.
    Each bilty carries its summary product, seller name, registration number
    and remaining amount (rent - advance, never below 0).
    Supports filtering, searching, ordering and pagination.
    """,
)
async def fetch_bilty(qParam: QueryParams = Depends(), bearer=Depends(bearer_user)):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.anyPermission(token.role, Capability.BILTY, Capability.BILLING)

        return searchBilty(qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()

from typing import List
from fastapi import APIRouter, Depends, Query, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field
from sqlalchemy.orm.session import Session

from bilty.api.bearer import bearer_user
from bilty.src.db import Seller, sessionMaker
from bilty.src import exceptions, validators, getters
from bilty.src.enums import Capability
from bilty.src.loggers import logEvent
from bilty.src.schemas import SellerSchema
from bilty.src.store import dataStore
from bilty.src.functions import fuseExceptionResponses, updateIfChanged
from bilty.src.urls import URL_SELLER

route_user = APIRouter()


## Input Forms
class CreateForm(BaseModel):
    name: str = Field(Form(max_length=128, default=""))
    mobile_number: str = Field(Form(max_length=16, default=""))
    address: str = Field(Form(max_length=1024, default=""))
    shop_name: str = Field(Form(max_length=128, default=""))


class UpdateForm(BaseModel):
    id: int = Field(Form())
    name: str | None = Field(Form(max_length=128, default=None))
    mobile_number: str | None = Field(Form(max_length=16, default=None))
    address: str | None = Field(Form(max_length=1024, default=None))
    shop_name: str | None = Field(Form(max_length=128, default=None))


class DeleteForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class QueryParams(BaseModel):
    id: int | None = Field(Query(default=None))
    search: str | None = Field(
        Query(default=None, description="Matches name, shop name or mobile number")
    )
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## Function
def updateSeller(session: Session, seller: Seller, fParam: UpdateForm):
    errors = validators.partyFormErrors(fParam, Seller.mobile_number.key)
    if errors:
        raise exceptions.InvalidFormData(errors)
    if fParam.mobile_number is not None:
        fParam.mobile_number = validators.normalizeMobileNumber(fParam.mobile_number)
    updateIfChanged(
        seller,
        fParam,
        [
            Seller.name.key,
            Seller.mobile_number.key,
            Seller.address.key,
            Seller.shop_name.key,
        ],
    )


def searchSeller(qParam: QueryParams) -> List[SellerSchema]:
    sellers = dataStore.sellers.all()
    if qParam.id is not None:
        sellers = [s for s in sellers if s.id == qParam.id]
    if qParam.search:
        term = qParam.search.lower()
        sellers = [
            s
            for s in sellers
            if term in s.name.lower()
            or term in s.shop_name.lower()
            or term in s.mobile_number
        ]
    return sellers[qParam.offset : qParam.offset + qParam.limit]


## API endpoints
@route_user.post(
    URL_SELLER,
    tags=["Seller"],
    response_model=SellerSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Create a new seller.
    Requires a role with the SELLER capability.
    The mobile number is optional, when given it must be a valid Indian mobile number.
    It is stored as 10 digits without the country code.
    Logs the seller creation activity with the associated token.
    """,
)
async def create_seller(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.SELLER)

        errors = validators.partyFormErrors(fParam, Seller.mobile_number.key)
        if errors:
            raise exceptions.InvalidFormData(errors)

        seller = Seller(
            name=fParam.name.strip(),
            mobile_number=validators.normalizeMobileNumber(fParam.mobile_number),
            address=fParam.address.strip(),
            shop_name=fParam.shop_name.strip(),
        )
        session.add(seller)
        session.commit()
        session.refresh(seller)

        sellerData = SellerSchema.model_validate(seller)
        dataStore.sellers.add(sellerData)
        sellerData = jsonable_encoder(sellerData)
        logEvent(token, request_info, sellerData)
        return sellerData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.patch(
    URL_SELLER,
    tags=["Seller"],
    response_model=SellerSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Update an existing seller by ID.
    Requires a role with the SELLER capability.
    Existing bilties keep the delivery address they were created with.
    Logs the seller update activity with the associated token.
    """,
)
async def update_seller(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.SELLER)

        seller = session.query(Seller).filter(Seller.id == fParam.id).first()
        if seller is None:
            raise exceptions.InvalidIdentifier()

        updateSeller(session, seller, fParam)
        haveUpdates = session.is_modified(seller)
        if haveUpdates:
            session.commit()
            session.refresh(seller)

        sellerData = SellerSchema.model_validate(seller)
        dataStore.sellers.replace(sellerData)
        sellerData = jsonable_encoder(sellerData)
        if haveUpdates:
            logEvent(token, request_info, sellerData)
        return sellerData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.delete(
    URL_SELLER,
    tags=["Seller"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Delete an existing seller by ID.
    Requires a role with the SELLER capability.
    Bilties and billing records of the seller are kept, their seller shows up blank.
    If the seller does not exist, the operation is silently ignored.
    """,
)
async def delete_seller(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.SELLER)

        seller = session.query(Seller).filter(Seller.id == fParam.id).first()
        if seller is not None:
            session.delete(seller)
            session.commit()
            dataStore.sellers.remove(seller.id)
            logEvent(token, request_info, jsonable_encoder(seller))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_SELLER,
    tags=["Seller"],
    response_model=List[SellerSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Fetch the sellers, most recent first.
    Available to roles with the SELLER, BILTY or BILLING capability.
    Supports searching and pagination.
    """,
)
async def fetch_seller(qParam: QueryParams = Depends(), bearer=Depends(bearer_user)):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.anyPermission(
            token.role, Capability.SELLER, Capability.BILTY, Capability.BILLING
        )

        return searchSeller(qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()

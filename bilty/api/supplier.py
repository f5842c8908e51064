from typing import List
from fastapi import APIRouter, Depends, Query, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from bilty.api.bearer import bearer_user
from bilty.src.db import Supplier, sessionMaker
from bilty.src import exceptions, validators, getters
from bilty.src.enums import Capability
from bilty.src.loggers import logEvent
from bilty.src.schemas import SupplierSchema
from bilty.src.store import dataStore
from bilty.src.functions import fuseExceptionResponses, updateIfChanged
from bilty.src.urls import URL_SUPPLIER

route_user = APIRouter()


## Input Forms
class CreateForm(BaseModel):
    name: str = Field(Form(max_length=128, default=""))
    contact_number: str = Field(Form(max_length=16, default=""))
    address: str = Field(Form(max_length=1024, default=""))
    product_category: str = Field(Form(max_length=64, default="Tomato"))
    plant_name: str = Field(Form(max_length=128, default=""))


class UpdateForm(BaseModel):
    id: int = Field(Form())
    name: str | None = Field(Form(max_length=128, default=None))
    contact_number: str | None = Field(Form(max_length=16, default=None))
    address: str | None = Field(Form(max_length=1024, default=None))
    product_category: str | None = Field(Form(max_length=64, default=None))
    plant_name: str | None = Field(Form(max_length=128, default=None))


class DeleteForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class QueryParams(BaseModel):
    id: int | None = Field(Query(default=None))
    search: str | None = Field(
        Query(default=None, description="Matches name, plant name or contact number")
    )
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## Function
def searchSupplier(qParam: QueryParams) -> List[SupplierSchema]:
    suppliers = dataStore.suppliers.all()
    if qParam.id is not None:
        suppliers = [s for s in suppliers if s.id == qParam.id]
    if qParam.search:
        term = qParam.search.lower()
        suppliers = [
            s
            for s in suppliers
            if term in s.name.lower()
            or term in s.plant_name.lower()
            or term in s.contact_number
        ]
    return suppliers[qParam.offset : qParam.offset + qParam.limit]


## API endpoints
@route_user.post(
    URL_SUPPLIER,
    tags=["Supplier"],
    response_model=SupplierSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Create a new supplier.
    Requires a role with the SUPPLIER capability.
    The plant name is matched against bilty products on the dashboard.
    Logs the supplier creation activity with the associated token.
    """,
)
async def create_supplier(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.SUPPLIER)

        errors = validators.partyFormErrors(fParam, Supplier.contact_number.key)
        if errors:
            raise exceptions.InvalidFormData(errors)

        supplier = Supplier(
            name=fParam.name.strip(),
            contact_number=validators.normalizeMobileNumber(fParam.contact_number),
            address=fParam.address.strip(),
            product_category=fParam.product_category.strip(),
            plant_name=fParam.plant_name.strip(),
        )
        session.add(supplier)
        session.commit()
        session.refresh(supplier)

        supplierData = SupplierSchema.model_validate(supplier)
        dataStore.suppliers.add(supplierData)
        supplierData = jsonable_encoder(supplierData)
        logEvent(token, request_info, supplierData)
        return supplierData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.patch(
    URL_SUPPLIER,
    tags=["Supplier"],
    response_model=SupplierSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Update an existing supplier by ID.
    Requires a role with the SUPPLIER capability.
    Logs the supplier update activity with the associated token.
    """,
)
async def update_supplier(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.SUPPLIER)

        supplier = session.query(Supplier).filter(Supplier.id == fParam.id).first()
        if supplier is None:
            raise exceptions.InvalidIdentifier()

        errors = validators.partyFormErrors(fParam, Supplier.contact_number.key)
        if errors:
            raise exceptions.InvalidFormData(errors)
        if fParam.contact_number is not None:
            fParam.contact_number = validators.normalizeMobileNumber(
                fParam.contact_number
            )
        updateIfChanged(
            supplier,
            fParam,
            [
                Supplier.name.key,
                Supplier.contact_number.key,
                Supplier.address.key,
                Supplier.product_category.key,
                Supplier.plant_name.key,
            ],
        )
        haveUpdates = session.is_modified(supplier)
        if haveUpdates:
            session.commit()
            session.refresh(supplier)

        supplierData = SupplierSchema.model_validate(supplier)
        dataStore.suppliers.replace(supplierData)
        supplierData = jsonable_encoder(supplierData)
        if haveUpdates:
            logEvent(token, request_info, supplierData)
        return supplierData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.delete(
    URL_SUPPLIER,
    tags=["Supplier"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Delete an existing supplier by ID.
    Requires a role with the SUPPLIER capability.
    If the supplier does not exist, the operation is silently ignored.
    """,
)
async def delete_supplier(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.SUPPLIER)

        supplier = session.query(Supplier).filter(Supplier.id == fParam.id).first()
        if supplier is not None:
            session.delete(supplier)
            session.commit()
            dataStore.suppliers.remove(supplier.id)
            logEvent(token, request_info, jsonable_encoder(supplier))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_SUPPLIER,
    tags=["Supplier"],
    response_model=List[SupplierSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Fetch the suppliers, most recent first.
    Available to roles with the SUPPLIER or DASHBOARD capability.
    Supports searching and pagination.
    """,
)
async def fetch_supplier(
    qParam: QueryParams = Depends(), bearer=Depends(bearer_user)
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.anyPermission(
            token.role, Capability.SUPPLIER, Capability.DASHBOARD
        )

        return searchSupplier(qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()

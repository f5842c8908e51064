from datetime import datetime
from typing import List
from fastapi import APIRouter, Depends, Query, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from bilty.api.bearer import bearer_user
from bilty.src.db import Vehicle, sessionMaker
from bilty.src import exceptions, validators, getters
from bilty.src.constants import TMZ_SECONDARY, VEHICLE_PRODUCT_INFO
from bilty.src.enums import Capability, VehicleStatus
from bilty.src.loggers import logEvent
from bilty.src.schemas import VehicleSchema
from bilty.src.store import dataStore
from bilty.src.functions import enumStr, fuseExceptionResponses, updateIfChanged
from bilty.src.urls import URL_VEHICLE

route_user = APIRouter()


## Input Forms
class CreateForm(BaseModel):
    transport_name: str = Field(Form(max_length=128, default=""))
    driver_name: str = Field(Form(max_length=128, default=""))
    vehicle_no: str = Field(Form(max_length=16, default=""))
    driver_mobile: str = Field(Form(max_length=16, default=""))
    transport_mobile: str = Field(Form(max_length=16, default=""))
    product_info: str = Field(Form(max_length=256, default=VEHICLE_PRODUCT_INFO))
    quantity: float = Field(Form(ge=0, default=0))
    advance: float = Field(Form(default=0))
    status: VehicleStatus = Field(
        Form(description=enumStr(VehicleStatus), default=VehicleStatus.ACTIVE)
    )


class UpdateForm(BaseModel):
    id: int = Field(Form())
    transport_name: str | None = Field(Form(max_length=128, default=None))
    driver_name: str | None = Field(Form(max_length=128, default=None))
    vehicle_no: str | None = Field(Form(max_length=16, default=None))
    driver_mobile: str | None = Field(Form(max_length=16, default=None))
    transport_mobile: str | None = Field(Form(max_length=16, default=None))
    product_info: str | None = Field(Form(max_length=256, default=None))
    quantity: float | None = Field(Form(ge=0, default=None))
    advance: float | None = Field(Form(default=None))
    status: VehicleStatus | None = Field(
        Form(description=enumStr(VehicleStatus), default=None)
    )


class DeleteForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class QueryParams(BaseModel):
    id: int | None = Field(Query(default=None))
    status: VehicleStatus | None = Field(
        Query(default=None, description=enumStr(VehicleStatus))
    )
    search: str | None = Field(
        Query(
            default=None,
            description="Matches registration number, driver, transport or product info",
        )
    )
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## Function
def searchVehicle(qParam: QueryParams) -> List[VehicleSchema]:
    vehicles = dataStore.vehicles.all()
    if qParam.id is not None:
        vehicles = [v for v in vehicles if v.id == qParam.id]
    if qParam.status is not None:
        vehicles = [v for v in vehicles if v.status == qParam.status]
    if qParam.search:
        term = qParam.search.lower()
        vehicleNo = validators.normalizeVehicleNumber(qParam.search)
        vehicles = [
            v
            for v in vehicles
            if (vehicleNo and vehicleNo in v.vehicle_no)
            or term in v.driver_name.lower()
            or term in v.transport_name.lower()
            or term in v.product_info.lower()
        ]
    return vehicles[qParam.offset : qParam.offset + qParam.limit]


## API endpoints
@route_user.post(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidFormData(),
            exceptions.UniqueViolation("vehicle_no"),
        ]
    ),
    description="""
    Register a new vehicle.
    Requires a role with the VEHICLE capability.
    The registration number is stored without spaces and hyphens, in upper case,
    and must be unique.
    Vehicles are also created and refreshed implicitly by bilty submissions.
    Logs the vehicle creation activity with the associated token.
    """,
)
async def create_vehicle(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.VEHICLE)

        errors = validators.vehicleFormErrors(fParam)
        if errors:
            raise exceptions.InvalidFormData(errors)

        vehicle = Vehicle(
            transport_name=fParam.transport_name.strip(),
            driver_name=fParam.driver_name.strip(),
            vehicle_no=validators.normalizeVehicleNumber(fParam.vehicle_no),
            driver_mobile=validators.normalizeMobileNumber(fParam.driver_mobile),
            transport_mobile=validators.normalizeMobileNumber(fParam.transport_mobile),
            date_time=datetime.now(TMZ_SECONDARY),
            product_info=fParam.product_info.strip(),
            quantity=fParam.quantity,
            advance=fParam.advance,
            status=fParam.status,
        )
        session.add(vehicle)
        session.commit()
        session.refresh(vehicle)

        vehicleData = VehicleSchema.model_validate(vehicle)
        dataStore.vehicles.add(vehicleData)
        vehicleData = jsonable_encoder(vehicleData)
        logEvent(token, request_info, vehicleData)
        return vehicleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.patch(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
            exceptions.InvalidFormData(),
            exceptions.UniqueViolation("vehicle_no"),
        ]
    ),
    description="""
    Update an existing vehicle by ID.
    Requires a role with the VEHICLE capability.
    Only the provided fields are changed.
    Logs the vehicle update activity with the associated token.
    """,
)
async def update_vehicle(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.VEHICLE)

        vehicle = session.query(Vehicle).filter(Vehicle.id == fParam.id).first()
        if vehicle is None:
            raise exceptions.InvalidIdentifier()

        errors = validators.vehicleFormErrors(fParam)
        if errors:
            raise exceptions.InvalidFormData(errors)
        if fParam.vehicle_no is not None:
            fParam.vehicle_no = validators.normalizeVehicleNumber(fParam.vehicle_no)
        if fParam.driver_mobile is not None:
            fParam.driver_mobile = validators.normalizeMobileNumber(
                fParam.driver_mobile
            )
        if fParam.transport_mobile is not None:
            fParam.transport_mobile = validators.normalizeMobileNumber(
                fParam.transport_mobile
            )
        updateIfChanged(
            vehicle,
            fParam,
            [
                Vehicle.transport_name.key,
                Vehicle.driver_name.key,
                Vehicle.vehicle_no.key,
                Vehicle.driver_mobile.key,
                Vehicle.transport_mobile.key,
                Vehicle.product_info.key,
                Vehicle.quantity.key,
                Vehicle.advance.key,
                Vehicle.status.key,
            ],
        )
        haveUpdates = session.is_modified(vehicle)
        if haveUpdates:
            session.commit()
            session.refresh(vehicle)

        vehicleData = VehicleSchema.model_validate(vehicle)
        dataStore.vehicles.replace(vehicleData)
        vehicleData = jsonable_encoder(vehicleData)
        if haveUpdates:
            logEvent(token, request_info, vehicleData)
        return vehicleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.delete(
    URL_VEHICLE,
    tags=["Vehicle"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Delete an existing vehicle by ID.
    Requires a role with the VEHICLE capability.
    Bilties of the vehicle are kept, their registration number shows up blank.
    If the vehicle does not exist, the operation is silently ignored.
    """,
)
async def delete_vehicle(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.VEHICLE)

        vehicle = session.query(Vehicle).filter(Vehicle.id == fParam.id).first()
        if vehicle is not None:
            session.delete(vehicle)
            session.commit()
            dataStore.vehicles.remove(vehicle.id)
            logEvent(token, request_info, jsonable_encoder(vehicle))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=List[VehicleSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Fetch the vehicles, most recent first.
    Available to roles with the VEHICLE or BILTY capability.
    Supports filtering by status, searching and pagination.
    """,
)
async def fetch_vehicle(qParam: QueryParams = Depends(), bearer=Depends(bearer_user)):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.anyPermission(token.role, Capability.VEHICLE, Capability.BILTY)

        return searchVehicle(qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()

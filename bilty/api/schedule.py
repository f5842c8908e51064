from datetime import date as Date, time
from typing import List
from fastapi import APIRouter, Depends, Query, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from bilty.api.bearer import bearer_user
from bilty.src.db import Schedule, sessionMaker
from bilty.src import exceptions, validators, getters, workflows
from bilty.src.enums import Capability, Shift
from bilty.src.loggers import logEvent
from bilty.src.schemas import ScheduleSchema
from bilty.src.store import dataStore
from bilty.src.functions import enumStr, fuseExceptionResponses
from bilty.src.urls import URL_SCHEDULE

route_user = APIRouter()


## Input Forms
class CreateForm(BaseModel):
    shift: Shift = Field(Form(description=enumStr(Shift), default=Shift.MORNING))
    in_time: time = Field(Form(default=time(6, 0)))
    out_time: time = Field(Form(default=time(14, 0)))
    driver_id: str = Field(Form(max_length=64, default=""))
    operating_days: int = Field(Form(default=26))
    tax_deduction: float = Field(Form(default=0))
    date: Date | None = Field(Form(default=None))


class UpdateForm(BaseModel):
    id: int = Field(Form())
    shift: Shift | None = Field(Form(description=enumStr(Shift), default=None))
    in_time: time | None = Field(Form(default=None))
    out_time: time | None = Field(Form(default=None))
    driver_id: str | None = Field(Form(max_length=64, default=None))
    operating_days: int | None = Field(Form(default=None))
    tax_deduction: float | None = Field(Form(default=None))
    final_payment: float | None = Field(Form(default=None))
    date: Date | None = Field(Form(default=None))


class DeleteForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class QueryParams(BaseModel):
    id: int | None = Field(Query(default=None))
    shift: Shift | None = Field(Query(default=None, description=enumStr(Shift)))
    search: str | None = Field(
        Query(default=None, description="Matches driver ID or shift name")
    )
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## Function
def searchSchedule(qParam: QueryParams) -> List[ScheduleSchema]:
    schedules = dataStore.schedules.all()
    if qParam.id is not None:
        schedules = [s for s in schedules if s.id == qParam.id]
    if qParam.shift is not None:
        schedules = [s for s in schedules if s.shift == qParam.shift]
    if qParam.search:
        term = qParam.search.lower()
        schedules = [
            s
            for s in schedules
            if term in s.driver_id.lower() or term in Shift(s.shift).name.lower()
        ]
    return schedules[qParam.offset : qParam.offset + qParam.limit]


## API endpoints
@route_user.post(
    URL_SCHEDULE,
    tags=["Schedule"],
    response_model=ScheduleSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Create a new driver schedule.
    Requires a role with the SCHEDULE capability.
    The final payment is computed as operating_days * 500 - tax_deduction, never below 0.
    The date defaults to today in the business timezone.
    Logs the schedule creation activity with the associated token.
    """,
)
async def create_schedule(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.SCHEDULE)

        scheduleData = jsonable_encoder(workflows.createSchedule(session, fParam))
        logEvent(token, request_info, scheduleData)
        return scheduleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.patch(
    URL_SCHEDULE,
    tags=["Schedule"],
    response_model=ScheduleSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
            exceptions.InvalidFormData(),
        ]
    ),
    description="""
    Update an existing schedule by ID.
    Requires a role with the SCHEDULE capability.
    The final payment is stored as given and is not recomputed from the other fields.
    Logs the schedule update activity with the associated token.
    """,
)
async def update_schedule(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.SCHEDULE)

        scheduleData = jsonable_encoder(workflows.updateSchedule(session, fParam))
        logEvent(token, request_info, scheduleData)
        return scheduleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.delete(
    URL_SCHEDULE,
    tags=["Schedule"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Delete an existing schedule by ID.
    Requires a role with the SCHEDULE capability.
    If the schedule does not exist, the operation is silently ignored.
    """,
)
async def delete_schedule(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.SCHEDULE)

        schedule = session.query(Schedule).filter(Schedule.id == fParam.id).first()
        if schedule is not None:
            session.delete(schedule)
            session.commit()
            dataStore.schedules.remove(schedule.id)
            logEvent(token, request_info, jsonable_encoder(schedule))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_SCHEDULE,
    tags=["Schedule"],
    response_model=List[ScheduleSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Fetch the driver schedules, most recent first.
    Requires a role with the SCHEDULE capability.
    Supports filtering by shift, searching and pagination.
    """,
)
async def fetch_schedule(qParam: QueryParams = Depends(), bearer=Depends(bearer_user)):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.SCHEDULE)

        return searchSchedule(qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from bilty.api.bearer import bearer_user
from bilty.src.db import sessionMaker
from bilty.src import accounts, exceptions, validators, getters
from bilty.src.loggers import logEvent
from bilty.src.functions import fuseExceptionResponses
from bilty.src.urls import URL_ACCOUNT, URL_ACCOUNT_TOKEN

route_user = APIRouter()


## Output Schema
class MaskedTokenSchema(BaseModel):
    id: int
    email: str
    role: int
    expires_in: int
    expires_at: datetime
    updated_on: Optional[datetime]
    created_on: datetime


class TokenSchema(MaskedTokenSchema):
    access_token: str
    token_type: Optional[str] = "bearer"


class AccountSchema(BaseModel):
    email: str
    name: str
    role: int
    capabilities: List[int]


## Input Forms
class CreateForm(BaseModel):
    email: str = Field(Form(max_length=64))
    password: str = Field(Form(max_length=64))


## API endpoints
@route_user.post(
    URL_ACCOUNT_TOKEN,
    tags=["Account"],
    response_model=TokenSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses([exceptions.InvalidCredentials()]),
    description="""
    Log in with the email and password of one of the registered users.
    Issues a new access token which is used as a bearer token afterwards.
    At most MAX_USER_TOKENS sessions are kept per user, the oldest are removed.
    Sets expiration with expires_in=MAX_TOKEN_VALIDITY (in seconds).
    Logs the authentication event for audit tracking.
    """,
)
async def create_token(
    fParam: CreateForm = Depends(),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        result = accounts.login(fParam.email, fParam.password, session)
        if isinstance(result, accounts.InvalidLogin):
            raise exceptions.InvalidCredentials()
        session.commit()
        session.refresh(result.token)

        tokenData = jsonable_encoder(result.token)
        tokenLogData = tokenData.copy()
        tokenLogData.pop("access_token")
        logEvent(result.token, request_info, tokenLogData)
        return tokenData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.delete(
    URL_ACCOUNT_TOKEN,
    tags=["Account"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Log out by revoking the access token used in this request.
    Logs the token revocation event for audit tracking.
    """,
)
async def delete_token(
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)

        accounts.logout(token, session)
        session.commit()
        logEvent(token, request_info, {"id": token.id})
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_ACCOUNT,
    tags=["Account"],
    response_model=AccountSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.InvalidIdentifier()]
    ),
    description="""
    Fetch the user owning the access token, with the capabilities of the role.
    Clients use the capabilities to decide which modules to offer.
    """,
)
async def fetch_account(bearer=Depends(bearer_user)):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        user = getters.user(token)
        if user is None:
            raise exceptions.InvalidIdentifier()

        return {
            "email": user.email,
            "name": user.name,
            "role": user.role,
            "capabilities": sorted(accounts.capabilitiesOf(user.role)),
        }
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()

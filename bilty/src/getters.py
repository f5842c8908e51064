from fastapi import Request

from bilty.src import schemas
from bilty.src.accounts import User, findUser
from bilty.src.db import UserToken


def requestInfo(request: Request) -> schemas.RequestInfo:
    """
    Extract metadata about the incoming request.

    Returns:
        schemas.RequestInfo: Pydantic model containing:
            - method (str): HTTP method (GET, POST, etc.).
            - path (str): Path portion of the request URL.
    """
    return schemas.RequestInfo(method=request.method, path=request.url.path)


def user(token: UserToken) -> User | None:
    """Fetch the static user owning a session token."""
    return findUser(token.email)

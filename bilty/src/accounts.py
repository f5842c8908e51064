"""
Static user accounts, role capabilities and session handling.

Users are not stored in the database, the user list below is the only
source of accounts. A successful login creates a `UserToken` row which is
then presented as a bearer token on every request.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, FrozenSet, List, Optional, Union
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from bilty.src.db import UserToken
from bilty.src.enums import Capability, Role
from bilty.src.constants import (
    DEFAULT_USER_PASSWORD,
    MAX_TOKEN_VALIDITY,
    MAX_USER_TOKENS,
)


class User(BaseModel):
    email: str
    name: str
    role: Role


class LoginSuccess(BaseModel):
    user: User
    token: UserToken

    model_config = ConfigDict(arbitrary_types_allowed=True)


class InvalidLogin(BaseModel):
    reason: str = "Invalid email or password"


LoginResult = Union[LoginSuccess, InvalidLogin]


USERS: List[User] = [
    User(email="admin@bilty.com", name="Admin User", role=Role.ADMIN),
    User(email="dispatcher@bilty.com", name="Dispatcher User", role=Role.DISPATCHER),
    User(email="entry@bilty.com", name="Entry Operator", role=Role.ENTRY_OPERATOR),
    User(email="accounts@bilty.com", name="Accountant User", role=Role.ACCOUNTANT),
]

passwordHasher = PasswordHasher(encoding="utf-8")
# Every user shares the configured default password
passwordHash = passwordHasher.hash(DEFAULT_USER_PASSWORD)

ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.DISPATCHER: frozenset(
        {
            Capability.DASHBOARD,
            Capability.BILTY,
            Capability.VEHICLE,
            Capability.SCHEDULE,
        }
    ),
    Role.ENTRY_OPERATOR: frozenset(
        {
            Capability.BILTY,
            Capability.SELLER,
            Capability.SUPPLIER,
        }
    ),
    Role.ACCOUNTANT: frozenset(
        {
            Capability.DASHBOARD,
            Capability.BILLING,
            Capability.REPORTS,
        }
    ),
}


def capabilitiesOf(role: Role) -> FrozenSet[Capability]:
    return ROLE_CAPABILITIES.get(role, frozenset())


def findUser(email: str) -> Optional[User]:
    email = (email or "").strip().lower()
    for user in USERS:
        if user.email == email:
            return user
    return None


def login(email: str, password: str, session: Session) -> LoginResult:
    """
    Authenticate a user and open a new session.

    The oldest sessions of the user are removed so that at most
    `MAX_USER_TOKENS` remain. The new token is flushed, the caller commits.

    Returns:
        LoginSuccess: With the user and the new token.
        InvalidLogin: If the email is unknown or the password is wrong.
    """
    user = findUser(email)
    if user is None:
        return InvalidLogin()
    try:
        passwordHasher.verify(passwordHash, password or "")
    except VerifyMismatchError:
        return InvalidLogin()

    tokens = (
        session.query(UserToken)
        .filter(UserToken.email == user.email)
        .order_by(UserToken.created_on.desc(), UserToken.id.desc())
        .all()
    )
    for token in tokens[MAX_USER_TOKENS - 1 :]:
        session.delete(token)
    session.flush()

    expires_at = datetime.now(timezone.utc) + timedelta(seconds=MAX_TOKEN_VALIDITY)
    token = UserToken(
        email=user.email,
        role=user.role,
        expires_in=MAX_TOKEN_VALIDITY,
        expires_at=expires_at,
    )
    session.add(token)
    session.flush()
    return LoginSuccess(user=user, token=token)


def logout(token: UserToken, session: Session) -> None:
    session.delete(token)
    session.flush()

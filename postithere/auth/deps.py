from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from postithere.exceptions import AuthenticationError, RegistrationClosedError
from postithere.flags import RegistrationGate
from postithere.forms import FormStore
from postithere.models import User

from .crud import UserDirectory
from .security import TokenService


_bearer = HTTPBearer(auto_error=False)


# Services are built once in create_app() and hung off app.state.


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_users(request: Request) -> UserDirectory:
    return request.app.state.users


def get_form_store(request: Request) -> FormStore:
    return request.app.state.forms


def get_registration_gate(request: Request) -> RegistrationGate:
    return request.app.state.registration_gate


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    tokens: TokenService = Depends(get_tokens),
    users: UserDirectory = Depends(get_users),
) -> User:
    """Authenticate a request from its `Authorization: Bearer <jwt>` header.

    Every failure (no header, bad token, deleted user) is the same 401.
    """

    if credentials is None or not credentials.credentials:
        raise AuthenticationError("missing_token")

    user_id = tokens.verify(credentials.credentials)
    if user_id is None:
        raise AuthenticationError("token_invalid")

    user = users.find_by_id(user_id)
    if user is None:
        raise AuthenticationError("user_not_found")
    return user


def require_registration_open(gate: RegistrationGate = Depends(get_registration_gate)) -> None:
    """Reject registration while the operator flag is off.

    Runs before the request body is validated, so a closed gate always wins.
    """
    if not gate.is_registration_open():
        raise RegistrationClosedError()

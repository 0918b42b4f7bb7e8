"""Resolve the user making a request from its bearer token.

Two entry points, ``resolve_optional`` and ``resolve_required``, return a
tagged viewer: ``Anonymous`` or ``Identified(user)``. Handlers branch on the
tag; nothing is stashed on the request.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from .config import settings
from .db import get_session_factory, session_scope
from .errors import Unauthenticated
from .models import User
from .users import UserDirectory

logger = logging.getLogger(__name__)

# OAuth2 scheme to retrieve token from the request header; missing tokens are
# handled by the resolvers below
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)


@dataclass(frozen=True)
class Anonymous:
    is_anonymous = True


@dataclass(frozen=True)
class Identified:
    user: User
    is_anonymous = False


ANONYMOUS = Anonymous()

Viewer = Union[Anonymous, Identified]


# Function to create access token (JWT)
def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_username(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    username = payload.get("sub")
    return username if isinstance(username, str) else None


def _lookup(token, session_factory):
    username = decode_username(token)
    if username is None:
        return None
    with session_scope(session_factory) as session:
        return UserDirectory(session).get_by_username(username)


def resolve_optional(token: Optional[str], session_factory) -> Viewer:
    user = _lookup(token, session_factory)
    if user is None:
        if token:
            logger.debug("Ignoring unusable token, treating request as anonymous")
        return ANONYMOUS
    return Identified(user)


def resolve_required(token: Optional[str], session_factory) -> Identified:
    user = _lookup(token, session_factory)
    if user is None:
        raise Unauthenticated()
    return Identified(user)


def optional_viewer(
    token: Optional[str] = Depends(oauth2_scheme),
    session_factory=Depends(get_session_factory),
) -> Viewer:
    return resolve_optional(token, session_factory)


def required_viewer(
    token: Optional[str] = Depends(oauth2_scheme),
    session_factory=Depends(get_session_factory),
) -> Identified:
    return resolve_required(token, session_factory)

"""Authentication helpers and FastAPI security dependency.

This module provides utilities to decode JWT tokens and a FastAPI
dependency `get_current_user` that validates the bearer token and
returns the corresponding `User` model instance from the database.

Token verification raises `AuthorizationError` on any failure; the
application's exception handler turns it into a 401 response with a
`WWW-Authenticate: Bearer` challenge.
"""

import logging
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session
from .config import settings
from .database import get_session
from .errors import AuthorizationError
from . import models, repositories

bearer_scheme = HTTPBearer(auto_error=False)
logger = logging.getLogger("app.auth")


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises `AuthorizationError`.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthorizationError('token expired')
    except jwt.InvalidTokenError:
        raise AuthorizationError('invalid token')


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user.

    The function extracts the bearer token from the request, decodes it
    and looks the user up in the request's session, so the returned
    instance can be used by services sharing that session.
    """
    if credentials is None or credentials.scheme.lower() != 'bearer':
        raise AuthorizationError('not authenticated')
    payload = decode_token(credentials.credentials)
    user_id = payload.get('user_id')
    if not isinstance(user_id, int):
        raise AuthorizationError('invalid token payload')
    user = repositories.UserRepository(db).get(user_id)
    if not user:
        logger.warning("token_for_unknown_user user_id=%s", user_id)
        raise AuthorizationError('user not found')
    return user

"""
Session security: password hashing, the session token codec and the cookie auth gate.

Tokens are HS256 JWTs carrying ``{"id", "Email"}`` plus ``iat``/``exp``. There is no
revocation list, so a token stays valid until it expires even if the account is gone.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Cookie, HTTPException, Response
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

import settings

logger = logging.getLogger("ecommerce.auth")

ALGORITHM = "HS256"
TOKEN_TTL = timedelta(days=7)
COOKIE_NAME = "token"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenError(Exception):
    """Base class for session token failures."""


class Malformed(TokenError):
    pass


class InvalidSignature(TokenError):
    pass


class Expired(TokenError):
    pass


# Passwords

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # stored value is not a recognised hash
        return False


# Token codec

def issue_token(payload: Dict[str, Any], secret: str, ttl: timedelta = TOKEN_TTL,
                now: Optional[datetime] = None) -> str:
    issued_at = now or datetime.now(timezone.utc)
    to_encode = dict(payload)
    to_encode.update({"iat": issued_at, "exp": issued_at + ttl})
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str) -> Dict[str, Any]:
    if not isinstance(token, str) or not token:
        raise Malformed("Empty token")
    try:
        jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise Malformed(str(exc)) from exc
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM])
    except ExpiredSignatureError as exc:
        raise Expired(str(exc)) from exc
    except JWTError as exc:
        raise InvalidSignature(str(exc)) from exc


def create_session_token(user_id: Any, email: Optional[str]) -> str:
    return issue_token({"id": str(user_id), "Email": email}, settings.JWT_SECRET)


# Cookie helpers

def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=int(TOKEN_TTL.total_seconds()),
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        COOKIE_NAME,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


# Dependency to get current user

def get_current_user(token: Optional[str] = Cookie(default=None)) -> Dict[str, Any]:
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        payload = verify_token(token, settings.JWT_SECRET)
    except TokenError as exc:
        logger.info("Rejected session token (%s): %s", type(exc).__name__, exc)
        raise HTTPException(status_code=401, detail="Invalid token")
    if not ObjectId.is_valid(str(payload.get("id", ""))):
        logger.info("Rejected session token without a valid user id")
        raise HTTPException(status_code=401, detail="Invalid token")
    return payload

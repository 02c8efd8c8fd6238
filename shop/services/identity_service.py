"""Resolve the buyer identity from a Bearer token issued by the auth service."""
import logging
from dataclasses import dataclass
from typing import Optional

import jwt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str


def identity_from_header(auth_header: Optional[str], secret: str, algorithm: str = 'HS256') -> Optional[Identity]:
    """
    Decode "Bearer <jwt>" into an Identity.

    Missing, expired or invalid tokens yield None: checkout is open to guests.
    """
    if not auth_header or not auth_header.startswith('Bearer '):
        return None

    token = auth_header[len('Bearer '):].strip()
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("[AUTH] Expired token on checkout, treating buyer as guest")
        return None
    except jwt.InvalidTokenError:
        logger.warning("[AUTH] Invalid token on checkout, treating buyer as guest")
        return None

    user_id = payload.get('sub')
    email = payload.get('email')
    if not user_id or not email:
        return None
    return Identity(user_id=str(user_id), email=str(email))


def resolve_buyer_email(identity: Optional[Identity], supplied_email: Optional[str]) -> str:
    """The logged-in account's email wins over whatever the form sent."""
    if identity is not None and identity.email:
        return identity.email
    return (supplied_email or '').strip()


def current_identity() -> Optional[Identity]:
    """Identity of the buyer making the current Flask request."""
    from flask import current_app, request
    return identity_from_header(
        request.headers.get('Authorization'),
        current_app.config.get('JWT_SECRET', ''),
        current_app.config.get('JWT_ALGORITHM', 'HS256'),
    )

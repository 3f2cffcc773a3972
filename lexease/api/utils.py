"""
JWT utilities for issuing and verifying access tokens.

Functions
---------
create_access_token(data: dict) -> str
    Creates a signed JWT access token with an expiration (`exp`) claim. The
    service never issues tokens itself (users sign in with the external
    identity provider); this is a tooling helper for scripts and the test
    suite that mint tokens accepted by `verify_token`.
verify_token(token: str) -> str | None
    Verify a JWT's signature & expiration and return the subject (`sub`) if valid.
get_current_user(token: str = Cookie(None)) -> str
    FastAPI dependency resolving the `token` cookie to a user id.

Environment contract (from `settings`)
--------------------------------------
SECRET_KEY : str
    HMAC signing key for JWTs.
ALGORITHM : str
    JWT signing algorithm (e.g., "HS256").
ACCESS_TOKEN_EXPIRE_MINUTES : int
    Token lifetime window in minutes.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Cookie, HTTPException
from jose import JWTError, jwt

from lexease.database.config.config import settings

logger = logging.getLogger(__name__)


def create_access_token(data: dict) -> str:
    """
    Create a signed JWT access token.

    Parameters
    ----------
    data : dict
        Claims to embed in the token. ``sub`` carries the user id and is
        retrieved by `verify_token`.

    Returns
    -------
    str
        Encoded JWT string.

    Notes
    -----
    - Adds an `exp` (expiration) claim calculated from ACCESS_TOKEN_EXPIRE_MINUTES.
    - Uses `settings.SECRET_KEY` and `settings.ALGORITHM` for signing.
    """
    expiration_time = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    encoding = data.copy()
    # exp is a NumericDate (seconds since epoch)
    expires = int(datetime.now(timezone.utc).timestamp()) + (int(expiration_time) * 60)
    encoding.update({"exp": expires})
    return jwt.encode(encoding, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Optional[str]:
    """
    Verify a JWT and return its subject.

    Parameters
    ----------
    token : str
        Encoded JWT string from the client (the `token` cookie).

    Returns
    -------
    str | None
        The `sub` claim (subject) if the token is valid, otherwise None.

    Notes
    -----
    - Decodes and validates the signature and expiration using SECRET_KEY/ALGORITHM.
    - On any JWTError (invalid signature, expired, malformed), returns None.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload.get("sub")
    except JWTError as e:
        logger.info("Rejected access token: %s", e)
        return None


def get_current_user(token: str = Cookie(None)) -> str:
    """Resolve the `token` cookie to a user id, or answer 401."""
    if not token:
        raise HTTPException(status_code=401, detail="Missing Token")
    user_id = verify_token(token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user_id

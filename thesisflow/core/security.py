from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from thesisflow.core.config import get_settings


def decode_token(token: str) -> Optional[UUID]:
    """Decode and validate a bearer token. Returns the user id (``sub``) if valid.

    Tokens are issued by the institution's identity provider; this service
    only verifies the signature and expiry.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None
    try:
        return UUID(str(user_id))
    except ValueError:
        return None

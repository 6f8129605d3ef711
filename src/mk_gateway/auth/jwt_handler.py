"""JWT access-token verification.

Tokens are issued by the external account service; this service only
verifies them. HS256 with the shared JWT_SECRET.

Claims consumed:
    sub              buyer/user id (required)
    type             must be "access"
    user_account_id  optional sub-account id, forwarded to wallet debits
"""

from typing import Any

from jose import JWTError, jwt

from config.settings import settings
from src.mk_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: signature/expiry invalid, or wrong token type.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type", "access") != "access":
        raise InvalidCredentialsError()
    return payload

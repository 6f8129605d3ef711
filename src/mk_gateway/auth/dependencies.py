"""FastAPI dependency: get_current_user.

Usage in any protected router:
    from src.mk_gateway.auth.dependencies import get_current_user

    @router.post("/orders")
    async def create(user: AuthenticatedUser = Depends(get_current_user)):
        ...
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.errors import InvalidCredentialsError
from src.mk_gateway.auth.jwt_handler import decode_access_token
from src.mk_gateway.user.repository import UserDirectory

bearer_scheme = HTTPBearer(auto_error=False)

# Reusable 401 exception with WWW-Authenticate header
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    trade_role: str | None = None
    user_account_id: str | None = None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> AuthenticatedUser:
    """Validate the Bearer token and confirm the user still exists.

    Raises HTTP 401 if the token is missing, invalid, expired, or names an
    unknown user.
    """
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        payload = decode_access_token(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION

    buyer = await UserDirectory().get_buyer(db, str(user_id))
    if buyer is None:
        raise _CREDENTIALS_EXCEPTION

    account_id = payload.get("user_account_id")
    return AuthenticatedUser(
        id=buyer.id,
        trade_role=buyer.trade_role,
        user_account_id=str(account_id) if account_id is not None else None,
    )

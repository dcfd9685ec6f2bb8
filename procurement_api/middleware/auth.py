from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
import structlog

from procurement_api.services.auth_service import verify_access_token

logger = structlog.get_logger()

# auto_error=False so a missing header is a 401 like a bad token
security = HTTPBearer(auto_error=False)


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": code, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """FastAPI dependency: extract and verify JWT, return user claims dict."""
    if credentials is None:
        raise _unauthorized("AUTH_REQUIRED", "Not authenticated")
    try:
        payload = verify_access_token(credentials.credentials)
        return {
            "user_id": payload["sub"],
            "username": payload.get("username"),
            "role": payload["role"],
            "email": payload["email"],
            "supplier_id": payload.get("supplier_id"),
        }
    except (JWTError, KeyError) as e:
        logger.warning("auth_token_invalid", error=str(e))
        raise _unauthorized("AUTH_TOKEN_INVALID", "Invalid or expired token")

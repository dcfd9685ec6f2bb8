from datetime import datetime, timedelta, timezone
from typing import Optional
import secrets
import string

from jose import jwt, JWTError
from passlib.context import CryptContext
import structlog

from procurement_api.config import settings

logger = structlog.get_logger()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# ---------- password helpers ----------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def generate_temporary_password(length: int = 16) -> str:
    """Random password with at least one upper, lower, digit and symbol."""
    symbols = "!@#$%^&*"
    alphabet = string.ascii_letters + string.digits + symbols
    while True:
        pwd = "".join(secrets.choice(alphabet) for _ in range(length))
        if (
            any(c.isupper() for c in pwd)
            and any(c.islower() for c in pwd)
            and any(c.isdigit() for c in pwd)
            and any(c in symbols for c in pwd)
        ):
            return pwd


# ---------- token generation ----------

def create_access_token(
    user_id: str,
    username: str,
    user_type: str,
    email: str,
    supplier_id: Optional[str] = None,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "username": username,
        "role": user_type,
        "email": email,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        "type": "access",
    }
    if supplier_id:
        claims["supplier_id"] = str(supplier_id)
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def generate_quote_token(rfq_id: str, supplier_id: str) -> str:
    """Signed link token that lets a supplier quote one BRFQ without logging in."""
    now = datetime.now(timezone.utc)
    claims = {
        "rfqId": str(rfq_id),
        "supplierId": str(supplier_id),
        "iat": now,
        "exp": now + timedelta(days=settings.QUOTE_TOKEN_EXPIRE_DAYS),
        "type": "quote",
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


# ---------- token verification ----------

def decode_token(token: str) -> dict:
    """Decode and verify a JWT token. Raises JWTError on failure."""
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


def verify_access_token(token: str) -> dict:
    """Verify an access token and return its claims."""
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    return payload


def verify_quote_token(token: str) -> dict:
    """
    Verify a quote token and return ``{"rfqId", "supplierId"}``.

    Raises JWTError when the signature is bad, the token expired, or either id
    is missing from the payload.
    """
    payload = decode_token(token)
    if payload.get("type") not in (None, "quote"):
        raise JWTError("Not a quote token")
    rfq_id = payload.get("rfqId")
    supplier_id = payload.get("supplierId")
    if not rfq_id or not supplier_id:
        raise JWTError("Quote token payload is missing rfqId or supplierId")
    return {"rfqId": str(rfq_id), "supplierId": str(supplier_id)}

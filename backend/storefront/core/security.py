from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from storefront.core.config import settings


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a shopper token. Login lives in the account service; this is used by seed scripts and tests."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=24))
    to_encode = {
        "sub": user_id,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access",
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, verify_exp: bool = True) -> Optional[dict]:
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": verify_exp}
        )
        if payload.get("type") != "access":
            return None
        return payload
    except JWTError:
        return None

import jwt
import os
from datetime import datetime, timedelta
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from fastapi import Depends, HTTPException
from typing import Annotated, Optional
import pytz
from models.user import User

security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"


def _secret() -> Optional[str]:
    return os.getenv("JWT_SECRET")


def generate_user_token(payload: dict, expires_in: Optional[timedelta] = None) -> str:
    """Sign ``payload`` (``{"id": user_id}``), optionally with an ``exp`` claim."""
    jwt_key = _secret()
    if not jwt_key:
        raise ValueError("JWT_SECRET environment variable is not set")
    claims = dict(payload)
    if expires_in is not None:
        claims["exp"] = datetime.now(pytz.utc) + expires_in
    return jwt.encode(claims, jwt_key, algorithm=ALGORITHM)


def decode_user_token(token: str) -> dict:
    jwt_key = _secret()
    if not jwt_key:
        raise HTTPException(status_code=401, detail="Invalid Token")
    try:
        return jwt.decode(token, jwt_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid Token")


async def get_current_user(credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)]) -> User:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    claims = decode_user_token(token=credentials.credentials)
    user_id = claims.get("id") if isinstance(claims, dict) else None
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid Token")

    user = await User.get_or_none(id=user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid Credentials")
    return user

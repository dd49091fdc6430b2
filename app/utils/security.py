"""Bearer token verification."""
from typing import Optional

import jwt

from app.config import settings


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT issued by the auth service. None if invalid or expired."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None

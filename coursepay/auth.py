from fastapi import Header
from jose import JWTError, jwt

from coursepay.config import settings
from coursepay.errors import AuthFailure


def verify_token(authorization: str = Header(None)) -> str:
    """Validate the bearer token and return the caller's user ID (the ``sub`` claim)."""
    try:
        scheme, token = (authorization or "").split()
        if scheme.lower() != "bearer":
            raise ValueError("unsupported scheme")
        claims = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
        user_id = claims.get("sub")
        if not user_id:
            raise ValueError("token has no subject")
    except (ValueError, JWTError) as exc:
        raise AuthFailure(
            "Unauthorized: You must be logged in to purchase a course.",
            {"reason": str(exc)},
        )
    return str(user_id)

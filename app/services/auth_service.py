import logging
from typing import Optional
from jose import JWTError, jwt
from app.core.config import settings
from app.core.exceptions import AuthenticationRequired
from app.schemas.auth import Identity

logger = logging.getLogger(__name__)


def verify_access_token(
    token: Optional[str],
    secret: Optional[str] = None,
    audience: Optional[str] = None,
) -> Identity:
    """
    Verifies a hosted-auth access token (HS256, signed with the project's JWT secret)
    and returns the identity it carries.
    """
    if not token:
        raise AuthenticationRequired("Missing access token")
    if token.count(".") != 2:
        raise AuthenticationRequired("Token is not a valid JWT")

    try:
        claims = jwt.decode(
            token,
            secret or settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=audience or settings.SUPABASE_JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.warning(f"Rejected access token: {e}")
        raise AuthenticationRequired("Invalid or expired token") from e

    subject = claims.get("sub")
    if not subject:
        raise AuthenticationRequired("Token has no subject")

    return Identity(
        id=subject,
        email=claims.get("email"),
        user_metadata=claims.get("user_metadata") or {},
    )


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None

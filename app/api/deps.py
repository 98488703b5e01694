"""Shared dependencies for the HTTP routers."""
import logging
from typing import Optional
from fastapi import Depends, Header, HTTPException
from app.core.exceptions import (
    AuthenticationRequired,
    CompanionAppError,
    DuplicateDecisionError,
    NotFoundError,
    ValidationError,
)
from app.schemas.auth import Identity
from app.services.auth_service import bearer_token, verify_access_token
from app.services.gateway import DataGateway

logger = logging.getLogger(__name__)


async def get_current_identity(authorization: Optional[str] = Header(None)) -> Optional[Identity]:
    """Identity from the Bearer access token, or None when absent or invalid."""
    token = bearer_token(authorization)
    if not token:
        return None
    try:
        return verify_access_token(token)
    except AuthenticationRequired:
        return None


def require_identity(identity: Optional[Identity] = Depends(get_current_identity)) -> Identity:
    if not identity:
        raise HTTPException(status_code=401, detail="Authentication required")
    return identity


def get_gateway(identity: Identity = Depends(require_identity)) -> DataGateway:
    return DataGateway.for_identity(identity)


def http_error(error: CompanionAppError) -> HTTPException:
    """Map a domain error to its HTTP status."""
    if isinstance(error, AuthenticationRequired):
        return HTTPException(status_code=401, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, DuplicateDecisionError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    logger.error(f"Backend error: {error}")
    return HTTPException(status_code=502, detail="Backend request failed")

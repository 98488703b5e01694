"""Sign-in endpoints, proxied to the hosted auth service."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException
from app.api.deps import http_error, require_identity
from app.core.config import settings
from app.core.exceptions import CompanionAppError
from app.infrastructure.clients.supabase_auth import AuthApiError, SupabaseAuthClient
from app.schemas.auth import Credentials, Identity, RefreshRequest
from app.services.auth_service import bearer_token
from app.services.gateway import DataGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_auth_client() -> SupabaseAuthClient:
    return SupabaseAuthClient(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)


async def _provision(identity: Identity) -> None:
    """Best-effort: a failure here never blocks sign-in."""
    try:
        await DataGateway.for_identity(identity).ensure_profile()
    except CompanionAppError as e:
        logger.error(f"Profile provisioning failed for {identity.id}: {e}")


def _auth_error(e: CompanionAppError):
    if isinstance(e, AuthApiError) and e.status and 400 <= e.status < 500:
        return HTTPException(status_code=400, detail="Invalid email or password")
    return http_error(e)


@router.post("/sign-in")
async def sign_in(req: Credentials, client: SupabaseAuthClient = Depends(get_auth_client)):
    try:
        session = await client.sign_in_with_password(req.email, req.password)
    except CompanionAppError as e:
        raise _auth_error(e)
    await _provision(session.user)
    return session


@router.post("/sign-up")
async def sign_up(req: Credentials, client: SupabaseAuthClient = Depends(get_auth_client)):
    try:
        session = await client.sign_up(req.email, req.password)
    except CompanionAppError as e:
        raise _auth_error(e)
    if session is None:
        return {"session": None, "message": "Check your email to confirm your account"}
    await _provision(session.user)
    return {"session": session}


@router.post("/refresh")
async def refresh(req: RefreshRequest, client: SupabaseAuthClient = Depends(get_auth_client)):
    try:
        return await client.refresh_session(req.refresh_token)
    except CompanionAppError as e:
        raise http_error(e)


@router.post("/sign-out")
async def sign_out(
    authorization: Optional[str] = Header(None),
    identity: Identity = Depends(require_identity),
    client: SupabaseAuthClient = Depends(get_auth_client),
):
    try:
        await client.sign_out(bearer_token(authorization))
    except CompanionAppError as e:
        logger.error(f"Remote sign-out failed for {identity.id}: {e}")
    return {"success": True}


@router.get("/me")
async def me(identity: Identity = Depends(require_identity)):
    return identity

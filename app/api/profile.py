"""Profile, preferences, stats and image endpoints for the signed-in user."""
import logging
from fastapi import APIRouter, Depends, File, UploadFile
from app.api.deps import get_gateway, http_error
from app.core.exceptions import CompanionAppError
from app.schemas.profile import ImageUpload, UserPreferencesUpdate, UserProfileUpdate
from app.services.gateway import DataGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webapp/me", tags=["profile"])


@router.get("/profile")
async def get_profile(gateway: DataGateway = Depends(get_gateway)):
    try:
        profile = await gateway.get_profile()
        await gateway.touch_last_active()
    except CompanionAppError as e:
        raise http_error(e)
    return {"profile": profile}


@router.patch("/profile")
async def update_profile(req: UserProfileUpdate, gateway: DataGateway = Depends(get_gateway)):
    try:
        return await gateway.update_profile(req)
    except CompanionAppError as e:
        raise http_error(e)


@router.get("/preferences")
async def get_preferences(gateway: DataGateway = Depends(get_gateway)):
    try:
        preferences = await gateway.get_preferences()
    except CompanionAppError as e:
        raise http_error(e)
    return {"preferences": preferences}


@router.patch("/preferences")
async def update_preferences(req: UserPreferencesUpdate, gateway: DataGateway = Depends(get_gateway)):
    try:
        return await gateway.update_preferences(req)
    except CompanionAppError as e:
        raise http_error(e)


@router.get("/stats")
async def get_stats(gateway: DataGateway = Depends(get_gateway)):
    try:
        stats = await gateway.get_stats()
    except CompanionAppError as e:
        raise http_error(e)
    return {"stats": stats}


# ========================
# Images
# ========================

async def _read_upload(file: UploadFile) -> ImageUpload:
    return ImageUpload(
        filename=file.filename or "",
        content_type=file.content_type or "",
        data=await file.read(),
    )


@router.post("/avatar")
async def upload_avatar(file: UploadFile = File(...), gateway: DataGateway = Depends(get_gateway)):
    upload = await _read_upload(file)
    try:
        url = await gateway.upload_avatar(upload)
    except CompanionAppError as e:
        raise http_error(e)
    return {"url": url}


@router.get("/avatar")
async def get_avatar(cache_bust: bool = False, gateway: DataGateway = Depends(get_gateway)):
    try:
        url = await gateway.get_avatar_url(cache_bust=cache_bust)
    except CompanionAppError as e:
        raise http_error(e)
    return {"url": url}


@router.delete("/avatar")
async def delete_avatar(gateway: DataGateway = Depends(get_gateway)):
    try:
        await gateway.delete_avatar()
    except CompanionAppError as e:
        raise http_error(e)
    return {"success": True}


@router.post("/banner")
async def upload_banner(file: UploadFile = File(...), gateway: DataGateway = Depends(get_gateway)):
    upload = await _read_upload(file)
    try:
        url = await gateway.upload_banner(upload)
    except CompanionAppError as e:
        raise http_error(e)
    return {"url": url}


@router.get("/banner")
async def get_banner(cache_bust: bool = False, gateway: DataGateway = Depends(get_gateway)):
    try:
        url = await gateway.get_banner_url(cache_bust=cache_bust)
    except CompanionAppError as e:
        raise http_error(e)
    return {"url": url}


@router.delete("/banner")
async def delete_banner(gateway: DataGateway = Depends(get_gateway)):
    try:
        await gateway.delete_banner()
    except CompanionAppError as e:
        raise http_error(e)
    return {"success": True}

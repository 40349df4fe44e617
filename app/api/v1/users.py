"""Current user's profile endpoints."""

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_cache, require_auth
from app.core.cache import CacheManager, profile_cache_key
from app.db.session import atomic, get_db
from app.schemas.auth import UserResponse
from app.schemas.profile import ProfileUpdate, UserProfileResponse
from app.services.activity_log import log_activity
from app.services.profile_service import (
    build_profile_response,
    get_profile_by_user,
    update_student_profile,
)
from app.utils import constants

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/profile", response_model=UserProfileResponse)
async def get_my_profile(
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the current user with their student profile

    **Auth**: any authenticated user (students also get ``profile``)
    """
    profile = await get_profile_by_user(db, caller.id)
    return UserProfileResponse(
        user=UserResponse.model_validate(caller.user),
        profile=await build_profile_response(db, profile) if profile else None,
    )


@router.put("/profile", response_model=UserProfileResponse)
async def update_my_profile(
    payload: ProfileUpdate,
    request: Request,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    """
    Update the current user's profile - Upsert operation

    **Auth**: any authenticated user; profile fields are for students only

    Only provided fields change. ``technical_skills``, ``soft_skills`` and
    ``interests`` replace the stored lists. The completion percentage is
    recomputed in the same transaction.
    """
    async with atomic(db):
        profile = await update_student_profile(db, caller.user, payload)
        log_activity(
            db,
            caller.id,
            constants.ACTION_PROFILE_UPDATE,
            resource_type="student_profile" if profile else "user",
            resource_id=profile.id if profile else caller.id,
            details={"fields": sorted(payload.model_dump(exclude_unset=True))},
            request=request,
        )

    if profile is not None:
        cache.delete(profile_cache_key(profile.id))
        logger.info(
            "profile_updated",
            profile_id=str(profile.id),
            completion=profile.profile_completion_percentage,
        )

    return UserProfileResponse(
        message="Profile updated successfully",
        user=UserResponse.model_validate(caller.user),
        profile=await build_profile_response(db, profile) if profile else None,
    )

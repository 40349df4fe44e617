"""
File upload API
Resumes, documents and profile photos stored on local disk.
"""

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_cache, get_own_profile, require_auth
from app.config import settings
from app.core.cache import CacheManager, profile_cache_key
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.core.rate_limit import upload_limiter
from app.core.security import Role
from app.db.session import atomic, get_db
from app.models.activity_log import UploadedFile
from app.models.student import StudentProfile
from app.schemas.common import APIResponse
from app.schemas.file import FileEnvelope, FileListResponse, UploadedFileResponse
from app.services.activity_log import client_ip, log_activity
from app.services.file_storage import FileStorage, get_storage
from app.utils import constants
from app.utils.validators import validate_file_upload

logger = structlog.get_logger(__name__)

router = APIRouter()

IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png")


def detect_category(file_type: str, filename: str, requested: Optional[str] = None) -> str:
    """Explicit category if valid, otherwise guessed from the type and name."""
    if requested in constants.FILE_CATEGORIES:
        return requested
    if file_type in IMAGE_TYPES:
        return "profile_photo"
    lowered = (filename or "").lower()
    if "resume" in lowered or "cv" in lowered:
        return "resume"
    return "document"


async def load_file(db: AsyncSession, file_id: uuid.UUID) -> UploadedFile:
    row = (await db.execute(select(UploadedFile).where(UploadedFile.id == file_id))).scalar_one_or_none()
    if row is None:
        raise NotFoundError("File not found")
    return row


@router.post(
    "/upload",
    response_model=FileEnvelope,
    status_code=201,
    dependencies=[Depends(upload_limiter)],
)
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    category: Optional[str] = Form(None),
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
    storage: FileStorage = Depends(get_storage),
):
    """
    Upload a file

    **Auth**: any authenticated user

    PDF, DOC, DOCX, JPG and PNG up to the configured size. A student's
    image upload becomes their profile photo.
    """
    # Read one byte past the limit so oversized uploads are caught without buffering them whole
    content = await file.read(settings.MAX_UPLOAD_SIZE + 1)
    original_name = file.filename or ""
    file_type = file.content_type or ""

    result = validate_file_upload(
        {"file_type": file_type, "file_size": len(content), "file_name": original_name},
        max_size=settings.MAX_UPLOAD_SIZE,
    )
    if not content:
        result.errors.append("File is empty")
    if not result.is_valid:
        raise ValidationError(result.errors)

    file_category = detect_category(file_type, original_name, category)
    stored_name = FileStorage.stored_name(original_name)
    storage.save(caller.id, stored_name, content)

    profile = None
    try:
        async with atomic(db):
            record = UploadedFile(
                user_id=caller.id,
                filename=stored_name,
                original_filename=original_name,
                file_type=file_type,
                file_size=len(content),
                category=file_category,
                upload_ip=client_ip(request),
            )
            db.add(record)
            await db.flush()

            if file_category == "profile_photo" and caller.role == Role.STUDENT:
                profile = await get_own_profile(db, caller)
                if profile is not None:
                    profile.profile_photo_id = record.id

            log_activity(db, caller.id, constants.ACTION_FILE_UPLOAD, resource_type="file",
                         resource_id=record.id, details={"category": file_category},
                         request=request)
    except Exception:
        # Metadata never landed; drop the orphaned bytes
        storage.delete(caller.id, stored_name)
        raise

    if profile is not None:
        cache.delete(profile_cache_key(profile.id))

    return FileEnvelope(message="File uploaded successfully", file=UploadedFileResponse.model_validate(record))


@router.get("", response_model=FileListResponse)
async def list_files(
    category: Optional[str] = None,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """The caller's own uploads, newest first."""
    query = select(UploadedFile).where(UploadedFile.user_id == caller.id)
    if category:
        query = query.where(UploadedFile.category == category)
    result = await db.execute(query.order_by(UploadedFile.created_at.desc()))
    return FileListResponse(files=[UploadedFileResponse.model_validate(f) for f in result.scalars().all()])


@router.get("/{file_id}")
async def download_file(
    file_id: uuid.UUID,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    """
    Download a file

    **Auth**: owner, Teacher, Admin
    """
    record = await load_file(db, file_id)
    if record.user_id != caller.id and not caller.is_staff:
        raise AuthorizationError("Access denied")
    if not storage.exists(record.user_id, record.filename):
        logger.error("file_content_missing", file_id=str(record.id))
        raise NotFoundError("File not found")

    return FileResponse(
        storage.path_for(record.user_id, record.filename),
        media_type=record.file_type,
        filename=record.original_filename,
    )


@router.delete("/{file_id}", response_model=APIResponse)
async def delete_file(
    file_id: uuid.UUID,
    request: Request,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
    storage: FileStorage = Depends(get_storage),
):
    """
    Delete a file

    **Auth**: owner, Admin
    """
    record = await load_file(db, file_id)
    if record.user_id != caller.id and caller.role != Role.ADMIN:
        raise AuthorizationError("Access denied")

    photo_of = await db.execute(
        select(StudentProfile.id).where(StudentProfile.profile_photo_id == record.id)
    )
    profile_ids = list(photo_of.scalars().all())

    async with atomic(db):
        if profile_ids:
            await db.execute(
                update(StudentProfile)
                .where(StudentProfile.id.in_(profile_ids))
                .values(profile_photo_id=None)
                .execution_options(synchronize_session=False)
            )
        await db.delete(record)
        log_activity(db, caller.id, constants.ACTION_FILE_DELETE, resource_type="file",
                     resource_id=file_id, request=request)

    storage.delete(record.user_id, record.filename)
    for profile_id in profile_ids:
        cache.delete(profile_cache_key(profile_id))
    return APIResponse(message="File deleted successfully")

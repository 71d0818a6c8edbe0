# drive_auth/drive/router.py
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from drive_auth.auth.resolvers import AuthorizationResolver
from drive_auth.auth.schemas import UserProfile
from drive_auth.core.config import Settings
from drive_auth.core.dependencies import get_app_settings, get_current_user, get_db, get_resolver
from . import schemas
from .service import DriveService

router = APIRouter(
    prefix="/api",
    tags=["Drive"],
)
logger = logging.getLogger(__name__)


@router.get(
    "/listFiles",
    response_model=List[schemas.FileSummary],
    summary="List the 10 most recently modified files",
)
def list_files(
    user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
    resolver: AuthorizationResolver = Depends(get_resolver),
    settings: Settings = Depends(get_app_settings),
):
    # The token must be valid before Drive is called; refresh happens inside resolve()
    access_token = resolver.resolve(db, user)
    logger.info(f"Listing recent files for user {user.id}")
    return DriveService(access_token, timeout=settings.HTTP_TIMEOUT).list_recent_files()

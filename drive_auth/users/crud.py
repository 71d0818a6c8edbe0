# drive_auth/users/crud.py
from datetime import datetime
from typing import Optional, Sequence
import logging

from sqlalchemy.orm import Session

from .models import Credential, User

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.get(User, user_id)


def upsert_user(db: Session, *, user_id: str, email: str, name: Optional[str], photo: Optional[str]) -> User:
    user = get_user(db, user_id)
    if user:
        logger.info(f"Updating user: {email}")
        user.email = email
        user.name = name
        user.photo = photo
    else:
        logger.info(f"Creating new user: {email}")
        user = User(id=user_id, email=email, name=name, photo=photo)
        db.add(user)

    try:
        db.commit()
        db.refresh(user)
        return user
    except Exception as e:
        logger.error(f"Database commit failed during upsert for user {email}: {e}", exc_info=True)
        db.rollback()
        raise


def load_credential(db: Session, user_id: str) -> Optional[Credential]:
    return db.get(Credential, user_id)


def save_credential(
    db: Session,
    user_id: str,
    *,
    access_token: str,
    refresh_token: Optional[str],
    expiry: Optional[datetime],
    scopes: Optional[Sequence[str]] = None,
    token_type: Optional[str] = "Bearer",
) -> Credential:
    """
    Insert or update the stored credential for a user in one transaction.
    A missing refresh token keeps the one already stored: Google only
    returns it on the first consent.
    """
    credential = load_credential(db, user_id)
    if credential is None:
        credential = Credential(user_id=user_id)
        db.add(credential)
    credential.access_token = access_token
    if refresh_token:
        credential.refresh_token = refresh_token
    credential.expiry = expiry
    if scopes:
        credential.scope = " ".join(scopes)
    credential.token_type = token_type

    try:
        db.commit()
        db.refresh(credential)
        return credential
    except Exception as e:
        logger.error(f"Database commit failed while saving credential for user {user_id}: {e}", exc_info=True)
        db.rollback()
        raise

# drive_auth/auth/session.py
import base64
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from fastapi import FastAPI, Request
from itsdangerous import BadSignature
from pydantic import ValidationError
from starlette.middleware.sessions import SessionMiddleware
from starlette.types import ASGIApp

from drive_auth.core.config import Settings
from .schemas import UserProfile

logger = logging.getLogger(__name__)

USER_KEY = "user"


def session_fernet(secret_key: str) -> Fernet:
    """Derives the session cipher from COOKIE_ENCRYPTION_KEY."""
    key = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=None,
        info=b"drive-auth session cookie",
    ).derive(secret_key.encode("utf-8"))
    return Fernet(base64.urlsafe_b64encode(key))


class FernetSigner:
    """Stands in for the itsdangerous signer SessionMiddleware seals cookies with."""

    def __init__(self, fernet: Fernet):
        self.fernet = fernet

    def sign(self, value: bytes) -> bytes:
        return self.fernet.encrypt(value)

    def unsign(self, value: bytes, max_age: Optional[int] = None) -> bytes:
        try:
            return self.fernet.decrypt(value, ttl=max_age)
        except InvalidToken as e:
            raise BadSignature("Session cookie could not be decrypted") from e


class EncryptedSessionMiddleware(SessionMiddleware):
    """SessionMiddleware whose cookie is Fernet-encrypted (AES-CBC + HMAC) instead of only signed."""

    def __init__(self, app: ASGIApp, secret_key: str, **kwargs):
        super().__init__(app, secret_key=secret_key, **kwargs)
        self.signer = FernetSigner(session_fernet(secret_key))


def install_session_middleware(app: FastAPI, settings: Settings) -> None:
    """Encrypted cookie session; only the server can read it, with COOKIE_ENCRYPTION_KEY."""
    app.add_middleware(
        EncryptedSessionMiddleware,
        secret_key=settings.COOKIE_ENCRYPTION_KEY,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site=settings.COOKIE_SAMESITE,
        https_only=settings.is_production,
    )


class SessionManager:
    """Binds the signed-in user to the encrypted session cookie and reads it back."""

    def establish(self, request: Request, user: UserProfile) -> None:
        request.session[USER_KEY] = user.model_dump()
        logger.info(f"Session established for user {user.id}")

    def current(self, request: Request) -> Optional[UserProfile]:
        # The middleware already drops cookies that fail to decrypt or have expired
        data = request.session.get(USER_KEY)
        if not isinstance(data, dict) or not data.get("id"):
            return None
        try:
            return UserProfile.model_validate(data)
        except ValidationError:
            logger.warning("Discarding malformed user in session")
            return None

    def clear(self, request: Request) -> None:
        request.session.clear()

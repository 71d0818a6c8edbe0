# drive_auth/auth/resolvers.py
import abc
import logging
import threading
import weakref
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from sqlalchemy.orm import Session

from drive_auth.core.config import TOKEN_URI, Settings
from drive_auth.core.exceptions import AuthorizationError
from drive_auth.users import crud as users_crud
from drive_auth.users.models import Credential
from .schemas import UserProfile
from .service import AuthService
from .transport import TimeoutRequest

logger = logging.getLogger(__name__)


class CredentialState(str, Enum):
    NO_CREDENTIAL = "no_credential"
    VALID = "valid"
    EXPIRED = "expired"
    REFRESHING = "refreshing"


def utcnow() -> datetime:
    """Naive UTC, matching google-auth's expiry convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def credential_state(credential: Optional[Credential], now: Optional[datetime] = None) -> CredentialState:
    if credential is None or not credential.access_token:
        return CredentialState.NO_CREDENTIAL
    now = now or utcnow()
    if credential.expiry is None or credential.expiry <= now:
        return CredentialState.EXPIRED
    return CredentialState.VALID


class AuthorizationResolver(abc.ABC):
    """Produces a valid access token for the signed-in user."""

    @abc.abstractmethod
    def resolve(self, db: Session, user: UserProfile) -> str:
        """
        Returns:
            A bearer token accepted by the Drive API.

        Raises:
            AuthorizationError: no token can be obtained without user consent.
        """


class CodeFlowResolver(AuthorizationResolver):
    """
    Authorization-code variant: tokens are obtained once through the code
    exchange, persisted per user and refreshed when they expire.

    Refreshes for the same user are serialized in-process; a request that
    waited on the lock reuses the token the previous holder stored.
    """

    def __init__(self, settings: Settings, auth_service: Optional[AuthService] = None):
        self.settings = settings
        self.auth_service = auth_service or AuthService(settings)
        # Entries disappear once no request holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(user_id, threading.Lock())

    def exchange_code(self, db: Session, user: UserProfile, code: str) -> Credential:
        creds = self.auth_service.exchange_auth_code(code)
        if not creds.refresh_token:
            logger.warning(f"No refresh token returned for user {user.id}, keeping any stored one")
        credential = users_crud.save_credential(
            db,
            user.id,
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            expiry=creds.expiry,
            scopes=creds.scopes,
        )
        logger.info(f"Stored credential for user {user.id}")
        return credential

    def resolve(self, db: Session, user: UserProfile) -> str:
        credential = users_crud.load_credential(db, user.id)
        state = credential_state(credential)
        if state is CredentialState.NO_CREDENTIAL:
            raise AuthorizationError(f"No stored credential for user {user.id}; code exchange required.")
        if state is CredentialState.VALID:
            return credential.access_token

        with self._lock_for(user.id):
            db.refresh(credential)
            if credential_state(credential) is CredentialState.VALID:
                logger.info(f"Credential for user {user.id} was refreshed by a concurrent request")
                return credential.access_token
            credential = self._refresh(db, user, credential)
        return credential.access_token

    def _refresh(self, db: Session, user: UserProfile, credential: Credential) -> Credential:
        logger.info(f"Access token for user {user.id} expired, state={CredentialState.REFRESHING.value}")
        if not credential.refresh_token:
            raise AuthorizationError(f"No refresh token stored for user {user.id}; consent required.")

        creds = Credentials(
            token=credential.access_token,
            refresh_token=credential.refresh_token,
            token_uri=TOKEN_URI,
            client_id=self.settings.GOOGLE_CLIENT_ID,
            client_secret=self.settings.GOOGLE_CLIENT_SECRET,
            scopes=credential.scope.split() if credential.scope else None,
        )
        try:
            creds.refresh(TimeoutRequest(self.settings.HTTP_TIMEOUT))
        except GoogleAuthError as e:
            # invalid_grant here usually means the refresh token was revoked
            logger.error(f"Token refresh failed for user {user.id}: {e}")
            raise AuthorizationError(f"Token refresh failed: {e}") from e

        refreshed = users_crud.save_credential(
            db,
            user.id,
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            expiry=creds.expiry,
            scopes=creds.scopes,
        )
        logger.info(f"Access token refreshed for user {user.id}")
        return refreshed


class DelegationResolver(AuthorizationResolver):
    """
    Domain-wide delegation variant: the service account impersonates the
    signed-in user. A fresh token is minted on every call.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._service_credentials = service_account.Credentials.from_service_account_info(
            settings.SERVICE_ACCOUNT_INFO,
            scopes=settings.SCOPES,
        )

    def resolve(self, db: Session, user: UserProfile) -> str:
        if not user.email:
            raise AuthorizationError(f"User {user.id} has no email to impersonate.")
        delegated = self._service_credentials.with_subject(user.email)
        try:
            delegated.refresh(TimeoutRequest(self.settings.HTTP_TIMEOUT))
        except GoogleAuthError as e:
            logger.error(f"Impersonation token for {user.email} could not be minted: {e}")
            raise AuthorizationError(f"Domain-wide delegation failed: {e}") from e
        logger.info(f"Minted impersonation token for {user.email}")
        return delegated.token


def build_resolver(settings: Settings) -> AuthorizationResolver:
    if settings.AUTH_VARIANT == "delegation":
        return DelegationResolver(settings)
    return CodeFlowResolver(settings)

# drive_auth/implicit/client.py
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Protocol

from drive_auth.auth.resolvers import CredentialState, utcnow
from drive_auth.core.config import DRIVE_READONLY_SCOPE
from drive_auth.core.exceptions import AuthorizationError, ConsentCancelled
from drive_auth.drive.schemas import FileSummary
from drive_auth.drive.service import DriveService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientToken:
    access_token: str
    expires_at: datetime
    scope: str = ""

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at > (now or utcnow())


def has_granted_any_scope(response: Dict[str, Any], *scopes: str) -> bool:
    granted = set((response.get("scope") or "").split())
    return any(scope in granted for scope in scopes)


class TokenRequest:
    """
    One consent attempt. Settles exactly once, either with a ClientToken or
    with an error; later callbacks are ignored. Callbacks may arrive from
    any thread.
    """

    def __init__(self, scope: str):
        self.scope = scope
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future = self._loop.create_future()

    def on_response(self, response: Optional[Dict[str, Any]]) -> None:
        self._loop.call_soon_threadsafe(self._settle_response, response or {})

    def on_error(self, error: Dict[str, Any]) -> None:
        self._loop.call_soon_threadsafe(self._settle_error, error)

    def _settle_response(self, response: Dict[str, Any]) -> None:
        if self._future.done():
            return
        if response.get("access_token") and has_granted_any_scope(response, self.scope):
            # expires_in is relative (seconds remaining)
            expires_at = utcnow() + timedelta(seconds=int(response.get("expires_in", 0)))
            self._future.set_result(
                ClientToken(response["access_token"], expires_at, response.get("scope", ""))
            )
        else:
            # Either an error or the scope was not granted
            self._future.set_exception(AuthorizationError("Authorization required."))

    def _settle_error(self, error: Dict[str, Any]) -> None:
        if self._future.done():
            return
        if error.get("type") == "popup_closed":
            self._future.set_exception(ConsentCancelled("Authorization required"))
        else:
            self._future.set_exception(
                AuthorizationError(f"An unexpected error occurred: {error.get('type', 'unknown')}")
            )

    def done(self) -> bool:
        return self._future.done()

    def __await__(self):
        return self._future.__await__()


class ConsentDriver(Protocol):
    def open(self, request: TokenRequest) -> None:
        """Show the consent prompt; report the outcome through the request callbacks."""


class ImplicitDriveClient:
    """
    Client-held token variant. The token only lives in this object; once it
    expires the user is asked for consent again.
    """

    def __init__(self, consent: ConsentDriver, scope: str = DRIVE_READONLY_SCOPE, timeout: float = 10.0):
        self._consent = consent
        self.scope = scope
        self.timeout = timeout
        self._token: Optional[ClientToken] = None

    @property
    def state(self) -> CredentialState:
        if self._token is None:
            return CredentialState.NO_CREDENTIAL
        return CredentialState.VALID if self._token.is_valid() else CredentialState.EXPIRED

    async def request_authorization(self) -> ClientToken:
        request = TokenRequest(self.scope)
        self._consent.open(request)
        try:
            self._token = await request
        except AuthorizationError:
            self._token = None
            raise
        logger.info(f"Access token obtained, expires at {self._token.expires_at.isoformat()}")
        return self._token

    async def list_files(self) -> List[FileSummary]:
        if self.state is not CredentialState.VALID:
            self._token = None
            await self.request_authorization()
        drive = DriveService(self._token.access_token, timeout=self.timeout)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, drive.list_recent_files)

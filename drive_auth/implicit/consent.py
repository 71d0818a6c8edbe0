# drive_auth/implicit/consent.py
import asyncio
import logging
from typing import Optional

from google.auth.exceptions import GoogleAuthError
from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from drive_auth.core.config import AUTH_URI, TOKEN_URI
from drive_auth.auth.resolvers import utcnow
from .client import TokenRequest

logger = logging.getLogger(__name__)


class InstalledAppConsent:
    """Runs Google's consent screen in the local browser (loopback redirect)."""

    def __init__(self, client_id: str, client_secret: Optional[str], timeout_seconds: Optional[int] = 300):
        self.client_config = {
            "installed": {
                "client_id": client_id,
                "client_secret": client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": ["http://localhost"],
            }
        }
        self.timeout_seconds = timeout_seconds

    def open(self, request: TokenRequest) -> None:
        worker = asyncio.get_running_loop().run_in_executor(None, self._run, request)
        worker.add_done_callback(lambda future: self._settle_crash(future, request))

    @staticmethod
    def _settle_crash(future: "asyncio.Future[None]", request: TokenRequest) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Consent flow crashed: {error}", exc_info=error)
            request.on_error({"type": "unknown"})

    def _run(self, request: TokenRequest) -> None:
        flow = InstalledAppFlow.from_client_config(self.client_config, scopes=[request.scope])
        try:
            creds = flow.run_local_server(port=0, timeout_seconds=self.timeout_seconds)
        except AttributeError as e:
            # run_local_server has no redirect to parse when the browser never came back
            if flow.oauth2session.authorized:
                raise
            logger.warning(f"Consent window closed or timed out: {e}")
            request.on_error({"type": "popup_closed"})
            return
        except (OAuth2Error, GoogleAuthError) as e:
            logger.error(f"Consent failed: {e}")
            request.on_error({"type": "access_denied"})
            return

        expires_in = (creds.expiry - utcnow()).total_seconds() if creds.expiry else 0
        request.on_response({
            "access_token": creds.token,
            "expires_in": int(expires_in),
            "scope": " ".join(creds.scopes or []),
        })

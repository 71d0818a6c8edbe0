# drive_auth/auth/service.py
import logging

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import id_token
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from drive_auth.core.config import AUTH_URI, TOKEN_URI, Settings
from drive_auth.core.exceptions import AuthenticationError, AuthorizationError
from .schemas import UserProfile
from .transport import TimeoutRequest

logger = logging.getLogger(__name__)

VALID_ISSUERS = ("accounts.google.com", "https://accounts.google.com")

# Redirect URI used by the Google Identity Services popup code client
POSTMESSAGE_REDIRECT_URI = "postmessage"


class AuthService:
    """
    Talks to Google's identity endpoints: verifies ID tokens from the
    sign-in widget and exchanges authorization codes for tokens.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def verify_google_id_token(self, token: str) -> dict:
        """
        Verify a Google ID token and return its claims.

        Raises:
            AuthenticationError: signature, audience, expiry or issuer check failed.
        """
        try:
            id_info = id_token.verify_oauth2_token(
                token, TimeoutRequest(self.settings.HTTP_TIMEOUT), self.settings.GOOGLE_CLIENT_ID
            )
            if id_info.get("iss") not in VALID_ISSUERS:
                raise ValueError("Wrong issuer.")
        except (ValueError, GoogleAuthError) as e:
            logger.error(f"ID token verification failed: {e}")
            raise AuthenticationError(f"Invalid Google ID token: {e}") from e

        logger.info(f"ID token verified for user: {id_info.get('email')}")
        return id_info

    @staticmethod
    def profile_from_claims(id_info: dict) -> UserProfile:
        subject = id_info.get("sub")
        if not subject:
            raise AuthenticationError("ID token has no subject.")
        return UserProfile(
            id=subject,
            email=id_info.get("email") or "",
            name=id_info.get("name"),
            photo=id_info.get("picture"),
        )

    def exchange_auth_code(self, code: str) -> Credentials:
        """
        Exchange an authorization code from the popup code client for
        access and refresh tokens.

        Raises:
            AuthorizationError: Google rejected the code (expired, reused,
                redirect URI mismatch) or the exchange failed.
        """
        client_config = {
            "web": {
                "client_id": self.settings.GOOGLE_CLIENT_ID,
                "client_secret": self.settings.GOOGLE_CLIENT_SECRET,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [POSTMESSAGE_REDIRECT_URI],
            }
        }
        flow = Flow.from_client_config(
            client_config=client_config,
            scopes=self.settings.SCOPES,
            redirect_uri=POSTMESSAGE_REDIRECT_URI,
        )
        try:
            flow.fetch_token(code=code, timeout=self.settings.HTTP_TIMEOUT)
        except (GoogleAuthError, OAuth2Error) as e:
            logger.error(f"Authorization code exchange failed: {e}")
            raise AuthorizationError(f"Failed to exchange authorization code: {e}") from e

        credentials = flow.credentials
        if not credentials or not credentials.token:
            raise AuthorizationError("Google returned no access token.")
        return credentials

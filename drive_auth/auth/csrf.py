# drive_auth/auth/csrf.py
import hmac
import logging
import secrets

from fastapi import Request, Response
from itsdangerous import BadSignature, Signer

from drive_auth.core.config import Settings
from drive_auth.core.exceptions import CsrfError

logger = logging.getLogger(__name__)

HEADER_NAME = "X-CSRF-Token"
SESSION_KEY = "csrfToken"


class CsrfGuard:
    """
    Double-submit CSRF protection. The token travels to the client twice:
    in the JSON body (to be echoed back as a header) and in a signed cookie.
    A request is accepted only when both agree.
    """

    def __init__(self, settings: Settings):
        self._signer = Signer(settings.COOKIE_ENCRYPTION_KEY, salt="csrf-token")
        self._cookie_name = settings.CSRF_COOKIE_NAME
        self._same_site = settings.COOKIE_SAMESITE
        self._secure = settings.is_production

    def issue_token(self, request: Request, response: Response) -> str:
        token = request.session.get(SESSION_KEY)
        if not token:
            token = secrets.token_urlsafe(32)
            request.session[SESSION_KEY] = token
        response.set_cookie(
            self._cookie_name,
            self._signer.sign(token).decode("utf-8"),
            httponly=True,
            secure=self._secure,
            samesite=self._same_site,
        )
        return token

    def verify(self, request: Request) -> None:
        header_token = request.headers.get(HEADER_NAME)
        cookie_value = request.cookies.get(self._cookie_name)
        if not header_token or not cookie_value:
            raise CsrfError("missing token")
        try:
            cookie_token = self._signer.unsign(cookie_value).decode("utf-8")
        except BadSignature:
            raise CsrfError("bad cookie signature")
        if not hmac.compare_digest(cookie_token.encode("utf-8"), header_token.encode("utf-8")):
            raise CsrfError("token mismatch")

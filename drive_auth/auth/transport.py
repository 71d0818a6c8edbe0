# drive_auth/auth/transport.py
from typing import Optional

import requests
from google.auth.transport import requests as google_requests


class TimeoutRequest(google_requests.Request):
    """google-auth transport that applies a default timeout to every call."""

    def __init__(self, timeout: float, session: Optional[requests.Session] = None):
        super().__init__(session=session)
        self._timeout = timeout

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        return super().__call__(
            url,
            method=method,
            body=body,
            headers=headers,
            timeout=timeout or self._timeout,
            **kwargs,
        )

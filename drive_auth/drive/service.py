# drive_auth/drive/service.py
import logging
from typing import List

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError

from drive_auth.core.exceptions import UpstreamError
from .schemas import FileSummary

logger = logging.getLogger(__name__)

RECENT_FILES_ORDER = "modifiedTime desc"
RECENT_FILES_LIMIT = 10
FILE_FIELDS = "files(id, name, mimeType, modifiedTime)"


class DriveService:
    """Thin wrapper over the Drive v3 API for a single bearer token."""

    def __init__(self, access_token: str, timeout: float = 10.0):
        if not access_token:
            raise ValueError("An access token is required to initialize DriveService")
        creds = Credentials(token=access_token)
        # The token cannot be refreshed here, so a 401 must come back as an HttpError
        http = AuthorizedHttp(creds, http=httplib2.Http(timeout=timeout), refresh_status_codes=())
        self.service: Resource = build("drive", "v3", http=http, cache_discovery=False)

    def list_recent_files(self, page_size: int = RECENT_FILES_LIMIT) -> List[FileSummary]:
        """
        Fetch the most recently modified files.

        Raises:
            UpstreamError: Drive answered with an error status or could not be reached.
                The call is not retried.
        """
        try:
            response = self.service.files().list(
                orderBy=RECENT_FILES_ORDER,
                pageSize=page_size,
                fields=FILE_FIELDS,
            ).execute(num_retries=0)
        except HttpError as e:
            status_code = e.resp.status if hasattr(e, "resp") else 0
            raise UpstreamError(f"Unable to fetch files: {e.reason}", status_code=status_code) from e
        except GoogleAuthError as e:
            raise UpstreamError(f"Drive rejected the access token: {e}") from e
        except (httplib2.HttpLib2Error, OSError) as e:
            raise UpstreamError(f"Unable to reach Drive: {e}") from e

        files = response.get("files", [])
        logger.info(f"Fetched {len(files)} files from Drive")
        return [FileSummary.model_validate(item) for item in files]

# drive_auth/drive/schemas.py
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FileSummary(BaseModel):
    """File metadata as returned by Drive; unknown fields are relayed as-is."""
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    modifiedTime: Optional[str] = None
    mimeType: Optional[str] = None

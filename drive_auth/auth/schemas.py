# drive_auth/auth/schemas.py
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1)
    email: str
    name: Optional[str] = None
    photo: Optional[str] = None


class CsrfTokenResponse(BaseModel):
    csrfToken: str


class SignInRequest(BaseModel):
    idToken: str = Field(..., min_length=1)


class SignInResponse(BaseModel):
    userInfo: Dict[str, Any]


class ExchangeCodeRequest(BaseModel):
    code: str = Field(..., min_length=1)

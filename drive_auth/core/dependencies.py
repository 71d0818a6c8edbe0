# drive_auth/core/dependencies.py
from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from drive_auth.auth.csrf import CsrfGuard
from drive_auth.auth.resolvers import AuthorizationResolver, CodeFlowResolver
from drive_auth.auth.schemas import UserProfile
from drive_auth.auth.service import AuthService
from drive_auth.auth.session import SessionManager
from drive_auth.core.config import Settings
from drive_auth.core.database import get_db_session
from drive_auth.core.exceptions import AuthenticationError


# Everything below is built once by create_app and kept on app.state

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    with get_db_session(request.app.state.session_factory) as db:
        yield db


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_csrf_guard(request: Request) -> CsrfGuard:
    return request.app.state.csrf_guard


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_resolver(request: Request) -> AuthorizationResolver:
    return request.app.state.resolver


def get_code_flow_resolver(resolver: AuthorizationResolver = Depends(get_resolver)) -> CodeFlowResolver:
    if not isinstance(resolver, CodeFlowResolver):
        raise RuntimeError("Code exchange is only available in the codeflow variant")
    return resolver


def get_current_user(
    request: Request, sessions: SessionManager = Depends(get_session_manager)
) -> UserProfile:
    user = sessions.current(request)
    if user is None:
        raise AuthenticationError("No user in session")
    return user


def require_csrf(request: Request, guard: CsrfGuard = Depends(get_csrf_guard)) -> None:
    guard.verify(request)

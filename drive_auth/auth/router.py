# drive_auth/auth/router.py
import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from drive_auth.core.dependencies import (
    get_auth_service,
    get_code_flow_resolver,
    get_csrf_guard,
    get_current_user,
    get_db,
    get_session_manager,
    require_csrf,
)
from drive_auth.users import crud as users_crud
from . import schemas
from .csrf import CsrfGuard
from .resolvers import CodeFlowResolver
from .service import AuthService
from .session import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Authentication"],
)

# Only mounted for the authorization-code variant
code_flow_router = APIRouter(
    prefix="/api",
    tags=["Authorization"],
)


@router.get("/csrfToken", response_model=schemas.CsrfTokenResponse)
def get_csrf_token(request: Request, response: Response, guard: CsrfGuard = Depends(get_csrf_guard)):
    return schemas.CsrfTokenResponse(csrfToken=guard.issue_token(request, response))


@router.post(
    "/signin",
    response_model=schemas.SignInResponse,
    dependencies=[Depends(require_csrf)],
)
def sign_in(
    payload: schemas.SignInRequest,
    request: Request,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
    sessions: SessionManager = Depends(get_session_manager),
):
    id_info = auth_service.verify_google_id_token(payload.idToken)
    user = auth_service.profile_from_claims(id_info)
    users_crud.upsert_user(db, user_id=user.id, email=user.email, name=user.name, photo=user.photo)
    sessions.establish(request, user)
    return schemas.SignInResponse(userInfo=id_info)


@router.post(
    "/signout",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf)],
)
def sign_out(request: Request, sessions: SessionManager = Depends(get_session_manager)):
    sessions.clear(request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/profile", response_model=schemas.UserProfile)
def get_profile(user: schemas.UserProfile = Depends(get_current_user)):
    return user


@code_flow_router.post("/exchangeCode", status_code=status.HTTP_204_NO_CONTENT)
def exchange_code(
    payload: schemas.ExchangeCodeRequest,
    user: schemas.UserProfile = Depends(get_current_user),
    _csrf: None = Depends(require_csrf),
    db: Session = Depends(get_db),
    resolver: CodeFlowResolver = Depends(get_code_flow_resolver),
):
    resolver.exchange_code(db, user, payload.code)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Account routes: registration, login, session user, invitation acceptance."""

import logging

from fastapi import APIRouter, Depends, Request

from tubebrief.api.deps import current_user, get_auth, login_session
from tubebrief.api.schemas import (
    AcceptInvitationRequest,
    ChangePasswordRequest,
    Credentials,
    InvitationInfo,
    Message,
)
from tubebrief.auth import AuthService
from tubebrief.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["accounts"])


@router.post("/register", response_model=User, status_code=201)
def register(body: Credentials, request: Request, auth: AuthService = Depends(get_auth)) -> User:
    user = auth.register(body.username, body.password)
    login_session(request, user)
    return user


@router.post("/login", response_model=User)
def login(body: Credentials, request: Request, auth: AuthService = Depends(get_auth)) -> User:
    user = auth.authenticate(body.username, body.password)
    login_session(request, user)
    logger.info("User logged in: %s", user.username)
    return user


@router.post("/logout", response_model=Message)
def logout(request: Request) -> Message:
    request.session.clear()
    return Message(message="Logged out")


@router.get("/user", response_model=User)
def get_current_user(user: User = Depends(current_user)) -> User:
    return user


@router.post("/user/password", response_model=User)
def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(current_user),
    auth: AuthService = Depends(get_auth),
) -> User:
    return auth.change_password(user, body.current_password, body.new_password)


@router.get("/invitations/{token}", response_model=InvitationInfo)
def validate_invitation(token: str, auth: AuthService = Depends(get_auth)) -> InvitationInfo:
    user = auth.validate_invitation(token)
    return InvitationInfo(
        username=user.username,
        is_admin=user.is_admin,
        expires_at=user.token_expiry.isoformat(),
    )


@router.post("/invitations/accept", response_model=User)
def accept_invitation(
    body: AcceptInvitationRequest, request: Request, auth: AuthService = Depends(get_auth)
) -> User:
    user = auth.accept_invitation(body.token, body.password)
    login_session(request, user)
    return user

"""Admin-only routes: user management, invitations, all summaries."""

from fastapi import APIRouter, Depends, HTTPException, Response

from tubebrief.api.deps import admin_user, get_auth, get_service
from tubebrief.api.schemas import CreateUserRequest, InvitationRequest, InvitationResponse
from tubebrief.auth import AuthService, invitation_url
from tubebrief.models import Summary, User
from tubebrief.service import SummaryService

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(admin_user)])


@router.get("/users", response_model=list[User])
def list_users(auth: AuthService = Depends(get_auth)) -> list[User]:
    return auth.list_users()


@router.post("/users", response_model=User, status_code=201)
def create_user(body: CreateUserRequest, auth: AuthService = Depends(get_auth)) -> User:
    return auth.create_user(body.username, body.password, is_admin=body.is_admin)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    admin: User = Depends(admin_user),
    auth: AuthService = Depends(get_auth),
) -> Response:
    try:
        auth.delete_user(user_id, acting_user=admin)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return Response(status_code=204)


@router.post("/users/{user_id}/promote", response_model=User)
def promote_user(user_id: int, auth: AuthService = Depends(get_auth)) -> User:
    return auth.set_admin(user_id, True)


@router.post("/users/{user_id}/demote", response_model=User)
def demote_user(
    user_id: int,
    admin: User = Depends(admin_user),
    auth: AuthService = Depends(get_auth),
) -> User:
    try:
        return auth.set_admin(user_id, False, acting_user=admin)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/invitations", response_model=InvitationResponse, status_code=201)
def create_invitation(body: InvitationRequest, auth: AuthService = Depends(get_auth)) -> InvitationResponse:
    user = auth.issue_invitation(body.username, is_admin=body.is_admin)
    return InvitationResponse(
        username=user.username,
        token=user.invitation_token,
        invitation_url=invitation_url(user.invitation_token),
        expires_at=user.token_expiry.isoformat(),
    )


@router.get("/summaries", response_model=list[Summary])
def list_all_summaries(service: SummaryService = Depends(get_service)) -> list[Summary]:
    return service.list_all_summaries()

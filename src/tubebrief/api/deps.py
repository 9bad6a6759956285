"""FastAPI dependencies: service lookup and the two auth guards."""

from fastapi import Depends, HTTPException, Request

from tubebrief.auth import AuthService, UserNotFoundError
from tubebrief.models import User
from tubebrief.service import SummaryService

SESSION_USER_KEY = "user_id"


def get_service(request: Request) -> SummaryService:
    return request.app.state.service


def get_auth(request: Request) -> AuthService:
    return request.app.state.auth


def login_session(request: Request, user: User) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id


def current_user(request: Request, auth: AuthService = Depends(get_auth)) -> User:
    """Guard: any authenticated user, else 401."""
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized: Please login")
    try:
        return auth.get_user(user_id)
    except UserNotFoundError:
        # account deleted while the cookie was still live
        request.session.clear()
        raise HTTPException(status_code=401, detail="Unauthorized: Please login")


def admin_user(user: User = Depends(current_user)) -> User:
    """Guard: authenticated admin, else 403."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden: Admin access required")
    return user

"""Accounts: password hashing, registration, login, admin and invitations."""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone

from tubebrief.config import settings
from tubebrief.models import User
from tubebrief.storage.repository import UserRepository

logger = logging.getLogger(__name__)

_SCRYPT_PARAMS = {"n": 16384, "r": 8, "p": 1, "dklen": 64}


class AuthenticationError(Exception):
    """Raised when credentials are wrong or missing."""


class UsernameTakenError(Exception):
    """Raised when registering a username that already exists."""


class UserNotFoundError(Exception):
    """Raised when a user ID does not exist."""


class InvalidInvitationError(Exception):
    """Raised when an invitation token is unknown or expired."""


def hash_password(password: str) -> str:
    """Salted scrypt hash stored as "<hex hash>.<hex salt>"."""
    salt = secrets.token_hex(16)
    digest = hashlib.scrypt(password.encode(), salt=salt.encode(), **_SCRYPT_PARAMS)
    return f"{digest.hex()}.{salt}"


def verify_password(password: str, stored: str) -> bool:
    """Constant-time comparison of a password against a stored hash."""
    hashed, sep, salt = (stored or "").partition(".")
    if not sep or not hashed or not salt:
        return False
    try:
        expected = bytes.fromhex(hashed)
    except ValueError:
        return False
    digest = hashlib.scrypt(password.encode(), salt=salt.encode(), **_SCRYPT_PARAMS)
    return hmac.compare_digest(expected, digest)


def invitation_url(token: str) -> str:
    """Link the invitee opens to set their password."""
    return f"{settings.public_url.rstrip('/')}/accept-invitation?token={token}"


class AuthService:
    """User management on top of a UserRepository.

    The first account ever registered becomes an admin. Invited accounts
    carry a single-use token and cannot log in until the invitee sets a
    password through accept_invitation().
    """

    def __init__(self, users: UserRepository, invitation_ttl_days: int | None = None) -> None:
        self._users = users
        self._ttl = timedelta(days=invitation_ttl_days or settings.invitation_ttl_days)

    def register(self, username: str, password: str) -> User:
        """Self-service registration.

        Raises:
            UsernameTakenError: If the username already exists.
        """
        is_first = self._users.count() == 0
        user = self._create(username, password, is_admin=is_first)
        if is_first:
            logger.info("First user %s registered as admin", username)
        return user

    def create_user(self, username: str, password: str, is_admin: bool = False) -> User:
        """Admin-created account with a known password."""
        return self._create(username, password, is_admin=is_admin)

    def authenticate(self, username: str, password: str) -> User:
        """Check credentials.

        Raises:
            AuthenticationError: On unknown user, wrong password, or an
                account whose invitation has not been accepted yet.
        """
        user = self._users.get_by_username(username)
        if user is None or user.invitation_token or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid username or password")
        return user

    def get_user(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(f"User not found: {user_id}")
        return user

    def get_user_by_username(self, username: str) -> User:
        user = self._users.get_by_username(username)
        if user is None:
            raise UserNotFoundError(f"User not found: {username}")
        return user

    def list_users(self) -> list[User]:
        return self._users.list_all()

    def change_password(self, user: User, current_password: str, new_password: str) -> User:
        """Replace a user's password after checking the current one.

        Raises:
            AuthenticationError: If current_password is wrong.
        """
        stored = self.get_user(user.id)
        if not verify_password(current_password, stored.password_hash):
            raise AuthenticationError("Current password is incorrect")
        stored.password_hash = hash_password(new_password)
        stored.is_password_change_required = False
        return self._users.update(stored)

    def delete_user(self, user_id: int, acting_user: User | None = None) -> None:
        """Delete a user and, via cascade, all of their summaries.

        Raises:
            UserNotFoundError: If the user does not exist.
            ValueError: If an admin tries to delete their own account.
        """
        if acting_user is not None and acting_user.id == user_id:
            raise ValueError("You cannot delete your own account")
        if not self._users.delete(user_id):
            raise UserNotFoundError(f"User not found: {user_id}")
        logger.info("User deleted: %d", user_id)

    def set_admin(self, user_id: int, is_admin: bool, acting_user: User | None = None) -> User:
        """Promote or demote a user.

        Raises:
            UserNotFoundError: If the user does not exist.
            ValueError: If an admin tries to demote themselves.
        """
        if acting_user is not None and acting_user.id == user_id and not is_admin:
            raise ValueError("You cannot remove your own admin rights")
        user = self.get_user(user_id)
        user.is_admin = is_admin
        logger.info("User %d %s", user_id, "promoted" if is_admin else "demoted")
        return self._users.update(user)

    def issue_invitation(self, username: str, is_admin: bool = False) -> User:
        """Create a pending account holding a fresh invitation token.

        The account gets an unusable random password until accepted.

        Raises:
            UsernameTakenError: If the username already exists.
        """
        token = secrets.token_urlsafe(32)
        expiry = datetime.now(timezone.utc) + self._ttl
        if self._users.get_by_username(username) is not None:
            raise UsernameTakenError(f"Username already exists: {username}")
        try:
            user = self._users.create(
                username,
                hash_password(secrets.token_urlsafe(32)),
                is_admin=is_admin,
                invitation_token=token,
                token_expiry=expiry,
                is_password_change_required=True,
            )
        except ValueError as e:
            raise UsernameTakenError(str(e)) from e
        logger.info("Invitation issued for %s (expires %s)", username, expiry.isoformat())
        return user

    def validate_invitation(self, token: str) -> User:
        """Resolve a token to its pending user.

        Raises:
            InvalidInvitationError: If the token is unknown or expired.
        """
        user = self._users.get_by_invitation_token(token) if token else None
        if user is None:
            raise InvalidInvitationError("Invalid invitation token")
        expiry = user.token_expiry
        if expiry is not None and expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        if expiry is None or expiry < datetime.now(timezone.utc):
            raise InvalidInvitationError("Invitation has expired")
        return user

    def accept_invitation(self, token: str, password: str) -> User:
        """Set the invitee's password and consume the token.

        Raises:
            InvalidInvitationError: If the token is unknown or expired.
        """
        user = self.validate_invitation(token)
        user.password_hash = hash_password(password)
        user.invitation_token = None
        user.token_expiry = None
        user.is_password_change_required = False
        logger.info("Invitation accepted by %s", user.username)
        return self._users.update(user)

    def _create(self, username: str, password: str, is_admin: bool) -> User:
        if self._users.get_by_username(username) is not None:
            raise UsernameTakenError(f"Username already exists: {username}")
        try:
            return self._users.create(username, hash_password(password), is_admin=is_admin)
        except ValueError as e:
            raise UsernameTakenError(str(e)) from e

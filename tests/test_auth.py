# tests/test_auth.py
"""Tests for password hashing and AuthService."""

from datetime import datetime, timedelta, timezone

import pytest

from tubebrief.auth import (
    AuthenticationError,
    InvalidInvitationError,
    UsernameTakenError,
    UserNotFoundError,
    hash_password,
    invitation_url,
    verify_password,
)


class TestPasswordHashing:
    def test_round_trip(self):
        stored = hash_password("hunter22")
        assert verify_password("hunter22", stored)
        assert not verify_password("hunter23", stored)

    def test_format_and_salt(self):
        a, b = hash_password("same"), hash_password("same")
        assert a != b
        digest, salt = a.split(".")
        assert len(digest) == 128
        assert len(salt) == 32

    @pytest.mark.parametrize("stored", ["", "nodot", ".salt", "zz.salt", None])
    def test_malformed_stored_value(self, stored):
        assert not verify_password("anything", stored)


class TestRegistration:
    def test_first_user_is_admin(self, auth):
        first = auth.register("alice", "secret1")
        second = auth.register("bob", "secret2")
        assert first.is_admin
        assert not second.is_admin

    def test_duplicate_username(self, auth):
        auth.register("alice", "secret1")
        with pytest.raises(UsernameTakenError):
            auth.register("alice", "other")

    def test_create_user_sets_role(self, auth):
        user = auth.create_user("ops", "secret1", is_admin=True)
        assert user.is_admin
        assert verify_password("secret1", auth.get_user(user.id).password_hash)

    def test_password_hash_not_serialized(self, auth):
        user = auth.register("alice", "secret1")
        dumped = user.model_dump(by_alias=True)
        assert "passwordHash" not in dumped
        assert "invitationToken" not in dumped
        assert dumped["isAdmin"] is True


class TestAuthenticate:
    def test_success(self, auth):
        created = auth.register("alice", "secret1")
        assert auth.authenticate("alice", "secret1").id == created.id

    def test_wrong_password(self, auth):
        auth.register("alice", "secret1")
        with pytest.raises(AuthenticationError):
            auth.authenticate("alice", "wrong")

    def test_unknown_user(self, auth):
        with pytest.raises(AuthenticationError):
            auth.authenticate("ghost", "secret1")

    def test_pending_invitation_cannot_login(self, auth):
        auth.issue_invitation("carol")
        with pytest.raises(AuthenticationError):
            auth.authenticate("carol", "")


class TestLookup:
    def test_get_user_missing(self, auth):
        with pytest.raises(UserNotFoundError):
            auth.get_user(99)

    def test_get_by_username(self, auth):
        auth.register("alice", "secret1")
        assert auth.get_user_by_username("alice").username == "alice"
        with pytest.raises(UserNotFoundError):
            auth.get_user_by_username("ghost")

    def test_list_users(self, auth):
        auth.register("alice", "secret1")
        auth.register("bob", "secret2")
        assert [u.username for u in auth.list_users()] == ["alice", "bob"]


class TestChangePassword:
    def test_change(self, auth):
        user = auth.register("alice", "secret1")
        auth.change_password(user, "secret1", "secret2")
        assert auth.authenticate("alice", "secret2")
        with pytest.raises(AuthenticationError):
            auth.authenticate("alice", "secret1")

    def test_wrong_current(self, auth):
        user = auth.register("alice", "secret1")
        with pytest.raises(AuthenticationError):
            auth.change_password(user, "nope", "secret2")


class TestAdminOperations:
    def test_promote_and_demote(self, auth):
        root = auth.register("root", "secret1")
        bob = auth.register("bob", "secret2")
        assert auth.set_admin(bob.id, True, acting_user=root).is_admin
        assert not auth.set_admin(bob.id, False, acting_user=root).is_admin

    def test_cannot_demote_self(self, auth):
        root = auth.register("root", "secret1")
        with pytest.raises(ValueError):
            auth.set_admin(root.id, False, acting_user=root)

    def test_delete_user(self, auth):
        root = auth.register("root", "secret1")
        bob = auth.register("bob", "secret2")
        auth.delete_user(bob.id, acting_user=root)
        with pytest.raises(UserNotFoundError):
            auth.get_user(bob.id)

    def test_cannot_delete_self(self, auth):
        root = auth.register("root", "secret1")
        with pytest.raises(ValueError):
            auth.delete_user(root.id, acting_user=root)

    def test_delete_missing(self, auth):
        with pytest.raises(UserNotFoundError):
            auth.delete_user(42)


class TestInvitations:
    def test_issue(self, auth):
        user = auth.issue_invitation("carol", is_admin=True)
        assert user.invitation_token
        assert user.is_admin
        assert user.is_password_change_required
        remaining = user.token_expiry - datetime.now(timezone.utc)
        assert timedelta(days=6) < remaining <= timedelta(days=7)

    def test_issue_duplicate(self, auth):
        auth.register("carol", "secret1")
        with pytest.raises(UsernameTakenError):
            auth.issue_invitation("carol")

    def test_validate(self, auth):
        issued = auth.issue_invitation("carol")
        assert auth.validate_invitation(issued.invitation_token).username == "carol"

    @pytest.mark.parametrize("token", ["", "unknown-token"])
    def test_validate_unknown(self, auth, token):
        with pytest.raises(InvalidInvitationError):
            auth.validate_invitation(token)

    def test_validate_expired(self, auth, user_repo):
        issued = auth.issue_invitation("carol")
        issued.token_expiry = datetime.now(timezone.utc) - timedelta(minutes=1)
        user_repo.update(issued)
        with pytest.raises(InvalidInvitationError, match="expired"):
            auth.validate_invitation(issued.invitation_token)

    def test_accept_is_single_use(self, auth):
        issued = auth.issue_invitation("carol")
        accepted = auth.accept_invitation(issued.invitation_token, "carols-pass")
        assert accepted.invitation_token is None
        assert not accepted.is_password_change_required
        assert auth.authenticate("carol", "carols-pass").id == issued.id
        with pytest.raises(InvalidInvitationError):
            auth.accept_invitation(issued.invitation_token, "again!")

    def test_custom_ttl(self, user_repo):
        from tubebrief.auth import AuthService

        issued = AuthService(user_repo, invitation_ttl_days=1).issue_invitation("carol")
        assert issued.token_expiry - datetime.now(timezone.utc) <= timedelta(days=1)

    def test_invitation_url(self):
        assert invitation_url("abc").endswith("/accept-invitation?token=abc")

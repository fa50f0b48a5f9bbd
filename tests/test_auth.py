"""Tests for signup/login/logout, friendships and token resolution."""

from datetime import timedelta

import pytest

from groupchat.chat.commands import AddFriendCommand, LoginCommand, LogoutCommand, SignupCommand
from groupchat.chat.exceptions import EmailAlreadyTakenError, UserNotFoundError
from groupchat.common.exceptions.exceptions import AuthenticationError, ValidationError
from groupchat.config.jwt_config import JWTConfig
from groupchat.security.auth_context import AuthContext
from groupchat.security.encryption import hash_password, verify_password
from groupchat.security.jwt_auth import JwtTokenManager

from tests.conftest import ALICE_ID, BOB_ID, CAROL_ID


async def _signup(deps, email="dana@example.com", password="s3cret!", username=None):
    return await deps.command_bus.send(SignupCommand(email=email, password=password, username=username))


class TestAccounts:

    async def test_signup_returns_a_resolvable_token(self, deps):
        payload = await _signup(deps)

        assert payload.user.email == "dana@example.com"
        assert payload.user.username == "dana"
        auth = await deps.token_manager.resolve(payload.token, deps.persistence)
        assert auth == AuthContext(user_id=payload.user.id)

    async def test_signup_normalizes_and_rejects_duplicate_email(self, deps):
        await _signup(deps, email="Dana@Example.com ")

        with pytest.raises(EmailAlreadyTakenError) as exc_info:
            await _signup(deps, email="dana@example.com")

        assert isinstance(exc_info.value, ValidationError)

    async def test_password_hash_is_not_serialized(self, deps):
        payload = await _signup(deps)

        assert "password_hash" not in payload.model_dump()["user"]
        assert "token_version" not in payload.model_dump()["user"]

    async def test_login_with_valid_credentials(self, deps):
        signed_up = await _signup(deps)

        payload = await deps.command_bus.send(LoginCommand(email="DANA@example.com", password="s3cret!"))

        assert payload.user.id == signed_up.user.id

    @pytest.mark.parametrize("email,password", [
        ("dana@example.com", "wrong"),
        ("nobody@example.com", "s3cret!"),
    ])
    async def test_login_with_bad_credentials(self, deps, email, password):
        await _signup(deps)

        with pytest.raises(AuthenticationError):
            await deps.command_bus.send(LoginCommand(email=email, password=password))

    async def test_logout_revokes_outstanding_tokens(self, deps):
        payload = await _signup(deps)
        auth = await deps.token_manager.resolve(payload.token, deps.persistence)

        await deps.command_bus.send(LogoutCommand(auth=auth))

        with pytest.raises(AuthenticationError):
            await deps.token_manager.resolve(payload.token, deps.persistence)

        fresh = await deps.command_bus.send(LoginCommand(email="dana@example.com", password="s3cret!"))
        assert await deps.token_manager.resolve(fresh.token, deps.persistence) == auth

    async def test_logout_requires_authentication(self, deps, anonymous):
        with pytest.raises(AuthenticationError):
            await deps.command_bus.send(LogoutCommand(auth=anonymous))


class TestFriendships:

    async def test_friendship_is_symmetric(self, deps, persistence, carol, users):
        friend = await deps.command_bus.send(AddFriendCommand(auth=carol, user_id=ALICE_ID))

        assert friend.id == ALICE_ID
        assert [u.id for u in await persistence.get_friends(CAROL_ID)] == [ALICE_ID]
        assert [u.id for u in await persistence.get_friends(ALICE_ID)] == [BOB_ID, CAROL_ID]

    async def test_befriending_twice_is_a_no_op(self, deps, persistence, alice, users):
        await deps.command_bus.send(AddFriendCommand(auth=alice, user_id=BOB_ID))

        assert [u.id for u in await persistence.get_friends(ALICE_ID)] == [BOB_ID]

    async def test_unknown_user(self, deps, alice, users):
        with pytest.raises(UserNotFoundError):
            await deps.command_bus.send(AddFriendCommand(auth=alice, user_id=404))

    async def test_self(self, deps, alice, users):
        with pytest.raises(ValidationError):
            await deps.command_bus.send(AddFriendCommand(auth=alice, user_id=ALICE_ID))

    async def test_requires_authentication(self, deps, anonymous, users):
        with pytest.raises(AuthenticationError):
            await deps.command_bus.send(AddFriendCommand(auth=anonymous, user_id=BOB_ID))


class TestTokenResolution:

    @pytest.mark.parametrize("token", [None, "", "not.a.jwt"])
    async def test_missing_or_malformed_tokens(self, persistence, token):
        with pytest.raises(AuthenticationError):
            await JwtTokenManager().resolve(token, persistence)

    async def test_expired_token(self, persistence, users):
        token = JwtTokenManager().create_access_token(1, expires_delta=timedelta(seconds=-5))

        with pytest.raises(AuthenticationError):
            await JwtTokenManager().resolve(token, persistence)

    async def test_unknown_subject(self, persistence):
        token = JwtTokenManager().create_access_token(999)

        with pytest.raises(AuthenticationError):
            await JwtTokenManager().resolve(token, persistence)

    async def test_token_signed_with_another_key(self, persistence, users):
        foreign = JwtTokenManager(JWTConfig(secret_key="a-completely-different-secret-key-value"))
        token = foreign.create_access_token(1)

        with pytest.raises(AuthenticationError):
            await JwtTokenManager().resolve(token, persistence)

    def test_anonymous_context_requires_user(self, anonymous):
        assert anonymous.is_authenticated is False
        with pytest.raises(AuthenticationError):
            anonymous.require_user_id()


class TestPasswordHashing:

    def test_hash_and_verify(self):
        hashed = hash_password("correct horse")

        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False

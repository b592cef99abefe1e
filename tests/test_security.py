from datetime import timedelta

import jwt
import pytest

from api import create_app
from api.errors import BadRequestError, UnauthorizedError, ServerFaultError
from api.tokens import issue_tokens, rotate_tokens, revoke_tokens
from models import storage
from models.user import User
from utils.security import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    TokenError,
)


class TestPasswords:
    def test_hash_round_trip(self):
        hashed = hash_password("correct horse")
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed) is True
        assert verify_password("wrong horse", hashed) is False

    @pytest.mark.parametrize("stored", [None, "", "not-an-argon2-hash"])
    def test_unusable_hash_never_matches(self, stored):
        assert verify_password("anything", stored) is False


class TestTokens:
    def test_access_token_claims(self, app, make_user):
        user_id = make_user("alice", full_name="Alice Doe")
        with app.app_context():
            user = storage.get(User, user_id)
            claims = decode_token(create_access_token(user), expected_type="access")

        assert claims["sub"] == user_id
        assert claims["username"] == "alice"
        assert claims["email"] == "alice@example.com"
        assert claims["full_name"] == "Alice Doe"
        assert claims["type"] == "access"

    def test_refresh_token_carries_only_identity(self, app, make_user):
        user_id = make_user("alice")
        with app.app_context():
            claims = decode_token(create_refresh_token(storage.get(User, user_id)), expected_type="refresh")

        assert claims["sub"] == user_id
        assert "username" not in claims
        assert "email" not in claims

    def test_tokens_minted_together_differ(self, app, make_user):
        user_id = make_user("alice")
        with app.app_context():
            user = storage.get(User, user_id)
            assert create_refresh_token(user) != create_refresh_token(user)

    def test_refresh_secret_is_separate(self, app, make_user):
        user_id = make_user("alice")
        with app.app_context():
            refresh = create_refresh_token(storage.get(User, user_id))
            with pytest.raises(TokenError):
                decode_token(refresh, expected_type="access")

    def test_wrong_type_with_right_secret(self, app):
        with app.app_context():
            forged = jwt.encode(
                {"sub": "x", "type": "access", "exp": 9999999999, "iss": app.config["JWT_ISSUER"]},
                app.config["REFRESH_TOKEN_SECRET"],
                algorithm=app.config["JWT_ALGORITHM"],
            )
            with pytest.raises(TokenError, match="Wrong token type"):
                decode_token(forged, expected_type="refresh")

    @pytest.mark.parametrize("issuer", ["someone-else", None])
    def test_issuer_must_match(self, app, issuer):
        claims = {"sub": "x", "type": "access", "exp": 9999999999}
        if issuer:
            claims["iss"] = issuer
        with app.app_context():
            forged = jwt.encode(claims, app.config["ACCESS_TOKEN_SECRET"], algorithm=app.config["JWT_ALGORITHM"])
            with pytest.raises(TokenError, match="Invalid token"):
                decode_token(forged, expected_type="access")

    def test_minted_tokens_carry_configured_issuer(self, app, make_user):
        user_id = make_user("alice")
        with app.app_context():
            claims = decode_token(create_access_token(storage.get(User, user_id)), expected_type="access")
        assert claims["iss"] == app.config["JWT_ISSUER"]

    def test_configured_secrets_meet_hs256_minimum(self, app):
        assert len(app.config["ACCESS_TOKEN_SECRET"].encode()) >= 32
        assert len(app.config["REFRESH_TOKEN_SECRET"].encode()) >= 32

    def test_expired_token(self, tmp_path):
        app = create_app(
            "testing",
            {
                "DATABASE_URL": f"sqlite:///{tmp_path / 'expired.db'}",
                "ACCESS_TOKEN_EXPIRES": timedelta(seconds=-30),
            },
        )
        with app.app_context():
            user = User(
                username="old",
                email="old@example.com",
                full_name="Old Timer",
                password_hash=hash_password("s3cret-pass"),
                avatar="/assets/old.png",
            )
            token = create_access_token(user)
            with pytest.raises(TokenError, match="Token expired"):
                decode_token(token, expected_type="access")


class TestSessionLifecycle:
    def test_issue_stores_refresh_token(self, app, make_user):
        user_id = make_user("alice")
        with app.app_context():
            pair = issue_tokens(user_id)
        with app.app_context():
            assert storage.get(User, user_id).refresh_token == pair.refresh_token

    def test_issue_for_unknown_user_is_server_fault(self, app):
        with app.app_context():
            with pytest.raises(ServerFaultError):
                issue_tokens("no-such-user")

    def test_rotation_state_machine(self, app, make_user):
        user_id = make_user("alice")
        with app.app_context():
            pair = issue_tokens(user_id)

            with pytest.raises(UnauthorizedError):
                rotate_tokens(None)
            with pytest.raises(BadRequestError) as info:
                rotate_tokens("garbage")
            assert isinstance(info.value.__cause__, TokenError)

            rotated = rotate_tokens(pair.refresh_token)
            assert rotated.refresh_token != pair.refresh_token
            with pytest.raises(UnauthorizedError):
                rotate_tokens(pair.refresh_token)

    def test_revoked_slot_rejects_token(self, app, make_user):
        user_id = make_user("alice")
        with app.app_context():
            pair = issue_tokens(user_id)
            revoke_tokens(user_id)
            revoke_tokens(user_id)
            with pytest.raises(UnauthorizedError):
                rotate_tokens(pair.refresh_token)

    def test_slot_must_match_byte_for_byte(self, app, make_user):
        user_id = make_user("alice")
        with app.app_context():
            pair = issue_tokens(user_id)
            user = storage.get(User, user_id)
            user.refresh_token = pair.refresh_token + "x"
            storage.save()
            with pytest.raises(UnauthorizedError, match="Refresh token is expired or used"):
                rotate_tokens(pair.refresh_token)

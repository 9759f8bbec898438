"""Property-based tests for JWT bearer tokens.

**Feature: interviews-media, Property: Authentication Token Validity**
"""

from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given, settings, strategies as st

from interviews_media.modules.auth.jwt import (
    create_access_token,
    create_token,
    decode_token,
    principal_from_token,
    validate_token,
)

user_id_strategy = st.integers(min_value=1, max_value=2**31 - 1)
role_strategy = st.sampled_from(["user", "moderator", "admin"])


class TestJWTTokenValidity:
    """Property tests for JWT token validity."""

    @given(user_id=user_id_strategy, role=role_strategy)
    @settings(max_examples=50)
    def test_access_token_carries_user_id_and_role(self, user_id: int, role: str) -> None:
        """For any user id and role, the access token SHALL decode to the same claims."""
        token, _ = create_access_token(user_id, role)
        payload = decode_token(token)

        assert payload is not None, "Token should be decodable"
        assert payload.sub == str(user_id)
        assert payload.role == role
        assert payload.type == "access"

    @given(user_id=user_id_strategy)
    @settings(max_examples=50)
    def test_token_timestamps(self, user_id: int) -> None:
        before = datetime.now(timezone.utc)
        token, _ = create_access_token(user_id)
        after = datetime.now(timezone.utc)
        payload = decode_token(token)

        assert payload is not None
        assert payload.exp > after
        assert payload.iat >= before - timedelta(seconds=1)
        assert payload.iat <= after + timedelta(seconds=1)

    @given(user_id=user_id_strategy)
    @settings(max_examples=50)
    def test_token_has_unique_jti(self, user_id: int) -> None:
        _, jti1 = create_access_token(user_id)
        _, jti2 = create_access_token(user_id)
        assert jti1 != jti2, "Each token should have a unique JTI"

    @given(user_id=user_id_strategy)
    @settings(max_examples=50)
    def test_token_type_is_enforced(self, user_id: int) -> None:
        access, _ = create_access_token(user_id)
        refresh, _ = create_token(user_id, "refresh", timedelta(days=7))

        assert validate_token(access) is not None
        assert validate_token(refresh, "refresh") is not None
        assert validate_token(access, "refresh") is None
        assert validate_token(refresh) is None

    @given(user_id=user_id_strategy, role=role_strategy)
    @settings(max_examples=50)
    def test_principal_from_access_token(self, user_id: int, role: str) -> None:
        token, _ = create_access_token(user_id, role)
        principal = principal_from_token(token)

        assert principal is not None
        assert principal.id == user_id
        assert principal.role == role


class TestInvalidTokens:
    """Tests for invalid token handling."""

    def test_invalid_token_string_fails_decode(self) -> None:
        for token in ["", "not-a-token", "a.b.c"]:
            assert decode_token(token) is None

    def test_tampered_token_fails_validation(self) -> None:
        token, _ = create_access_token(7)
        tampered = token[:-5] + ("AAAAA" if not token.endswith("AAAAA") else "BBBBB")
        assert validate_token(tampered, "access") is None

    def test_expired_token_fails_validation(self) -> None:
        token, _ = create_token(7, "access", timedelta(seconds=-30))
        assert decode_token(token) is not None
        assert validate_token(token, "access") is None
        assert principal_from_token(token) is None

    def test_refresh_token_is_not_a_principal(self) -> None:
        token, _ = create_token(7, "refresh", timedelta(days=7))
        assert principal_from_token(token) is None

    @pytest.mark.parametrize("subject", ["0", "-3", "abc"])
    def test_non_positive_or_non_numeric_subject_is_rejected(self, subject: str) -> None:
        from jose import jwt

        from interviews_media.core.config import settings as app_settings

        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": subject,
                "role": "user",
                "exp": now + timedelta(minutes=5),
                "iat": now,
                "type": "access",
                "jti": "fixed",
            },
            app_settings.SECRET_KEY,
            algorithm="HS256",
        )
        assert principal_from_token(token) is None

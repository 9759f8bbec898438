"""Tests for the ownership guard and role checks."""

import pytest

from interviews_media.core.errors import Forbidden
from interviews_media.modules.auth.schemas import Principal
from interviews_media.modules.auth.service import AuthorizationService, parse_recording_id
from interviews_media.modules.video.repository import RecordingRepository


@pytest.fixture
async def authz(session) -> AuthorizationService:
    await RecordingRepository(session).create(host_user_id=7, recording_id=42)
    return AuthorizationService(session)


class TestIsOwner:
    async def test_host_owns_recording(self, authz, owner) -> None:
        assert await authz.is_owner(owner, 42) is True

    async def test_string_id_is_accepted(self, authz, owner) -> None:
        assert await authz.is_owner(owner, "42") is True

    async def test_other_user_does_not_own(self, authz, stranger) -> None:
        assert await authz.is_owner(stranger, 42) is False

    async def test_admin_has_no_override(self, authz, admin) -> None:
        assert await authz.is_owner(admin, 42) is False

    async def test_unknown_recording_is_not_owned(self, authz, owner) -> None:
        assert await authz.is_owner(owner, 4242) is False

    @pytest.mark.parametrize("recording_id", ["abc", "", "42abc", "-42", "4.2", "0", "42_480p"])
    async def test_malformed_id_is_not_owned(self, authz, owner, recording_id) -> None:
        assert await authz.is_owner(owner, recording_id) is False

    async def test_require_owner_raises_forbidden(self, authz, stranger) -> None:
        with pytest.raises(Forbidden):
            await authz.require_owner(stranger, 42)

    async def test_require_owner_passes_for_host(self, authz, owner) -> None:
        await authz.require_owner(owner, 42)


class TestHasRole:
    def test_exact_role_match(self) -> None:
        authz = AuthorizationService(session=None)
        moderator = Principal(id=3, role="moderator")
        assert authz.has_role(moderator, "moderator") is True
        assert authz.has_role(moderator, "admin") is False

    def test_admin_satisfies_every_role(self) -> None:
        authz = AuthorizationService(session=None)
        admin = Principal(id=1, role="admin")
        for role in ("user", "moderator", "admin"):
            assert authz.has_role(admin, role) is True

    def test_user_is_not_admin(self) -> None:
        authz = AuthorizationService(session=None)
        assert authz.has_role(Principal(id=7), "admin") is False


@pytest.mark.parametrize(
    "raw,expected",
    [(42, 42), ("42", 42), (" 7 ", 7), (0, None), (-1, None), ("x", None), ("٤٢", None), (True, None)],
)
def test_parse_recording_id(raw, expected) -> None:
    assert parse_recording_id(raw) == expected

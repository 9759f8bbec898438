"""Authorization service.

Video bytes and rendition metadata are private to the host of the recording.
Ownership is the only check applied to them; roles only widen access to
aggregate storage statistics.
"""

import logging
from typing import Union

from sqlalchemy.ext.asyncio import AsyncSession

from interviews_media.core.errors import Forbidden
from interviews_media.modules.auth.schemas import Principal, Role
from interviews_media.modules.video.repository import RecordingRepository

logger = logging.getLogger(__name__)


def parse_recording_id(recording_id: Union[int, str]) -> int | None:
    """Parse a recording id taken from a URL or a file name.

    Returns None for anything that is not a positive decimal integer.
    """
    if isinstance(recording_id, bool):
        return None
    if isinstance(recording_id, int):
        return recording_id if recording_id > 0 else None
    text = str(recording_id).strip()
    if not text.isascii() or not text.isdigit():
        return None
    value = int(text)
    return value if value > 0 else None


class AuthorizationService:
    """Ownership and role checks for the authenticated principal."""

    def __init__(self, session: AsyncSession):
        """Initialize authorization service.

        Args:
            session: Async SQLAlchemy session
        """
        self.session = session
        self.recording_repo = RecordingRepository(session)

    async def is_owner(self, principal: Principal, recording_id: Union[int, str]) -> bool:
        """Check whether the principal hosts the recording.

        Args:
            principal: Authenticated caller
            recording_id: Recording id, possibly unparsed

        Returns:
            bool: True only if the recording exists and its host is the
                principal; unknown or malformed ids yield False
        """
        parsed_id = parse_recording_id(recording_id)
        if parsed_id is None:
            return False

        owner_id = await self.recording_repo.get_owner_id(parsed_id)
        if owner_id is None:
            return False
        return owner_id == principal.id

    def has_role(self, principal: Principal, role: Union[Role, str]) -> bool:
        """Check a role; admins satisfy every role."""
        required = role.value if isinstance(role, Role) else role
        if principal.role == Role.ADMIN.value:
            return True
        return principal.role == required

    async def require_owner(self, principal: Principal, recording_id: Union[int, str]) -> None:
        """Raise Forbidden unless the principal hosts the recording."""
        if not await self.is_owner(principal, recording_id):
            logger.info(
                "Recording access denied",
                extra={"user_id": principal.id, "recording_id": str(recording_id)},
            )
            raise Forbidden()

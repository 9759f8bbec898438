"""Authentication and authorization module."""

from interviews_media.modules.auth.jwt import (
    create_access_token,
    decode_token,
    get_current_principal,
    principal_from_token,
    validate_token,
)
from interviews_media.modules.auth.schemas import Principal, Role, TokenPayload
from interviews_media.modules.auth.service import AuthorizationService, parse_recording_id

__all__ = [
    # Schemas
    "Principal",
    "Role",
    "TokenPayload",
    # JWT
    "create_access_token",
    "decode_token",
    "validate_token",
    "principal_from_token",
    "get_current_principal",
    # Authorization
    "AuthorizationService",
    "parse_recording_id",
]

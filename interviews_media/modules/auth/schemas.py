"""Authentication schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Roles carried in access tokens."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


class Principal(BaseModel):
    """The authenticated caller of a request."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., gt=0)
    role: str = Role.USER.value


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    sub: str  # User ID
    role: str
    exp: datetime
    iat: datetime
    type: str
    jti: str

"""JWT token handling and the request principal dependency.

Tokens are issued by the Interviews.tv account service; this module only
needs to mint them for tooling and tests and to validate them on requests.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from interviews_media.core.config import settings
from interviews_media.core.errors import Unauthenticated
from interviews_media.modules.auth.schemas import Principal, Role, TokenPayload

ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"


def create_token(
    user_id: int,
    token_type: str,
    expires_delta: timedelta,
    role: str = Role.USER.value,
) -> tuple[str, str]:
    """Create a JWT token.

    Args:
        user_id: Numeric user id
        token_type: Value of the "type" claim
        expires_delta: Token lifetime
        role: Role claim of the user

    Returns:
        tuple[str, str]: (token, jti) - The encoded token and its unique ID
    """
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)

    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": now + expires_delta,
        "iat": now,
        "type": token_type,
        "jti": jti,
    }

    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)
    return token, jti


def create_access_token(user_id: int, role: str = Role.USER.value) -> tuple[str, str]:
    expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_token(user_id, ACCESS_TOKEN_TYPE, expires_delta, role=role)


def decode_token(token: str) -> Optional[TokenPayload]:
    """Decode a JWT token.

    Returns:
        TokenPayload | None: Decoded payload if the signature is valid
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[ALGORITHM],
            options={"verify_exp": False},
        )
        return TokenPayload(
            sub=payload["sub"],
            role=payload.get("role", Role.USER.value),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            type=payload["type"],
            jti=payload["jti"],
        )
    except (JWTError, KeyError, TypeError, ValueError):
        return None


def validate_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> Optional[TokenPayload]:
    """Validate a JWT token.

    Args:
        token: Encoded JWT token
        expected_type: Required value of the "type" claim

    Returns:
        TokenPayload | None: Decoded payload if valid, None otherwise
    """
    payload = decode_token(token)
    if payload is None:
        return None

    if payload.type != expected_type:
        return None

    if payload.exp < datetime.now(timezone.utc):
        return None

    return payload


def principal_from_token(token: str) -> Optional[Principal]:
    """Build the principal of a valid access token.

    Returns None unless the subject is a positive integer user id.
    """
    payload = validate_token(token)
    if payload is None:
        return None

    try:
        user_id = int(payload.sub)
    except ValueError:
        return None
    if user_id <= 0:
        return None

    return Principal(id=user_id, role=payload.role)


# FastAPI dependencies
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """Get the authenticated principal from the bearer token.

    Raises:
        Unauthenticated: If the token is missing, invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    principal = principal_from_token(credentials.credentials)
    if principal is None:
        raise Unauthenticated("Invalid or expired token")
    return principal

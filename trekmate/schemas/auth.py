"""Authentication schemas."""

from uuid import UUID

from trekmate.schemas.common import BaseSchema


class FirebaseTokenExchange(BaseSchema):
    """Firebase ID token issued to the mobile client after sign-in."""

    id_token: str
    full_name: str | None = None
    photo_url: str | None = None


class UserInfo(BaseSchema):
    """User info in auth response."""

    id: UUID
    full_name: str
    email: str
    photo_url: str = ""


class AuthResponse(BaseSchema):
    """Authentication response with tokens."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: UserInfo

"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from guestdesk.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded session JWT payload."""

    sub: UUID  # user_id
    role: str
    token_version: int


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by the get_current_session dependency.
    """

    user_id: UUID
    role: Role
    email: str
    display_name: str

"""User-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict


class UserPublic(BaseModel):
    """Public profile fields of a user."""

    id: int
    username: str
    first_name: str
    last_name: str
    profile_image: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserSearchResult(UserPublic):
    """User returned by the chat contact search."""

    phone_number: str | None = None

"""Shared API dependencies for authentication and common functionality."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from lifehub.core.errors import AuthenticationError
from lifehub.core.security import decode_access_token
from lifehub.core.settings import settings
from lifehub.db.session import SessionLocal, get_db
from lifehub.models import User
from lifehub.services.connection_hub import ConnectionHub, get_hub
from lifehub.services.delivery import DeliveryService
from lifehub.services.key_derivation import ConversationKeyDeriver
from lifehub.services.media_storage import MediaStorage
from lifehub.services.message_codec import MessageCodec
from lifehub.services.presence import PresenceTracker
from lifehub.services.users import get_user

# HTTP Bearer scheme for JWT authentication; errors are raised as AuthenticationError
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_session_factory() -> sessionmaker[Session]:
    """Return the factory for sessions scoped to a single unit of work."""
    return SessionLocal


SessionFactoryDep = Annotated[sessionmaker[Session], Depends(get_session_factory)]


def load_principal(db: Session, token: str | None) -> User:
    """Resolve a bearer token to the user it was issued for.

    Raises:
        AuthenticationError: If the token is invalid or the user no longer exists.
    """
    claims = decode_access_token(token)
    user = get_user(db, claims.user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from the bearer token."""
    token = credentials.credentials if credentials is not None else None
    return load_principal(db, token)


@lru_cache
def get_message_codec() -> MessageCodec:
    """Return the codec keyed with the configured encryption secret."""
    return MessageCodec(ConversationKeyDeriver(settings.encryption_secret_bytes))


@lru_cache
def get_media_storage() -> MediaStorage:
    """Return the attachment store configured for this process."""
    return MediaStorage(
        root=settings.media_root,
        url_prefix=settings.media_url_prefix,
        max_bytes=settings.chat_max_attachment_bytes,
    )


CurrentUserDep = Annotated[User, Depends(get_current_user)]
CodecDep = Annotated[MessageCodec, Depends(get_message_codec)]
MediaStorageDep = Annotated[MediaStorage, Depends(get_media_storage)]
HubDep = Annotated[ConnectionHub, Depends(get_hub)]


def get_delivery_service(db: SessionDep, codec: CodecDep) -> DeliveryService:
    """Return a delivery pipeline bound to the request's session."""
    return DeliveryService(db, codec)


def get_presence_tracker(hub: HubDep) -> PresenceTracker:
    """Return the fan-out helper bound to the process hub."""
    return PresenceTracker(hub)


DeliveryDep = Annotated[DeliveryService, Depends(get_delivery_service)]
PresenceDep = Annotated[PresenceTracker, Depends(get_presence_tracker)]

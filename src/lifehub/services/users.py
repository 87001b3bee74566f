"""Read-only helpers for looking up users from the messaging subsystem."""
from __future__ import annotations

from typing import Sequence

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from lifehub.core.errors import InvalidRequestError
from lifehub.models.user import User

__all__ = [
    "MIN_SEARCH_LENGTH",
    "SEARCH_RESULT_LIMIT",
    "get_user",
    "get_users",
    "search_users",
]

MIN_SEARCH_LENGTH = 2
SEARCH_RESULT_LIMIT = 20


def get_user(db: Session, user_id: int) -> User | None:
    """Return a single user by primary key."""
    return db.get(User, user_id)


def get_users(db: Session, user_ids: Sequence[int]) -> dict[int, User]:
    """Return the requested users keyed by id."""
    if not user_ids:
        return {}
    users = db.query(User).filter(User.id.in_(set(user_ids))).all()
    return {user.id: user for user in users}


def search_users(
    db: Session,
    query: str | None,
    exclude_user_id: int,
    limit: int = SEARCH_RESULT_LIMIT,
) -> Sequence[User]:
    """Find users whose username or phone number contains ``query``."""
    term = (query or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        raise InvalidRequestError(
            f"Search query must be at least {MIN_SEARCH_LENGTH} characters"
        )

    pattern = f"%{term.lower()}%"
    return (
        db.query(User)
        .filter(
            or_(
                func.lower(User.username).like(pattern),
                func.lower(User.phone_number).like(pattern),
            ),
            User.id != exclude_user_id,
        )
        .order_by(User.username)
        .limit(limit)
        .all()
    )

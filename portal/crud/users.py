from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.security import hash_password, verify_password
from ..models.user import User


class UsernameTaken(ValueError):
    pass


def _utcnow() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def get_user_by_username(db: Session, username: str) -> User | None:
    stmt = select(User).where(User.username == (username or "").strip())
    return db.execute(stmt).scalars().first()


def create_user(db: Session, username: str, password: str) -> User:
    """Create a user with a bcrypt-hashed password."""

    name = (username or "").strip()
    if not name or not password:
        raise ValueError("username and password are required")
    if get_user_by_username(db, name):
        raise UsernameTaken("Username already exists")
    now = _utcnow()
    user = User(
        username=name,
        password_hash=hash_password(str(password)),
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise UsernameTaken("Username already exists") from exc
    db.refresh(user)
    return user


def authenticate(db: Session, username: str, password: str) -> User | None:
    """Return the user when the password matches, otherwise ``None``."""

    user = get_user_by_username(db, username)
    if not user or not verify_password(str(password), user.password_hash):
        return None
    return user

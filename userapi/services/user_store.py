from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime, timezone
from threading import Lock

from userapi.models.schemas import User

_EMAIL_RE = re.compile(r"\S+@\S+\.\S+")

SAMPLE_USERS = (
    ("John Doe", "john@example.com"),
    ("Jane Smith", "jane@example.com"),
)

logger = logging.getLogger(__name__)


class UserStoreError(Exception):
    """Base class for failures the store reports to its callers."""


class UserNotFound(UserStoreError):
    def __init__(self, user_id: int | str) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class EmailConflict(UserStoreError):
    def __init__(self, email: str) -> None:
        super().__init__(f"Email {email!r} already exists")
        self.email = email


class ValidationFailed(UserStoreError):
    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


def _now() -> datetime:
    return datetime.now(timezone.utc)


def validate_user(name: str | None, email: str | None) -> list[str]:
    """Return every problem with a name/email pair (empty list when valid)."""
    errors: list[str] = []
    if not name or not name.strip():
        errors.append("Name is required")
    if not email or not _EMAIL_RE.search(email):
        errors.append("Valid email is required")
    return errors


class UserStore:
    """
    In-memory owner of the user collection.

    Every operation runs its check-then-mutate sequence under one lock, so an
    email uniqueness check can't be raced by a concurrent create/update.
    Records handed out are copies; the stored ones change only through here.
    """

    def __init__(self, seed: Iterable[User] = ()) -> None:
        self._lock = Lock()
        self._users: list[User] = [u.model_copy() for u in seed]
        self._next_id = max((u.id for u in self._users), default=0) + 1

    @classmethod
    def with_sample_users(cls) -> UserStore:
        now = _now()
        seed = [User(id=i, name=name, email=email, created_at=now) for i, (name, email) in enumerate(SAMPLE_USERS, start=1)]
        return cls(seed=seed)

    def _find(self, user_id: int) -> User | None:
        return next((u for u in self._users if u.id == user_id), None)

    def _email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        return any(u.email == email and u.id != exclude_id for u in self._users)

    def count(self) -> int:
        with self._lock:
            return len(self._users)

    def list_users(self, page: int, limit: int, search: str | None = None) -> tuple[list[User], int]:
        if page < 1 or limit < 1:
            raise ValidationFailed(["page and limit must be positive integers"])

        with self._lock:
            matched = self._users
            if search:
                term = search.lower()
                matched = [u for u in matched if term in u.name.lower() or term in u.email.lower()]
            start = (page - 1) * limit
            items = [u.model_copy() for u in matched[start : page * limit]]
            return items, len(matched)

    def get(self, user_id: int) -> User:
        with self._lock:
            user = self._find(user_id)
            if user is None:
                raise UserNotFound(user_id)
            return user.model_copy()

    def create(self, name: str | None, email: str | None) -> User:
        errors = validate_user(name, email)
        if errors:
            raise ValidationFailed(errors)
        name, email = name.strip(), email.strip()

        with self._lock:
            if self._email_taken(email):
                raise EmailConflict(email)
            user = User(id=self._next_id, name=name, email=email, created_at=_now())
            self._next_id += 1
            self._users.append(user)

        logger.info("user.created", extra={"user_id": user.id})
        return user.model_copy()

    def update(self, user_id: int, name: str | None, email: str | None) -> User:
        with self._lock:
            user = self._find(user_id)
            if user is None:
                raise UserNotFound(user_id)

            errors = validate_user(name, email)
            if errors:
                raise ValidationFailed(errors)
            name, email = name.strip(), email.strip()

            if self._email_taken(email, exclude_id=user_id):
                raise EmailConflict(email)

            user.name = name
            user.email = email
            user.updated_at = _now()
            updated = user.model_copy()

        logger.info("user.updated", extra={"user_id": user_id})
        return updated

    def delete(self, user_id: int) -> User:
        with self._lock:
            user = self._find(user_id)
            if user is None:
                raise UserNotFound(user_id)
            self._users.remove(user)

        logger.info("user.deleted", extra={"user_id": user_id})
        return user

"""MongoDB-backed persistence for user documents."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .models import User

logger = logging.getLogger("useradmin.store")

DEFAULT_DATABASE_NAME = "crud"
DEFAULT_COLLECTION_NAME = "users"


class UserStoreError(RuntimeError):
    """Raised when the document store rejects or fails an operation."""


class InvalidUserIdError(ValueError):
    """Raised when a string cannot be converted into a store identifier."""


def parse_user_id(value: object) -> ObjectId:
    """Convert a path or body identifier into an :class:`ObjectId`."""

    if not isinstance(value, str):
        raise InvalidUserIdError(f"User id must be a string, not {type(value).__name__}")
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as exc:
        raise InvalidUserIdError(f"Invalid user id {value!r}") from exc


def current_timestamp() -> datetime:
    """Return the current UTC time truncated to the store's millisecond precision."""

    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def _as_utc(value: object) -> Optional[datetime]:
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _profile_update(updates: Mapping[str, str]) -> Dict[str, Dict[str, str]]:
    # Empty values remove the field, matching how inserts omit them.
    operation: Dict[str, Dict[str, str]] = {}
    for key, value in updates.items():
        if value:
            operation.setdefault("$set", {})[key] = value
        else:
            operation.setdefault("$unset", {})[key] = ""
    return operation


class UserStore:
    """Thin adapter between the HTTP handlers and the users collection."""

    def __init__(
        self,
        client: MongoClient,
        *,
        database_name: str = DEFAULT_DATABASE_NAME,
        collection_name: str = DEFAULT_COLLECTION_NAME,
    ) -> None:
        self._client = client
        self._database_name = database_name
        self._collection_name = collection_name

    @property
    def namespace(self) -> str:
        return f"{self._database_name}.{self._collection_name}"

    def _collection(self) -> Collection:
        return self._client[self._database_name][self._collection_name]

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except PyMongoError as exc:
            logger.error("Store operation %s on %s failed: %s", operation, self.namespace, exc)
            raise UserStoreError(f"Failed to {operation}: {exc}") from exc

    def ping(self) -> None:
        """Verify the server is reachable."""

        with self._translate_errors("ping the document store"):
            self._client.admin.command("ping")

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def list_users(self) -> List[User]:
        with self._translate_errors("list users"):
            documents = list(self._collection().find({}))
        return [self._document_to_user(document) for document in documents]

    def get_user(self, user_id: str) -> Optional[User]:
        object_id = parse_user_id(user_id)
        with self._translate_errors("fetch user"):
            document = self._collection().find_one({"_id": object_id})
        if document is None:
            return None
        return self._document_to_user(document)

    def create_user(
        self,
        *,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        created: Optional[datetime] = None,
    ) -> User:
        """Insert a new user document and return it with its assigned id."""

        document: Dict[str, Any] = {}
        for key, value in (("username", username), ("email", email), ("password", password)):
            # Empty values are left out of the document entirely.
            if value:
                document[key] = value
        if created is not None:
            document["created"] = created

        with self._translate_errors("insert user"):
            result = self._collection().insert_one(document)

        user_id = str(result.inserted_id)
        logger.info("Created user %s in %s", user_id, self.namespace)
        return User(
            id=user_id,
            username=document.get("username"),
            email=document.get("email"),
            password=document.get("password"),
            created=_as_utc(created),
        )

    def update_user_profile(
        self,
        user_id: str,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> bool:
        """Set the username and/or email of an existing user.

        Only the two profile fields are ever written; the password and creation
        time are left untouched. An empty string removes the field. Returns
        ``True`` when a document matched.
        """

        object_id = parse_user_id(user_id)
        updates: Dict[str, str] = {}
        for key, value in (("username", username), ("email", email)):
            if value is not None:
                updates[key] = value

        if not updates:
            with self._translate_errors("fetch user"):
                return self._collection().find_one({"_id": object_id}, {"_id": 1}) is not None

        with self._translate_errors("update user"):
            result = self._collection().update_one({"_id": object_id}, _profile_update(updates))

        logger.info("Updated %s for user %s (matched=%d)", ", ".join(sorted(updates)), user_id, result.matched_count)
        return result.matched_count > 0

    def delete_user(self, user_id: str) -> bool:
        object_id = parse_user_id(user_id)
        with self._translate_errors("delete user"):
            result = self._collection().delete_one({"_id": object_id})
        logger.info("Deleted user %s (removed=%d)", user_id, result.deleted_count)
        return result.deleted_count > 0

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _document_to_user(self, document: Mapping[str, Any]) -> User:
        return User(
            id=str(document["_id"]),
            username=document.get("username") or None,
            email=document.get("email") or None,
            password=document.get("password") or None,
            created=_as_utc(document.get("created")),
        )


__all__ = [
    "DEFAULT_COLLECTION_NAME",
    "DEFAULT_DATABASE_NAME",
    "InvalidUserIdError",
    "UserStore",
    "UserStoreError",
    "current_timestamp",
    "parse_user_id",
]

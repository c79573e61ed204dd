"""Domain models for the user administration service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class User:
    """Represents a user document stored in the users collection."""

    id: str
    username: Optional[str]
    email: Optional[str]
    password: Optional[str] = field(repr=False)
    created: Optional[datetime]


__all__ = ["User"]

"""Core utilities for the user administration service."""

from __future__ import annotations

from typing import Any

from .models import User
from .store import InvalidUserIdError, UserStore, UserStoreError


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the routes bound to an existing store."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


def create_application(*args: Any, **kwargs: Any):
    """Factory function that connects to the configured store and builds the app."""

    from .application import create_application as _create_application

    return _create_application(*args, **kwargs)


__all__ = [
    "InvalidUserIdError",
    "User",
    "UserStore",
    "UserStoreError",
    "create_app",
    "create_application",
]

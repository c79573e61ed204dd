"""Application factory that wires settings, the document store and the routes."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from pymongo import MongoClient

from .config import Settings, load_settings
from .service import create_app
from .store import UserStore
from .templates import TemplateCache

logger = logging.getLogger("useradmin.application")


def create_store(settings: Settings, *, client: Optional[MongoClient] = None) -> UserStore:
    """Connect to the configured document store and verify it is reachable."""

    if client is None:
        client = MongoClient(settings.mongo_uri)
    store = UserStore(
        client,
        database_name=settings.database,
        collection_name=settings.collection,
    )
    try:
        store.ping()
    except Exception:
        store.close()
        raise
    logger.info("Connected to document store %s", store.namespace)
    return store


def create_application(
    settings: Optional[Settings] = None,
    *,
    client: Optional[MongoClient] = None,
) -> FastAPI:
    """Create the ASGI application; the returned app owns its store connection."""

    if settings is None:
        settings = load_settings()

    store = create_store(settings, client=client)
    templates = TemplateCache(settings.template_dir, auto_reload=settings.auto_reload_templates)

    app = create_app(
        store=store,
        templates=templates,
        static_dir=settings.static_dir,
        close_store_on_shutdown=True,
    )
    app.state.settings = settings
    return app


__all__ = ["create_application", "create_store"]

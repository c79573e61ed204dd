from __future__ import annotations

from typing import Iterator

import mongomock
import pytest
from fastapi.testclient import TestClient

from useradmin.config import STATIC_DIR
from useradmin.service import create_app
from useradmin.store import UserStore


@pytest.fixture()
def mongo_client() -> mongomock.MongoClient:
    return mongomock.MongoClient()


@pytest.fixture()
def store(mongo_client: mongomock.MongoClient) -> UserStore:
    return UserStore(mongo_client, database_name="crud", collection_name="users")


@pytest.fixture()
def client(store: UserStore) -> Iterator[TestClient]:
    app = create_app(store=store, static_dir=STATIC_DIR)
    with TestClient(app) as test_client:
        yield test_client

"""Shared fixtures: an in-process motor-compatible database per test."""
from __future__ import annotations

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from dmstore.database.connection import MongoConnection
from dmstore.main import create_app
from dmstore.repositories.message_repository import MessageRepository


@pytest.fixture(scope="function")
def mongo_client():
    return AsyncMongoMockClient()


@pytest.fixture(scope="function")
def db(mongo_client):
    return mongo_client["dmstore_test"]


@pytest.fixture(scope="function")
def repo(db) -> MessageRepository:
    return MessageRepository(db, timeout=1.0)


@pytest.fixture(scope="function")
def alice() -> ObjectId:
    return ObjectId()


@pytest.fixture(scope="function")
def bob() -> ObjectId:
    return ObjectId()


@pytest.fixture(scope="function")
def carol() -> ObjectId:
    return ObjectId()


@pytest.fixture(scope="function")
def mongo(mongo_client) -> MongoConnection:
    return MongoConnection(db_name="dmstore_test", timeout_ms=1000, client=mongo_client)


@pytest.fixture(scope="function")
def client(mongo) -> TestClient:
    # lifespan is not entered: the connection is handed over already open
    return TestClient(create_app(mongo))

from typing import Generator

import mongomock
import pytest
from fastapi.testclient import TestClient

from postithere.api.server import create_app
from postithere.auth import PasswordHasher, TokenService, UserDirectory
from postithere.config import Config
from postithere.db import get_database, init_db
from postithere.flags import ConfigStore, RegistrationGate
from postithere.forms import FormStore

TEST_SECRET = "test-secret-do-not-use-" + "x" * 64
TEST_ISSUER = "postithere-test"
TEST_AUDIENCE = "postithere-test-users"


@pytest.fixture
def cfg() -> Config:
    # Low hash rounds keep the suite fast; the algorithm is the same.
    return Config(
        MONGO_DB="postithere_test",
        AUTH_JWT_SECRET=TEST_SECRET,
        AUTH_JWT_ISSUER=TEST_ISSUER,
        AUTH_JWT_AUDIENCE=TEST_AUDIENCE,
        AUTH_JWT_REALM="postithere-test",
        AUTH_HASH_ROUNDS=1000,
        REGISTRATION_FLAG_KEY="allowRegistration",
        CORS_ALLOW_ORIGINS="*",
    )


@pytest.fixture
def mongo_client() -> Generator[mongomock.MongoClient, None, None]:
    """In-process MongoDB shared by the services and the app under test."""
    client = mongomock.MongoClient(tz_aware=True)
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def db(mongo_client, cfg):
    database = get_database(mongo_client, cfg)
    init_db(database)
    return database


@pytest.fixture
def hasher(cfg) -> PasswordHasher:
    return PasswordHasher(rounds=cfg.AUTH_HASH_ROUNDS)


@pytest.fixture
def tokens(cfg) -> TokenService:
    return TokenService(
        secret=cfg.AUTH_JWT_SECRET,
        issuer=cfg.AUTH_JWT_ISSUER,
        audience=cfg.AUTH_JWT_AUDIENCE,
    )


@pytest.fixture
def users(db, hasher) -> UserDirectory:
    return UserDirectory(db, hasher)


@pytest.fixture
def form_store(db, users) -> FormStore:
    return FormStore(db, users)


@pytest.fixture
def gate(db, cfg) -> RegistrationGate:
    return RegistrationGate(ConfigStore(db), cfg.REGISTRATION_FLAG_KEY)


@pytest.fixture
def client(cfg, mongo_client, db) -> Generator[TestClient, None, None]:
    """In-process TestClient; the lifespan (index creation) runs inside the `with`."""
    app = create_app(cfg, client=mongo_client)
    with TestClient(app) as c:
        yield c

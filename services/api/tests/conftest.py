import os
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from readlater.domain.states import LibraryItemState
from readlater.models import Base, Label, LibraryItem, User
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


def _postgres_url() -> str | None:
    url = os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL")
    if url and url.startswith("postgresql"):
        return url
    return None


@pytest.fixture(scope="session")
def engine():
    # Array columns, tsvector and && only exist on PostgreSQL.
    # Run with: DATABASE_URL=postgresql+psycopg://... pytest
    url = _postgres_url()
    if url is None:
        pytest.skip("database tests need DATABASE_URL pointing at PostgreSQL")

    eng = create_engine(url, pool_pre_ping=True)

    # For speed, create tables directly in tests.
    # In CI, consider running `alembic upgrade head` and omitting create_all.
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def db_session(engine, monkeypatch):
    connection = engine.connect()
    tx = connection.begin()

    # Every run_in_transaction call becomes a savepoint inside the outer
    # transaction, which is rolled back after the test.
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=connection,
        join_transaction_mode="create_savepoint",
    )
    monkeypatch.setattr("readlater.db.session.SessionLocal", TestingSessionLocal)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        tx.rollback()
        connection.close()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@pytest.fixture()
def user(db_session) -> User:
    u = User(email=f"{uuid4()}@example.com", name="Reader")
    db_session.add(u)
    db_session.commit()
    return u


@pytest.fixture()
def make_item(db_session, user):
    def _make(**overrides) -> LibraryItem:
        values = {
            "user_id": user.id,
            "title": "Untitled",
            "original_url": f"https://example.com/{uuid4()}",
            "state": LibraryItemState.SUCCEEDED.value,
            "saved_at": utcnow(),
        }
        values.update(overrides)
        item = LibraryItem(**values)
        db_session.add(item)
        db_session.commit()
        return item

    return _make


@pytest.fixture()
def make_label(db_session, user):
    def _make(name: str) -> Label:
        label = Label(user_id=user.id, name=name)
        db_session.add(label)
        db_session.commit()
        return label

    return _make


class RecordingPublisher:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.created: list[tuple] = []
        self.updated: list[tuple] = []

    def entity_created(self, kind, entity, user_id):
        if self.fail:
            raise ConnectionError("redis down")
        self.created.append((kind, entity, user_id))

    def entity_updated(self, kind, patch, user_id):
        if self.fail:
            raise ConnectionError("redis down")
        self.updated.append((kind, patch, user_id))


@pytest.fixture()
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture()
def failing_publisher() -> RecordingPublisher:
    return RecordingPublisher(fail=True)

import itertools
import logging
import os

# Keep the OTLP exporter out of test runs; must happen before settings load
os.environ.setdefault("OTEL_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import create_async_engine

from socialgraph import database
from socialgraph.engine.comments import CommentThreads
from socialgraph.engine.follows import FollowGraph
from socialgraph.engine.likes import LikeCounter
from socialgraph.engine.posts import PostStore
from socialgraph.engine.profiles import ProfileAggregator
from socialgraph.models import User
from socialgraph.store import StoreGateway
from socialgraph.telemetry import EventSink


class RecordingSink(EventSink):
    """EventSink that also keeps every event for assertions."""

    def __init__(self, component: str) -> None:
        super().__init__(component)
        self.events: list[tuple[str, dict]] = []

    def emit(self, event, level=logging.INFO, **fields):
        self.events.append((event, fields))
        super().emit(event, level=level, **fields)

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'social.db'}")
    database.enable_sqlite_foreign_keys(eng)
    await database.init_db(eng)
    database.set_engine(eng)
    try:
        yield eng
    finally:
        database.set_engine(None)
        await eng.dispose()


@pytest.fixture
def gateway(engine):
    return StoreGateway(engine)


@pytest.fixture
def posts(gateway):
    return PostStore(gateway, RecordingSink("posts"))


@pytest.fixture
def comments(gateway, posts):
    return CommentThreads(gateway, posts, RecordingSink("comments"))


@pytest.fixture
def likes(gateway, posts):
    return LikeCounter(gateway, posts, RecordingSink("likes"))


@pytest.fixture
def follows(gateway):
    return FollowGraph(gateway, RecordingSink("follows"))


@pytest.fixture
def profiles(gateway, follows):
    return ProfileAggregator(gateway, follows, RecordingSink("profiles"))


@pytest.fixture
def make_user(gateway):
    """Insert a user row directly; accounts are provisioned outside the engine."""
    seq = itertools.count(1)

    async def _make(username=None, **fields) -> int:
        username = username or f"user{next(seq)}"
        return await gateway.insert(
            insert(User).values(
                username=username,
                email=fields.pop("email", f"{username}@example.com"),
                **fields,
            )
        )

    return _make


@pytest_asyncio.fixture
async def api_client(engine):
    from socialgraph.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

import pytest
from sqlalchemy import func, insert, select, text
from sqlalchemy.exc import IntegrityError

from socialgraph.engine.pagination import PageWindow
from socialgraph.errors import (
    ErrorKind,
    ForeignKeyViolation,
    StoreError,
    UniqueViolation,
    ValidationError,
)
from socialgraph.models import Post, User
from socialgraph.store import classify_integrity_error


@pytest.mark.asyncio
async def test_insert_returns_primary_key(gateway):
    first = await gateway.insert(insert(User).values(username="ana", email="ana@example.com"))
    second = await gateway.insert(insert(User).values(username="ben", email="ben@example.com"))

    assert second == first + 1
    row = await gateway.fetch_one(select(User.username).where(User.id == second))
    assert row == {"username": "ben"}


@pytest.mark.asyncio
async def test_duplicate_insert_is_unique_violation(gateway):
    await gateway.insert(insert(User).values(username="ana", email="ana@example.com"))

    with pytest.raises(UniqueViolation) as excinfo:
        await gateway.insert(insert(User).values(username="ana", email="other@example.com"))

    assert excinfo.value.kind is ErrorKind.STORE
    assert excinfo.value.cause is not None


@pytest.mark.asyncio
async def test_driver_fault_is_wrapped(gateway):
    with pytest.raises(StoreError) as excinfo:
        await gateway.fetch_all(text("SELECT * FROM no_such_table"))

    assert not isinstance(excinfo.value, UniqueViolation)
    assert "store failure" in str(excinfo.value)


@pytest.mark.asyncio
async def test_missing_parent_row_is_not_a_duplicate(gateway):
    with pytest.raises(ForeignKeyViolation) as excinfo:
        await gateway.insert(insert(Post).values(user_id=999, content="orphan"))

    assert not isinstance(excinfo.value, UniqueViolation)
    assert excinfo.value.reason == "missing reference"


@pytest.mark.parametrize(
    "code, expected",
    [
        (1062, UniqueViolation),
        (1452, ForeignKeyViolation),
        (1216, ForeignKeyViolation),
        (1048, StoreError),
    ],
)
def test_classify_mysql_integrity_codes(code, expected):
    driver_error = Exception(code, "integrity failure")
    exc = IntegrityError("INSERT INTO likes ...", {}, driver_error)

    classified = classify_integrity_error(exc)

    assert type(classified) is expected
    assert classified.cause is exc


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(gateway):
    with pytest.raises(RuntimeError):
        async with gateway.transaction() as unit:
            await unit.insert(insert(User).values(username="ghost", email="ghost@example.com"))
            raise RuntimeError("abort")

    count = await gateway.scalar(select(func.count()).select_from(User))
    assert count == 0


@pytest.mark.asyncio
async def test_values_are_bound_not_interpolated(gateway):
    hostile = "x'); DROP TABLE users; --"
    await gateway.insert(insert(User).values(username=hostile, email="h@example.com"))

    rows = await gateway.fetch_all(select(User.username))
    assert rows == [{"username": hostile}]


@pytest.mark.asyncio
async def test_traced_operation_stamps_store_error(engine, likes):
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE likes"))

    with pytest.raises(StoreError) as excinfo:
        await likes.get_like_count(1)

    assert excinfo.value.operation == "likes.count"
    assert "store_error" in likes.events.names()


def test_page_window_bounds():
    assert PageWindow.from_page(3, 20) == PageWindow(offset=40, limit=20)
    assert PageWindow.of(0, 10).has_more(11)
    assert not PageWindow.of(10, 10).has_more(20)

    with pytest.raises(ValidationError):
        PageWindow.of(-1, 10)
    with pytest.raises(ValidationError):
        PageWindow.of(0, 0)
    with pytest.raises(ValidationError):
        PageWindow.of(0, 101)

"""
Relational store gateway.

Every engine component reads and writes through a StoreGateway. Statements
are SQLAlchemy expression objects, so values always travel as bound
parameters and never land in the statement text. Rows come back as plain
field-named dicts.

Faults surface as a StoreError wrapping the driver exception. Duplicate keys
become UniqueViolation and missing parent rows become ForeignKeyViolation. Nothing here retries: connection
recovery belongs to the pool (pool_pre_ping), not to the gateway.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.sql import Executable

from socialgraph.errors import ForeignKeyViolation, StoreError, UniqueViolation
from socialgraph.telemetry import STORE_STATEMENT_SECONDS

logger = logging.getLogger(__name__)

# MySQL server error codes
ER_DUP_ENTRY = 1062
ER_NO_REFERENCED_ROW = (1216, 1452)


def classify_integrity_error(exc: IntegrityError) -> StoreError:
    """Map a driver integrity failure to the matching StoreError subclass."""
    args = getattr(exc.orig, "args", ())
    code = args[0] if args else None
    message = str(exc.orig)
    if code == ER_DUP_ENTRY or message.startswith("UNIQUE constraint failed"):
        return UniqueViolation(cause=exc)
    if code in ER_NO_REFERENCED_ROW or message.startswith("FOREIGN KEY constraint failed"):
        return ForeignKeyViolation(cause=exc)
    # NOT NULL and CHECK failures
    return StoreError(cause=exc)


class StoreUnit:
    """Statement runner bound to one connection inside one transaction."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def _run(self, stmt: Executable):
        start = time.perf_counter()
        try:
            return await self._conn.execute(stmt)
        except IntegrityError as exc:
            raise classify_integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            logger.error("Statement failed: %s", exc.__class__.__name__)
            raise StoreError(cause=exc) from exc
        finally:
            STORE_STATEMENT_SECONDS.observe(time.perf_counter() - start)

    async def fetch_all(self, stmt: Executable) -> list[dict]:
        result = await self._run(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def fetch_one(self, stmt: Executable) -> Optional[dict]:
        result = await self._run(stmt)
        row = result.mappings().first()
        return dict(row) if row is not None else None

    async def scalar(self, stmt: Executable) -> Any:
        result = await self._run(stmt)
        return result.scalar()

    async def execute(self, stmt: Executable) -> int:
        """Run a write and return the number of matched rows."""
        result = await self._run(stmt)
        return result.rowcount

    async def insert(self, stmt: Executable) -> Any:
        """Run a single-row INSERT and return the new primary key."""
        result = await self._run(stmt)
        return result.inserted_primary_key[0]


class StoreGateway:
    """
    Entry point to the relational store.

    The one-shot helpers run each statement in its own short transaction.
    Use transaction() when a write must be read back on the same connection.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreUnit]:
        try:
            async with self._engine.begin() as conn:
                yield StoreUnit(conn)
        except IntegrityError as exc:
            raise classify_integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            logger.error("Transaction failed: %s", exc.__class__.__name__)
            raise StoreError(cause=exc) from exc

    async def fetch_all(self, stmt: Executable) -> list[dict]:
        async with self.transaction() as unit:
            return await unit.fetch_all(stmt)

    async def fetch_one(self, stmt: Executable) -> Optional[dict]:
        async with self.transaction() as unit:
            return await unit.fetch_one(stmt)

    async def scalar(self, stmt: Executable) -> Any:
        async with self.transaction() as unit:
            return await unit.scalar(stmt)

    async def execute(self, stmt: Executable) -> int:
        async with self.transaction() as unit:
            return await unit.execute(stmt)

    async def insert(self, stmt: Executable) -> Any:
        async with self.transaction() as unit:
            return await unit.insert(stmt)

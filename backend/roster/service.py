"""
Roster Store - Service Layer

Narrow operations over the four roster tables. Every public method runs in
its own transaction; multi-row transitions (promotion of a pending or manual
record to a member) are a single `move` so the source row is consumed at most
once even when two interactions race for it.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from sqlalchemy import Table, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database import AsyncSessionLocal, ExtraDB, ManualDB, MemberDB, PendingDB

from .exceptions import (
    RecordConflictError,
    RecordNotFoundError,
    RosterError,
    RosterStoreError,
)
from .records import RECORD_TYPES, BaseRecord, FresherStatus, RecordTable

logger = logging.getLogger(__name__)


TABLES: Dict[RecordTable, Table] = {
    RecordTable.PENDING: PendingDB.__table__,
    RecordTable.MANUAL: ManualDB.__table__,
    RecordTable.MEMBERS: MemberDB.__table__,
    RecordTable.EXTRAS: ExtraDB.__table__,
}

# Columns an operator may search members by
MEMBER_SEARCH_FIELDS = ("shortcode", "preferred_name", "legal_name")

# Columns the store manages itself
_SYSTEM_COLUMNS = ("discord_id", "created_at")


class RosterStore:
    """
    Roster Store - persistence for pending, manual, member and extra records.

    All methods raise:
    - RosterStoreError: the database failed (retryable)
    - RecordNotFoundError: a row the operation needed is absent
    - RecordConflictError: an insert hit an existing identity
    """

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except (RosterError, IntegrityError):
            raise
        except SQLAlchemyError as e:
            logger.error(f"Roster store {operation} failed: {e}")
            raise RosterStoreError(f"Roster store {operation} failed", cause=e) from e

    # ==================== SINGLE RECORDS ====================

    async def get(self, table: RecordTable, identity: int) -> Optional[BaseRecord]:
        """Fetch the record for an identity, or None."""
        target = TABLES[table]
        async with self._transaction("get") as session:
            result = await session.execute(
                select(target).where(target.c.discord_id == identity)
            )
            row = result.mappings().first()
        return RECORD_TYPES[table].from_row(row) if row is not None else None

    async def insert(self, record: BaseRecord) -> BaseRecord:
        """Insert a new record. Raises RecordConflictError if the identity exists."""
        target = TABLES[record.table]
        try:
            async with self._transaction("insert") as session:
                await session.execute(insert(target).values(**record.to_dict()))
        except IntegrityError as e:
            raise RecordConflictError(record.table.value, record.identity) from e
        logger.info(f"Inserted {record.table.value} record for {record.identity}")
        return record

    async def replace(self, record: BaseRecord) -> BaseRecord:
        """Insert the record, atomically superseding any row for the same identity."""
        target = TABLES[record.table]
        try:
            async with self._transaction("replace") as session:
                await session.execute(
                    delete(target).where(target.c.discord_id == record.identity)
                )
                await session.execute(insert(target).values(**record.to_dict()))
        except IntegrityError as e:
            raise RecordConflictError(record.table.value, record.identity) from e
        logger.info(f"Replaced {record.table.value} record for {record.identity}")
        return record

    async def delete(self, table: RecordTable, identity: int) -> bool:
        """Delete the record for an identity. Returns False if there was none."""
        target = TABLES[table]
        async with self._transaction("delete") as session:
            result = await session.execute(
                delete(target).where(target.c.discord_id == identity)
            )
        return result.rowcount > 0

    async def move(
        self,
        source: RecordTable,
        dest: RecordTable,
        identity: int,
        **extra: Any
    ) -> BaseRecord:
        """
        Consume the source row and insert the destination record in one transaction.

        Fields of the destination record come from the source row, overridden
        by `extra`. If the source row is gone (never existed, or another
        interaction consumed it first) nothing is written.

        Raises:
            RecordNotFoundError: no source row for the identity
            RecordConflictError: the destination already holds the identity
        """
        src = TABLES[source]
        dst = TABLES[dest]
        async with self._transaction("move") as session:
            result = await session.execute(
                delete(src)
                .where(src.c.discord_id == identity)
                .returning(*src.c)
            )
            row = result.mappings().first()
            if row is None:
                raise RecordNotFoundError(source.value, identity)

            values = {k: v for k, v in row.items() if k not in ("created_at",)}
            values.update(extra)
            record = RECORD_TYPES[dest].from_row(values)
            try:
                await session.execute(insert(dst).values(**record.to_dict()))
            except IntegrityError as e:
                raise RecordConflictError(dest.value, identity) from e

        logger.info(f"Moved {identity} from {source.value} to {dest.value}")
        return record

    async def update(self, table: RecordTable, identity: int, **fields: Any) -> BaseRecord:
        """Edit fields of an existing record. Returns the updated record."""
        target = TABLES[table]
        unknown = [
            name for name in fields
            if name not in target.c or name in _SYSTEM_COLUMNS
        ]
        if unknown:
            raise ValueError(f"Unknown {table.value} fields: {', '.join(unknown)}")

        async with self._transaction("update") as session:
            result = await session.execute(
                select(target).where(target.c.discord_id == identity)
            )
            row = result.mappings().first()
            if row is None:
                raise RecordNotFoundError(table.value, identity)

            record = RECORD_TYPES[table].from_row({**row, **fields})
            values = record.to_dict()
            changes = {name: values[name] for name in fields}
            await session.execute(
                update(target).where(target.c.discord_id == identity).values(**changes)
            )
        logger.info(f"Updated {table.value} record for {identity}: {sorted(changes)}")
        return record

    # ==================== BULK / OPERATOR ====================

    async def list_all(self, table: RecordTable) -> List[BaseRecord]:
        target = TABLES[table]
        async with self._transaction("list") as session:
            result = await session.execute(
                select(target).order_by(target.c.created_at, target.c.discord_id)
            )
            rows = result.mappings().all()
        return [RECORD_TYPES[table].from_row(row) for row in rows]

    async def count(self, table: RecordTable) -> int:
        target = TABLES[table]
        async with self._transaction("count") as session:
            result = await session.execute(select(func.count()).select_from(target))
            return int(result.scalar_one())

    async def delete_all(self, table: RecordTable) -> int:
        """Empty a table. Returns the number of rows removed."""
        target = TABLES[table]
        async with self._transaction("delete_all") as session:
            result = await session.execute(delete(target))
        logger.warning(f"Deleted all {result.rowcount} {table.value} records")
        return result.rowcount

    async def find_member(self, field: str, value: str) -> List[BaseRecord]:
        """Case-insensitive exact lookup of members by shortcode or name."""
        if field not in MEMBER_SEARCH_FIELDS:
            raise ValueError(f"Cannot search members by {field}")
        target = TABLES[RecordTable.MEMBERS]
        async with self._transaction("find_member") as session:
            result = await session.execute(
                select(target).where(func.lower(target.c[field]) == value.strip().lower())
            )
            rows = result.mappings().all()
        return [RECORD_TYPES[RecordTable.MEMBERS].from_row(row) for row in rows]

    async def find_extra(self, name: str) -> List[BaseRecord]:
        target = TABLES[RecordTable.EXTRAS]
        async with self._transaction("find_extra") as session:
            result = await session.execute(
                select(target).where(func.lower(target.c.name) == name.strip().lower())
            )
            rows = result.mappings().all()
        return [RECORD_TYPES[RecordTable.EXTRAS].from_row(row) for row in rows]

    async def clear_freshers(self) -> int:
        """Reset every member's fresher category. Returns rows changed."""
        target = TABLES[RecordTable.MEMBERS]
        async with self._transaction("clear_freshers") as session:
            result = await session.execute(
                update(target)
                .where(target.c.fresher != FresherStatus.NONE.value)
                .values(fresher=FresherStatus.NONE.value)
            )
        logger.info(f"Cleared fresher status of {result.rowcount} members")
        return result.rowcount

    async def stats(self) -> Dict[str, int]:
        return {table.value: await self.count(table) for table in RecordTable}

    async def export_all(self) -> Dict[str, List[Dict[str, Any]]]:
        """Dump every table as plain dicts keyed by table name."""
        dump: Dict[str, List[Dict[str, Any]]] = {}
        async with self._transaction("export") as session:
            for table, target in TABLES.items():
                result = await session.execute(
                    select(target).order_by(target.c.created_at, target.c.discord_id)
                )
                dump[table.value] = [
                    RECORD_TYPES[table].from_row(row).to_dict()
                    for row in result.mappings().all()
                ]
        return dump

    async def import_all(
        self,
        dump: Mapping[str, List[Mapping[str, Any]]],
        replace: bool = False
    ) -> Dict[str, int]:
        """
        Load an export in one transaction.

        With replace=True every table is emptied first; otherwise rows are
        added and an existing identity aborts the whole import.

        Raises:
            ValueError: unknown table name or malformed row
            RecordConflictError: identity already present
        """
        records: Dict[RecordTable, List[BaseRecord]] = {}
        for name, rows in dump.items():
            try:
                table = RecordTable(name)
            except ValueError:
                raise ValueError(f"Unknown table: {name}")
            try:
                records[table] = [RECORD_TYPES[table].from_row(row) for row in rows]
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Malformed {name} row: {e}") from e

        counts = {table.value: 0 for table in RecordTable}
        async with self._transaction("import") as session:
            if replace:
                for target in TABLES.values():
                    await session.execute(delete(target))
            for table, items in records.items():
                for record in items:
                    try:
                        await session.execute(
                            insert(TABLES[table]).values(**record.to_dict())
                        )
                    except IntegrityError as e:
                        raise RecordConflictError(table.value, record.identity) from e
                    counts[table.value] += 1

        logger.info(f"Imported roster (replace={replace}): {counts}")
        return counts


def get_roster_store() -> RosterStore:
    """Dependency to get the roster store"""
    return RosterStore(AsyncSessionLocal)

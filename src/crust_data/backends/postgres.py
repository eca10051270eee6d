from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator

from django.db import IntegrityError, connection, transaction

from ..entity import CrustEntity
from ..exceptions import CrustNotFound, EntityAlreadyExists, VersionConflict
from ..hashing import key_to_int64

_COLUMNS = "partition_key, row_key, name, size, price, stock_count, version"


class PostgresTableBackend:
    """
    PostgreSQL table backend, going through Django's database connection.

    Rows are stored in a plain table keyed by (partition_key, row_key). The
    version tag is an integer `version` column, bumped on every write and
    exposed as the entity's ETag string.

    Optimistic concurrency
    ----------------------
    `update_entity` runs

        UPDATE ... SET ..., version = version + 1
        WHERE partition_key = %s AND row_key = %s AND version = %s

    and treats zero updated rows on an existing key as a VersionConflict.
    Concurrent writers never block each other for longer than one statement.

    Table creation
    --------------
    Creation happens inside a transaction holding
    pg_advisory_xact_lock(key_to_int64("crust_data:create:<table>")), so when
    several processes start at once exactly one sees the table missing and
    reports that it created it. The advisory lock is released at commit.

    Thread/process safety
    ---------------------
    Django connections are per thread; each thread gets its own. Safe across
    processes sharing one PostgreSQL instance.

    Limitations
    -----------
    - Requires PostgreSQL (advisory locks, to_regclass).
    - `timeout` becomes a transaction-local statement_timeout.
    """

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        self._table = connection.ops.quote_name(table_name)

    @contextmanager
    def _cursor(self, timeout: float | None) -> Iterator:
        with transaction.atomic():
            with connection.cursor() as cursor:
                if timeout is not None:
                    cursor.execute(
                        "SELECT set_config('statement_timeout', %s, true);",
                        [str(int(timeout * 1000))],
                    )
                yield cursor

    def create_table(self, *, timeout: float | None = None) -> bool:
        lock_id = key_to_int64(f"crust_data:create:{self.table_name}")

        with self._cursor(timeout) as cursor:
            cursor.execute("SELECT pg_advisory_xact_lock(%s);", [lock_id])
            cursor.execute("SELECT to_regclass(%s);", [self._table])
            if cursor.fetchone()[0] is not None:
                return False

            cursor.execute(
                f"""
                CREATE TABLE {self._table} (
                    partition_key varchar(64) NOT NULL,
                    row_key varchar(64) NOT NULL,
                    name varchar(128) NOT NULL,
                    size integer NOT NULL,
                    price double precision NOT NULL,
                    stock_count integer NOT NULL CHECK (stock_count >= 0),
                    version bigint NOT NULL DEFAULT 1,
                    PRIMARY KEY (partition_key, row_key)
                );
                """
            )
        return True

    def add_entity(self, entity: CrustEntity, *, timeout: float | None = None) -> None:
        try:
            with self._cursor(timeout) as cursor:
                cursor.execute(
                    f"INSERT INTO {self._table} ({_COLUMNS}) "
                    "VALUES (%s, %s, %s, %s, %s, %s, 1);",
                    [
                        entity.partition_key,
                        entity.id,
                        entity.name,
                        entity.size,
                        entity.price,
                        entity.stock_count,
                    ],
                )
        except IntegrityError as e:
            raise EntityAlreadyExists(f"Crust '{entity.id}' already exists") from e

    def get_entity(
        self, partition_key: str, row_key: str, *, timeout: float | None = None
    ) -> CrustEntity:
        with self._cursor(timeout) as cursor:
            cursor.execute(
                f"SELECT {_COLUMNS} FROM {self._table} "
                "WHERE partition_key = %s AND row_key = %s;",
                [partition_key, row_key],
            )
            row = cursor.fetchone()

        if row is None:
            raise CrustNotFound(f"No crust with id '{row_key}'")
        return _to_entity(row)

    def update_entity(
        self, entity: CrustEntity, etag: str | None, *, timeout: float | None = None
    ) -> CrustEntity:
        sql = (
            f"UPDATE {self._table} "
            "SET name = %s, size = %s, price = %s, stock_count = %s, "
            "version = version + 1 "
            "WHERE partition_key = %s AND row_key = %s"
        )
        params: list = [
            entity.name,
            entity.size,
            entity.price,
            entity.stock_count,
            entity.partition_key,
            entity.id,
        ]
        if etag is not None:
            sql += " AND version = %s"
            params.append(int(etag))

        with self._cursor(timeout) as cursor:
            cursor.execute(sql + " RETURNING version;", params)
            row = cursor.fetchone()
            if row is None:
                cursor.execute(
                    f"SELECT 1 FROM {self._table} "
                    "WHERE partition_key = %s AND row_key = %s;",
                    [entity.partition_key, entity.id],
                )
                exists = cursor.fetchone() is not None

        if row is None:
            if exists:
                raise VersionConflict(f"Crust '{entity.id}' changed since it was read")
            raise CrustNotFound(f"No crust with id '{entity.id}'")

        return replace(entity, etag=str(row[0]))

    def query_entities(
        self, partition_key: str, *, timeout: float | None = None
    ) -> list[CrustEntity]:
        with self._cursor(timeout) as cursor:
            cursor.execute(
                f"SELECT {_COLUMNS} FROM {self._table} "
                "WHERE partition_key = %s ORDER BY row_key;",
                [partition_key],
            )
            rows = cursor.fetchall()

        return [_to_entity(row) for row in rows]


def _to_entity(row: tuple) -> CrustEntity:
    partition_key, row_key, name, size, price, stock_count, version = row
    return CrustEntity(
        id=row_key,
        name=name,
        size=size,
        price=price,
        stock_count=stock_count,
        partition_key=partition_key,
        etag=str(version),
    )

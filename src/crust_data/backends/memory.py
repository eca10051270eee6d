from __future__ import annotations

import threading
import uuid
from dataclasses import replace

from ..entity import CrustEntity
from ..exceptions import CrustNotFound, EntityAlreadyExists, VersionConflict


class InMemoryTableBackend:
    """
    Process-local table backend.

    Behaves like the remote store for the operations crust_data needs:
    every write assigns a fresh ETag and conditional replaces fail with
    VersionConflict once the row has moved on. All access goes through one
    lock, so it is safe to share between threads.

    Useful for tests and local demos; nothing survives the process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._exists = False
        self._rows: dict[tuple[str, str], CrustEntity] = {}

    def create_table(self, *, timeout: float | None = None) -> bool:
        with self._lock:
            if self._exists:
                return False
            self._exists = True
            return True

    def add_entity(self, entity: CrustEntity, *, timeout: float | None = None) -> None:
        key = (entity.partition_key, entity.id)
        with self._lock:
            if key in self._rows:
                raise EntityAlreadyExists(
                    f"Row {key} already exists"
                )
            self._rows[key] = replace(entity, etag=self._new_etag())

    def get_entity(
        self, partition_key: str, row_key: str, *, timeout: float | None = None
    ) -> CrustEntity:
        with self._lock:
            try:
                return self._rows[(partition_key, row_key)]
            except KeyError:
                raise CrustNotFound(
                    f"No crust with id '{row_key}'"
                ) from None

    def update_entity(
        self, entity: CrustEntity, etag: str | None, *, timeout: float | None = None
    ) -> CrustEntity:
        key = (entity.partition_key, entity.id)
        with self._lock:
            current = self._rows.get(key)
            if current is None:
                raise CrustNotFound(f"No crust with id '{entity.id}'")
            if etag is not None and current.etag != etag:
                raise VersionConflict(
                    f"Row {key} changed since it was read"
                )
            stored = replace(entity, etag=self._new_etag())
            self._rows[key] = stored
            return stored

    def query_entities(
        self, partition_key: str, *, timeout: float | None = None
    ) -> list[CrustEntity]:
        with self._lock:
            return [
                row for (pk, _), row in self._rows.items() if pk == partition_key
            ]

    @staticmethod
    def _new_etag() -> str:
        return f'W/"{uuid.uuid4().hex}"'

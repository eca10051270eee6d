from __future__ import annotations

from dataclasses import replace
from typing import Any

from azure.core import MatchConditions
from azure.core.exceptions import (
    HttpResponseError,
    ResourceExistsError,
    ResourceModifiedError,
    ResourceNotFoundError,
)
from azure.data.tables import TableClient, UpdateMode

from ..entity import CrustEntity
from ..exceptions import CrustNotFound, EntityAlreadyExists, VersionConflict

# Status returned by the service when an If-Match precondition fails.
PRECONDITION_FAILED = 412


def _call_options(timeout: float | None) -> dict[str, Any]:
    return {} if timeout is None else {"timeout": timeout}


class AzureTableBackend:
    """
    Azure Table Storage backend (also works against Azurite and the
    Cosmos DB Table API).

    Optimistic concurrency
    ----------------------
    Every entity carries an ETag in its metadata. `update_entity` sends it
    as If-Match with `MatchConditions.IfNotModified`; when another writer got
    there first the service answers 412 and we raise VersionConflict.

    Table creation
    --------------
    `create_table` returns True only when the service reports it created the
    table. ResourceExistsError means someone else (another process, or an
    earlier run) already did, and the caller must not seed it again.

    `timeout` is forwarded to the azure-core pipeline as the per-operation
    timeout, in seconds.
    """

    def __init__(self, client: TableClient) -> None:
        self._client = client

    @classmethod
    def from_connection_string(
        cls, connection_string: str, table_name: str
    ) -> "AzureTableBackend":
        return cls(
            TableClient.from_connection_string(connection_string, table_name=table_name)
        )

    def create_table(self, *, timeout: float | None = None) -> bool:
        try:
            self._client.create_table(**_call_options(timeout))
        except ResourceExistsError:
            return False
        return True

    def add_entity(self, entity: CrustEntity, *, timeout: float | None = None) -> None:
        try:
            self._client.create_entity(
                entity=entity.to_table_entity(), **_call_options(timeout)
            )
        except ResourceExistsError as e:
            raise EntityAlreadyExists(
                f"Crust '{entity.id}' already exists"
            ) from e

    def get_entity(
        self, partition_key: str, row_key: str, *, timeout: float | None = None
    ) -> CrustEntity:
        try:
            data = self._client.get_entity(
                partition_key=partition_key,
                row_key=row_key,
                **_call_options(timeout),
            )
        except ResourceNotFoundError as e:
            raise CrustNotFound(f"No crust with id '{row_key}'") from e

        return CrustEntity.from_table_entity(data, etag=data.metadata.get("etag"))

    def update_entity(
        self, entity: CrustEntity, etag: str | None, *, timeout: float | None = None
    ) -> CrustEntity:
        options = _call_options(timeout)
        if etag is not None:
            options.update(etag=etag, match_condition=MatchConditions.IfNotModified)

        try:
            metadata = self._client.update_entity(
                entity=entity.to_table_entity(),
                mode=UpdateMode.REPLACE,
                **options,
            )
        except ResourceModifiedError as e:
            raise VersionConflict(
                f"Crust '{entity.id}' changed since it was read"
            ) from e
        except ResourceNotFoundError as e:
            raise CrustNotFound(f"No crust with id '{entity.id}'") from e
        except HttpResponseError as e:
            if e.status_code == PRECONDITION_FAILED:
                raise VersionConflict(
                    f"Crust '{entity.id}' changed since it was read"
                ) from e
            raise

        return replace(entity, etag=(metadata or {}).get("etag"))

    def query_entities(
        self, partition_key: str, *, timeout: float | None = None
    ) -> list[CrustEntity]:
        rows = self._client.query_entities(
            "PartitionKey eq @pk",
            parameters={"pk": partition_key},
            **_call_options(timeout),
        )
        return [
            CrustEntity.from_table_entity(row, etag=row.metadata.get("etag"))
            for row in rows
        ]

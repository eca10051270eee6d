from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Protocol

from .config import build_backend, load_config
from .decorators import DEFAULT_ATTEMPTS, ExhaustedHandler, Mode, retry_on_conflict
from .entity import PARTITION_KEY, SEED_CRUSTS, CrustEntity
from .exceptions import EntityAlreadyExists, InitializationError, OutOfStock, RetriesExhausted

logger = logging.getLogger(__name__)


class TableBackend(Protocol):
    """
    Row-level operations against a single table.

    Implementations translate their driver errors into crust_data
    exceptions: CrustNotFound, EntityAlreadyExists and VersionConflict.
    `timeout` is passed through to the remote call where supported.
    """
    def create_table(self, *, timeout: float | None = None) -> bool:
        """Create the table. Return True only if this call created it."""
        ...

    def add_entity(self, entity: CrustEntity, *, timeout: float | None = None) -> None: ...

    def get_entity(
        self, partition_key: str, row_key: str, *, timeout: float | None = None
    ) -> CrustEntity: ...

    def update_entity(
        self, entity: CrustEntity, etag: str | None, *, timeout: float | None = None
    ) -> CrustEntity:
        """Replace the row if its version tag still equals `etag`."""
        ...

    def query_entities(
        self, partition_key: str, *, timeout: float | None = None
    ) -> list[CrustEntity]: ...


class CrustData:
    """
    Data access for crust inventory rows.

    The backing table is created and seeded lazily: the first operation on
    any thread runs initialization while the others wait for it. Seed rows
    are only written when this process actually created the table, so
    several processes starting against an empty store seed it once.

    Parameters
    ----------
    backend : TableBackend | None
        Storage backend. Defaults to the one described by `load_config()`.

    retry_attempts : int | None
        Attempts per stock decrement before giving up. Defaults to the
        configured value (100).

    on_exhausted : "raise" | "return_none" | callable
        What `decrement_stock` does once every attempt conflicted.

    Example
    -------
    >>> crusts = CrustData()
    >>> crusts.decrement_stock("thin9").stock_count
    999
    """

    def __init__(
        self,
        backend: TableBackend | None = None,
        *,
        retry_attempts: int | None = None,
        on_exhausted: Mode | ExhaustedHandler = "raise",
    ) -> None:
        if backend is None:
            config = load_config()
            backend = build_backend(config)
            if retry_attempts is None:
                retry_attempts = config.retry_attempts
        if retry_attempts is None:
            retry_attempts = DEFAULT_ATTEMPTS

        self._backend = backend
        self.retry_attempts = retry_attempts
        self.on_exhausted = on_exhausted
        self._lock = threading.Lock()
        self._initialized = False
        # Set once this instance created the table, until all seed rows are in.
        self._seed_pending = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def list(self, *, timeout: float | None = None) -> list[CrustEntity]:
        """Return every crust row, ordered by id."""
        self._ensure_initialized(timeout)

        try:
            rows = self._backend.query_entities(PARTITION_KEY, timeout=timeout)
        except Exception:
            logger.exception("Error reading data.")
            raise

        return sorted(rows, key=lambda row: row.id)

    def get(self, crust_id: str, *, timeout: float | None = None) -> CrustEntity:
        """Return one crust row. Raises CrustNotFound for unknown ids."""
        self._ensure_initialized(timeout)

        try:
            return self._backend.get_entity(PARTITION_KEY, crust_id, timeout=timeout)
        except Exception:
            logger.exception("Error reading data for crust %r.", crust_id)
            raise

    def decrement_stock(
        self, crust_id: str, *, timeout: float | None = None
    ) -> CrustEntity | None:
        """
        Take one unit of stock for `crust_id`.

        Reads the row and writes it back conditioned on its version tag,
        re-reading and retrying on conflicts with no backoff. Stock never
        goes negative: a row found at zero is left untouched.

        Returns the row as stored after the call, or whatever the
        `on_exhausted` policy yields when every attempt conflicted.

        Raises
        ------
        CrustNotFound
            If there is no row for `crust_id`.
        OutOfStock
            If the row's stock was already zero. Nothing was written.
        RetriesExhausted
            If every attempt conflicted and the policy is "raise".
        CrustDataError
            Any other storage failure, after logging. It is not retried.
        """
        self._ensure_initialized(timeout)

        try:
            return retry_on_conflict(
                self._decrement_once,
                (crust_id,),
                {"timeout": timeout},
                attempts=self.retry_attempts,
                on_exhausted=self._exhausted_policy(),
            )
        except (OutOfStock, RetriesExhausted):
            raise
        except Exception:
            logger.exception("Error updating data for crust %r.", crust_id)
            raise

    def _decrement_once(self, crust_id: str, *, timeout: float | None) -> CrustEntity:
        entity = self._backend.get_entity(PARTITION_KEY, crust_id, timeout=timeout)
        if entity.stock_count <= 0:
            raise OutOfStock(f"Crust '{crust_id}' is out of stock")

        updated = replace(entity, stock_count=entity.stock_count - 1)
        return self._backend.update_entity(updated, entity.etag, timeout=timeout)

    def _exhausted_policy(self):
        if self.on_exhausted in ("raise", "return_none"):
            return self.on_exhausted
        return self._call_exhausted_handler

    def _call_exhausted_handler(self, crust_id: str, *, timeout: float | None):
        # Handlers only see the crust id, not the internal timeout kwarg.
        return self.on_exhausted(crust_id)

    def _ensure_initialized(self, timeout: float | None = None) -> None:
        if self._initialized:
            return

        with self._lock:
            # Another thread may have finished while we waited.
            if self._initialized:
                return

            try:
                if not self._seed_pending:
                    self._seed_pending = self._backend.create_table(timeout=timeout)
                if self._seed_pending:
                    self._seed(timeout)
                    self._seed_pending = False
            except Exception as e:
                logger.exception("Error initializing crust data.")
                raise InitializationError(
                    f"Failed to initialize crust table: {e}"
                ) from e

            self._initialized = True

    def _seed(self, timeout: float | None) -> None:
        logger.info("Created crust table, seeding %d rows.", len(SEED_CRUSTS))

        with ThreadPoolExecutor(
            max_workers=len(SEED_CRUSTS), thread_name_prefix="crust-seed"
        ) as pool:
            futures = [
                pool.submit(self._add, entity, timeout) for entity in SEED_CRUSTS
            ]

        for future in futures:
            future.result()

    def _add(self, entity: CrustEntity, timeout: float | None) -> None:
        try:
            self._backend.add_entity(entity, timeout=timeout)
        except EntityAlreadyExists:
            # Written by an earlier, partly failed seeding attempt.
            logger.debug("Crust %r already seeded.", entity.id)
        except Exception:
            logger.exception("Error inserting data for crust %r.", entity.id)
            raise

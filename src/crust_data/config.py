"""
Configuration for crust_data.

Settings come from the Django `CRUST_DATA` setting when Django is configured,
otherwise from environment variables:

    CRUST_DATA_BACKEND            "azure" (default), "postgres" or "memory"
    CRUST_DATA_CONNECTION_STRING  table store connection string (azure only)
    CRUST_DATA_TABLE_NAME         defaults to "crusts"
    CRUST_DATA_RETRY_ATTEMPTS     defaults to 100

Example Django setting
----------------------
CRUST_DATA = {
    "BACKEND": "azure",
    "CONNECTION_STRING": "UseDevelopmentStorage=true",
}
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Mapping

from .decorators import DEFAULT_ATTEMPTS
from .entity import TABLE_NAME
from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .api import TableBackend

BackendName = Literal["azure", "postgres", "memory"]

_BACKENDS = ("azure", "postgres", "memory")
_ENV_PREFIX = "CRUST_DATA_"


@dataclass(frozen=True)
class CrustDataConfig:
    backend: BackendName = "azure"
    connection_string: str | None = None
    table_name: str = TABLE_NAME
    retry_attempts: int = DEFAULT_ATTEMPTS

    def __post_init__(self) -> None:
        if self.backend not in _BACKENDS:
            raise ConfigurationError(
                f"crust_data: unknown backend {self.backend!r}. "
                f"Expected one of {list(_BACKENDS)}"
            )
        if self.retry_attempts < 1:
            raise ConfigurationError(
                f"crust_data: retry_attempts must be >= 1, got {self.retry_attempts}"
            )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "CrustDataConfig":
        """Build a config from upper-case keys (Django setting or environment)."""
        attempts = values.get("RETRY_ATTEMPTS", DEFAULT_ATTEMPTS)
        try:
            attempts = int(attempts)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"crust_data: RETRY_ATTEMPTS must be an integer, got {attempts!r}"
            ) from e

        return cls(
            backend=values.get("BACKEND") or "azure",
            connection_string=values.get("CONNECTION_STRING") or None,
            table_name=values.get("TABLE_NAME") or TABLE_NAME,
            retry_attempts=attempts,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CrustDataConfig":
        environ = os.environ if environ is None else environ
        values = {
            key[len(_ENV_PREFIX):]: value
            for key, value in environ.items()
            if key.startswith(_ENV_PREFIX)
        }
        return cls.from_mapping(values)


def load_config() -> CrustDataConfig:
    """
    Resolve the active configuration.

    Django settings win when they are configured and define `CRUST_DATA`.
    """
    from django.conf import settings

    if settings.configured:
        values = getattr(settings, "CRUST_DATA", None)
        if values is not None:
            return CrustDataConfig.from_mapping(values)

    return CrustDataConfig.from_env()


def build_backend(config: CrustDataConfig) -> "TableBackend":
    """
    Instantiate the backend named by `config`.

    Backend modules are imported here so that the azure SDK is only needed
    when the azure backend is actually selected.
    """
    if config.backend == "azure":
        if not config.connection_string:
            raise ConfigurationError(
                "crust_data: the azure backend requires a connection string "
                "(CRUST_DATA_CONNECTION_STRING or CRUST_DATA['CONNECTION_STRING'])"
            )
        from .backends.azure_tables import AzureTableBackend

        return AzureTableBackend.from_connection_string(
            config.connection_string, config.table_name
        )

    if config.backend == "postgres":
        from .backends.postgres import PostgresTableBackend

        return PostgresTableBackend(config.table_name)

    from .backends.memory import InMemoryTableBackend

    return InMemoryTableBackend()

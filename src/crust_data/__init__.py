from .api import CrustData, TableBackend
from .config import CrustDataConfig, build_backend, load_config
from .decorators import optimistic_retry, retry_on_conflict
from .entity import PARTITION_KEY, SEED_CRUSTS, TABLE_NAME, CrustEntity
from .exceptions import (
    ConfigurationError,
    CrustDataError,
    CrustNotFound,
    EntityAlreadyExists,
    InitializationError,
    OutOfStock,
    RetriesExhausted,
    VersionConflict,
)

__all__ = [
    "CrustData",
    "TableBackend",
    "CrustEntity",
    "CrustDataConfig",
    "build_backend",
    "load_config",
    "optimistic_retry",
    "retry_on_conflict",
    "PARTITION_KEY",
    "SEED_CRUSTS",
    "TABLE_NAME",
    "CrustDataError",
    "ConfigurationError",
    "CrustNotFound",
    "EntityAlreadyExists",
    "InitializationError",
    "OutOfStock",
    "RetriesExhausted",
    "VersionConflict",
]

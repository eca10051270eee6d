from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Literal, Protocol

from .exceptions import RetriesExhausted, VersionConflict

logger = logging.getLogger(__name__)

Mode = Literal["raise", "return_none", "callable"]

DEFAULT_ATTEMPTS = 100


class ExhaustedHandler(Protocol):
    """
    Called when every attempt ended in a version conflict.
    """
    def __call__(self, *args: Any, **kwargs: Any) -> Any: ...


@dataclass(frozen=True)
class ExhaustedPolicy:
    """
    Defines what to do when the retry budget runs out.

    - "raise": raise RetriesExhausted (default, explicit and safe)
    - "return_none": return None (best-effort writes)
    - "callable": call user-provided handler and return its result
    """
    mode: Mode = "raise"
    handler: ExhaustedHandler | None = None

    @classmethod
    def resolve(cls, on_exhausted: "Mode | ExhaustedHandler | ExhaustedPolicy") -> "ExhaustedPolicy":
        if isinstance(on_exhausted, ExhaustedPolicy):
            return on_exhausted
        if isinstance(on_exhausted, str):
            return cls(mode=on_exhausted)
        return cls(mode="callable", handler=on_exhausted)


def retry_on_conflict(
    fn: Callable[..., Any],
    args: tuple[Any, ...] = (),
    kwargs: dict[str, Any] | None = None,
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    on_exhausted: Mode | ExhaustedHandler | ExhaustedPolicy = "raise",
) -> Any:
    """
    Call `fn` until it completes without a VersionConflict.

    `fn` is expected to re-read the row it writes, so every attempt works
    against a fresh version tag. There is no backoff between attempts.
    Any exception other than VersionConflict propagates immediately.

    Parameters
    ----------
    attempts : int, default=100
        Maximum number of calls to `fn`.

    on_exhausted : "raise" | "return_none" | callable | ExhaustedPolicy
        Outcome once all attempts conflicted. A callable receives the same
        arguments as `fn`.

    Raises
    ------
    RetriesExhausted
        If every attempt conflicted and the policy is "raise".
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    kwargs = kwargs or {}
    policy = ExhaustedPolicy.resolve(on_exhausted)
    last_conflict: VersionConflict | None = None

    for attempt in range(1, attempts + 1):
        try:
            return fn(*args, **kwargs)
        except VersionConflict as e:
            last_conflict = e
            logger.info(
                "Conflict updating entity, retrying (attempt %d/%d).",
                attempt,
                attempts,
            )

    logger.warning(
        "Giving up on %s after %d conflicting attempts.",
        getattr(fn, "__qualname__", fn),
        attempts,
    )

    if policy.mode == "return_none":
        return None
    if policy.mode == "callable" and policy.handler is not None:
        return policy.handler(*args, **kwargs)
    raise RetriesExhausted(
        f"Conditional write did not succeed within {attempts} attempts",
        attempts=attempts,
    ) from last_conflict


def optimistic_retry(
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    on_exhausted: Mode | ExhaustedHandler = "raise",
):
    """
    Decorator that re-runs a read-modify-write function on version conflicts.

    Examples
    --------
    @optimistic_retry(attempts=10)
    def reserve(crust_id):
        row = backend.get_entity("crust", crust_id)
        return backend.update_entity(replace(row, stock_count=row.stock_count - 1), row.etag)

    Exhaustion behavior
    -------------------
    - on_exhausted="raise" (default): raise RetriesExhausted
    - on_exhausted="return_none": return None
    - on_exhausted=<callable>: call it and return its result
    """
    policy = ExhaustedPolicy.resolve(on_exhausted)

    def decorator(fn: Callable[..., Any]):
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any):
            return retry_on_conflict(
                fn, args, kwargs, attempts=attempts, on_exhausted=policy
            )

        return wrapper

    return decorator

import hashlib


def key_to_int64(key: str) -> int:
    """
    Map a string key onto a stable signed 64-bit integer.

    The PostgreSQL backend serializes table creation with an advisory lock,
    and advisory locks are identified by a BIGINT. Deriving that id from the
    table's name (e.g. "crust_data:create:crusts") means every process that
    tries to create the same table contends for the same lock.

    BLAKE2b with an 8-byte digest gives a fixed 64-bit value that is the same
    on every platform and interpreter run, unlike the builtin `hash()`.

    Parameters
    ----------
    key : str
        Arbitrary lock key string.

    Returns
    -------
    int
        Value in the signed BIGINT range (-2**63 to 2**63 - 1).
    """
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, byteorder="big", signed=False)

    # unsigned -> signed
    if value >= 2**63:
        value -= 2**64

    return value

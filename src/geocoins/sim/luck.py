from __future__ import annotations

import hashlib

_UNIT_BITS = 53
_UNIT_SCALE = float(2**_UNIT_BITS)


def luck(key: str) -> float:
    """Map ``key`` to a reproducible float in [0.0, 1.0).

    The top 53 bits of the SHA-256 digest are used so the quotient is exact
    and never rounds up to 1.0.
    """
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return (int.from_bytes(digest[:8], byteorder="big", signed=False) >> (64 - _UNIT_BITS)) / _UNIT_SCALE

"""Per-session payload signatures.

A signature is sha256(secret + "." + canonical_dumps(payload)) rendered as
lowercase hex. This is plain keyed concatenation rather than HMAC; it is kept
for wire compatibility with existing clients, and only holders of the session
secret can produce a matching value.
"""

import hashlib
import hmac
from typing import Any

from shared.canonical import canonical_dumps

SIGNATURE_HEX_LENGTH = 64


def compute_signature(secret: str, payload: Any) -> str:  # noqa: ANN401
    """Sign a payload with a session secret."""
    payload_string = canonical_dumps(payload)
    return hashlib.sha256(f"{secret}.{payload_string}".encode()).hexdigest()


def verify_signature(secret: str, payload: Any, provided: str) -> bool:  # noqa: ANN401
    """Check a provided signature against the expected one for payload.

    Comparison is exact (no case folding) and constant-time. Values that are
    not SIGNATURE_HEX_LENGTH characters long are refused without hashing.
    """
    if len(provided) != SIGNATURE_HEX_LENGTH:
        return False
    expected = compute_signature(secret, payload)
    return hmac.compare_digest(expected.encode(), provided.encode())

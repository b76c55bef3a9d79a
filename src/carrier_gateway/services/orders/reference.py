"""Reference identifiers for outbound carrier orders."""

from __future__ import annotations

import hashlib
import random
import string

REFERENCE_ID_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_ID_LENGTH = 7


def generate_reference_id(length: int = REFERENCE_ID_LENGTH, alphabet: str = REFERENCE_ID_ALPHABET) -> str:
    """Return a random token such as ``"K3Z9QA1"``.

    Each symbol is drawn independently and uniformly from ``alphabet``. With the
    defaults there are 36**7 (about 78 billion) combinations; collisions are
    improbable, not impossible, and the token is not meant to be secret.
    """
    if length < 1:
        raise ValueError("Reference id length must be at least 1.")
    return "".join(random.choices(alphabet, k=length))


def derive_reference_id(seed: str, length: int = REFERENCE_ID_LENGTH, alphabet: str = REFERENCE_ID_ALPHABET) -> str:
    """Map ``seed`` to a stable reference id in the same format as ``generate_reference_id``.

    Redeliveries of the same storefront order carry the same seed, so the
    carrier sees one reference id however often the webhook arrives.
    """
    if length < 1:
        raise ValueError("Reference id length must be at least 1.")
    number = int.from_bytes(hashlib.sha256(seed.encode("utf-8")).digest(), "big")
    symbols = []
    for _ in range(length):
        number, index = divmod(number, len(alphabet))
        symbols.append(alphabet[index])
    return "".join(symbols)

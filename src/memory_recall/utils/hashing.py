import hashlib
from typing import Tuple


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def stable_seed(text: str) -> int:
    # process-independent (unlike hash(), which is salted per interpreter)
    return int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")


def token_bucket(token: str, dim: int) -> Tuple[int, float]:
    """Map a token to (bucket index, sign) for signed feature hashing."""
    d = hashlib.sha256(token.encode("utf-8")).digest()
    idx = int.from_bytes(d[:4], "big") % int(dim)
    sign = 1.0 if d[4] & 1 else -1.0
    return idx, sign

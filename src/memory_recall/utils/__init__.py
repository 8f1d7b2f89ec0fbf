from .hashing import sha256_hex, stable_seed, token_bucket

__all__ = ["sha256_hex", "stable_seed", "token_bucket"]

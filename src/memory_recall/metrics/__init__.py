from .prom import CACHE_LOOKUPS, EMBEDDINGS, LAT, PROVIDER_ERRORS, PROVIDER_LAT, REQS, mark

__all__ = ["CACHE_LOOKUPS", "EMBEDDINGS", "LAT", "PROVIDER_ERRORS", "PROVIDER_LAT", "REQS", "mark"]

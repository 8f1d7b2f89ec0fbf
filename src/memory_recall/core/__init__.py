"""Retrieval core: cache, embedding service, memory stream and scoring.

Import from the submodules (or from the top-level ``memory_recall``
package); this module stays import-free so providers can depend on
``core.similarity`` without a cycle.
"""

"""
Retrieval module for inventory search.

Contains:
- ChromaDB-backed inventory collection
- Hybrid retriever: vector search with lexical fallback
"""

from .inventory_store import (
    ChromaInventoryStore,
    LEXICAL_FIELDS,
    create_chroma_client,
)
from .hybrid_retriever import HybridRetriever

__all__ = [
    "ChromaInventoryStore",
    "LEXICAL_FIELDS",
    "create_chroma_client",
    "HybridRetriever",
]

"""
Hybrid Retriever combining vector search with a lexical fallback.

The retriever first runs semantic similarity search over item embeddings.
When that yields nothing it falls back to case-insensitive substring
matching over the item's name, description, categories and summary text.
The returned envelope records which strategy produced the results.

Failures never propagate: an empty inventory or any error while embedding
or searching is reported as a ``SearchErrorEnvelope`` so the reasoning
model can see "no results" and answer accordingly.
"""

import logging
from typing import Optional

from ..protocols import Embedder, InventoryStore
from ..retry import BackoffExecutor
from ..types import ScoredItem, SearchEnvelope, SearchErrorEnvelope, SearchOutcome
from .inventory_store import LEXICAL_FIELDS


logger = logging.getLogger(__name__)


class HybridRetriever:
    """
    Vector search with lexical fallback over the inventory collection.

    Example:
        >>> retriever = HybridRetriever(store, embedder)
        >>> outcome = await retriever.search("blue sofa", n=5)
        >>> outcome.search_type
        'vector'
    """

    EMPTY_INVENTORY_ERROR = "No items found in inventory"
    EMPTY_INVENTORY_DETAILS = "The inventory collection is empty"
    SEARCH_FAILED_ERROR = "Failed to search inventory"

    def __init__(
        self,
        store: InventoryStore,
        embedder: Embedder,
        executor: Optional[BackoffExecutor] = None,
    ) -> None:
        """
        Initialize the hybrid retriever.

        Args:
            store: Inventory collection to search
            embedder: Embedding model used for the query vector
            executor: Optional backoff policy for the embedding call
        """
        self._store = store
        self._embedder = embedder
        self._executor = executor

    async def search(self, query: str, n: int = 10) -> SearchOutcome:
        """
        Search the inventory for ``query``.

        Args:
            query: Free-text search query
            n: Maximum number of results (values below 1 are treated as 1)

        Returns:
            SearchEnvelope on success, SearchErrorEnvelope otherwise
        """
        k = max(1, n)
        try:
            total = await self._store.count_documents()
            if total == 0:
                logger.warning("Inventory collection is empty")
                return SearchErrorEnvelope(
                    error=self.EMPTY_INVENTORY_ERROR,
                    details=self.EMPTY_INVENTORY_DETAILS,
                    query=query,
                )

            query_vector = await self._embed(query)
            hits = await self._store.similarity_search(query_vector, k)
            if hits:
                results = [
                    ScoredItem(**item.model_dump(exclude={"summary"}), score=score)
                    for item, score in hits[:k]
                ]
                logger.info(
                    "Vector search returned %d result(s)",
                    len(results),
                    extra={"search_type": "vector"},
                )
                return SearchEnvelope(results=results, search_type="vector", query=query)

            logger.info("Vector search returned no results, falling back to text search")
            items = await self._store.lexical_search(query, LEXICAL_FIELDS, k)
            logger.info(
                "Text search returned %d result(s)",
                len(items),
                extra={"search_type": "text"},
            )
            return SearchEnvelope(results=list(items[:k]), search_type="text", query=query)

        except Exception as e:
            logger.error(f"Inventory search failed: {e}", exc_info=True)
            return SearchErrorEnvelope(
                error=self.SEARCH_FAILED_ERROR,
                details=str(e),
                query=query,
            )

    async def _embed(self, query: str) -> list:
        if self._executor is None:
            return await self._embedder.embed_query(query)
        return await self._executor.run(lambda: self._embedder.embed_query(query))

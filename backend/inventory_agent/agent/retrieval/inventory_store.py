"""
ChromaDB-backed inventory collection.

Each item is stored under its ``item_id`` with its summary text as the
document, its embedding, and its record flattened into scalar metadata
(Chroma metadata values must be str/int/float/bool, so categories are kept
as a JSON array string).
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import chromadb
from chromadb.api import ClientAPI
from chromadb.config import Settings as ChromaSettings

from ..types import Item, ItemPrices
from ...core.config import Settings


logger = logging.getLogger(__name__)

LEXICAL_FIELDS: Tuple[str, ...] = ("item_name", "item_description", "categories", "summary")


def create_chroma_client(settings: Settings) -> ClientAPI:
    """Create a ChromaDB client based on settings."""
    if settings.chroma_server_host:
        return chromadb.HttpClient(
            host=settings.chroma_server_host,
            port=settings.chroma_server_port or 8000,
            ssl=settings.chroma_server_ssl,
            headers=(
                {"Authorization": f"Bearer {settings.chroma_server_api_key}"}
                if settings.chroma_server_api_key
                else None
            ),
        )
    if settings.chroma_persist_directory:
        persist_dir = Path(settings.chroma_persist_directory)
        persist_dir.mkdir(parents=True, exist_ok=True)
        return chromadb.PersistentClient(
            path=str(persist_dir),
            settings=ChromaSettings(anonymized_telemetry=False),
        )
    return chromadb.Client(settings=ChromaSettings(anonymized_telemetry=False))


def item_to_metadata(item: Item) -> Dict[str, Any]:
    return {
        "item_name": item.item_name,
        "item_description": item.item_description,
        "brand": item.brand,
        "manufacturer_country": item.manufacturer_country,
        "full_price": float(item.prices.full_price),
        "sale_price": float(item.prices.sale_price),
        "categories": json.dumps(item.categories, ensure_ascii=False),
        "notes": item.notes,
    }


def item_from_metadata(item_id: str, metadata: Optional[Mapping[str, Any]]) -> Item:
    metadata = metadata or {}
    raw_categories = metadata.get("categories") or "[]"
    try:
        categories = json.loads(raw_categories)
    except (TypeError, json.JSONDecodeError):
        categories = [c.strip() for c in str(raw_categories).split(",") if c.strip()]
    return Item(
        item_id=item_id,
        item_name=str(metadata.get("item_name", "")),
        item_description=str(metadata.get("item_description", "")),
        brand=str(metadata.get("brand", "")),
        manufacturer_country=str(metadata.get("manufacturer_country", "")),
        prices=ItemPrices(
            full_price=float(metadata.get("full_price", 0.0)),
            sale_price=float(metadata.get("sale_price", 0.0)),
        ),
        categories=[str(c) for c in categories],
        notes=str(metadata.get("notes", "")),
    )


def _field_text(item: Item, field: str, document: Optional[str]) -> str:
    if field == "summary":
        return document if document is not None else item.summary
    if field == "categories":
        return ", ".join(item.categories)
    value = getattr(item, field, "")
    return value if isinstance(value, str) else str(value)


class ChromaInventoryStore:
    """
    Inventory collection over a ChromaDB collection using cosine distance.

    Chroma calls are synchronous; they run in a worker thread so the event
    loop is not blocked.

    Example:
        >>> store = ChromaInventoryStore(chromadb.Client())
        >>> await store.upsert_items(items, embeddings)
        >>> await store.similarity_search(query_vector, k=5)
    """

    LEXICAL_SCAN_BATCH = 200

    def __init__(
        self,
        chroma_client: ClientAPI,
        collection_name: str = "items",
    ) -> None:
        self._chroma = chroma_client
        self._collection_name = collection_name
        self._collection = self._chroma.get_or_create_collection(
            collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    @property
    def collection_name(self) -> str:
        return self._collection_name

    async def count_documents(self) -> int:
        return await asyncio.to_thread(self._collection.count)

    async def similarity_search(
        self,
        query_vector: Sequence[float],
        k: int,
    ) -> List[Tuple[Item, float]]:
        return await asyncio.to_thread(self._similarity_search, list(query_vector), k)

    async def lexical_search(
        self,
        query_text: str,
        fields: Sequence[str] = LEXICAL_FIELDS,
        k: int = 10,
    ) -> List[Item]:
        return await asyncio.to_thread(self._lexical_search, query_text, tuple(fields), k)

    async def upsert_items(
        self,
        items: Sequence[Item],
        embeddings: Sequence[Sequence[float]],
    ) -> None:
        if len(items) != len(embeddings):
            raise ValueError("items and embeddings must have the same length")
        if not items:
            return
        await asyncio.to_thread(
            self._collection.upsert,
            ids=[item.item_id for item in items],
            embeddings=[list(e) for e in embeddings],
            documents=[item.summary for item in items],
            metadatas=[item_to_metadata(item) for item in items],
        )
        logger.info(
            "Upserted inventory items",
            extra={"collection": self._collection_name, "count": len(items)},
        )

    def _similarity_search(self, query_vector: List[float], k: int) -> List[Tuple[Item, float]]:
        results = self._collection.query(
            query_embeddings=[query_vector],
            n_results=k,
            include=["metadatas", "distances"],
        )
        if not results["ids"] or not results["ids"][0]:
            return []

        scored: List[Tuple[Item, float]] = []
        metadatas = results.get("metadatas") or [[]]
        for idx, item_id in enumerate(results["ids"][0]):
            metadata = metadatas[0][idx] if metadatas[0] else {}
            # cosine distance -> cosine similarity
            score = 1.0 - float(results["distances"][0][idx])
            scored.append((item_from_metadata(item_id, metadata), score))
        return scored

    def _lexical_search(self, query_text: str, fields: Tuple[str, ...], k: int) -> List[Item]:
        needle = query_text.casefold()
        matches: List[Item] = []
        offset = 0
        while len(matches) < k:
            batch = self._collection.get(
                include=["documents", "metadatas"],
                limit=self.LEXICAL_SCAN_BATCH,
                offset=offset,
            )
            ids = batch["ids"]
            if not ids:
                break
            documents = batch.get("documents") or [None] * len(ids)
            metadatas = batch.get("metadatas") or [None] * len(ids)
            for item_id, document, metadata in zip(ids, documents, metadatas):
                item = item_from_metadata(item_id, metadata)
                if any(needle in _field_text(item, field, document).casefold() for field in fields):
                    matches.append(item)
                    if len(matches) >= k:
                        break
            offset += len(ids)
        return matches

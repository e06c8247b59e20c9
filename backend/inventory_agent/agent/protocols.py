"""
Protocol definitions for the Agent module.

This module defines the interfaces (Protocols) of the external collaborators
the agent depends on: the language model, the embedding model, the inventory
document store and the conversation checkpoint store. Concrete
implementations are injected at process start, and tests substitute fakes.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from .types import Item, Message


@runtime_checkable
class ChatModel(Protocol):
    """Protocol for chat language models."""

    async def invoke(
        self,
        messages: Sequence[Message],
        *,
        system_prompt: Optional[str] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.0,
    ) -> Message:
        """Generate the next AI message for the conversation.

        Args:
            messages: Conversation history, oldest first
            system_prompt: Optional system instructions placed before the history
            tools: Tool definitions in chat-completions ``tools`` format
            temperature: Sampling temperature

        Returns:
            An ``ai`` Message, possibly carrying tool-call requests

        Note:
            Rate-limit failures must be distinguishable (HTTP 429) and so
            must authentication failures (HTTP 401).
        """
        ...


@runtime_checkable
class Embedder(Protocol):
    """Protocol for text embedding models."""

    async def embed_query(self, text: str) -> List[float]:
        """Embed a single query string."""
        ...

    async def embed_documents(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed a batch of texts, preserving order."""
        ...


@runtime_checkable
class InventoryStore(Protocol):
    """Protocol for the inventory document collection."""

    async def count_documents(self) -> int:
        """Return the number of items in the collection."""
        ...

    async def similarity_search(
        self,
        query_vector: Sequence[float],
        k: int,
    ) -> List[Tuple[Item, float]]:
        """Return up to ``k`` items ordered by descending cosine similarity."""
        ...

    async def lexical_search(
        self,
        query_text: str,
        fields: Sequence[str],
        k: int,
    ) -> List[Item]:
        """Return up to ``k`` items where any of ``fields`` contains
        ``query_text`` (case-insensitive)."""
        ...


@runtime_checkable
class CheckpointStore(Protocol):
    """Protocol for per-thread conversation persistence."""

    async def load(self, thread_id: str) -> Tuple[Message, ...]:
        """Return the full history of ``thread_id`` (empty for new threads)."""
        ...

    async def save(self, thread_id: str, delta: Sequence[Message]) -> None:
        """Append ``delta`` to the history of ``thread_id``."""
        ...

"""
Item Lookup Tool for the Agent.

Exposes the hybrid retriever to the reasoning model as ``item_lookup``.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..retrieval.hybrid_retriever import HybridRetriever
from ..types import Tool, ToolSchema


logger = logging.getLogger("inventory_agent.agent.tools.item_lookup")

ITEM_LOOKUP_TOOL_NAME = "item_lookup"
DEFAULT_RESULT_COUNT = 10


class ItemLookupArgs(BaseModel):
    """Validated arguments of an item_lookup call."""
    query: str = Field(min_length=1)
    n: int = Field(default=DEFAULT_RESULT_COUNT, ge=1)


def parse_item_lookup_input(raw: str, default_n: int = DEFAULT_RESULT_COUNT) -> ItemLookupArgs:
    """Parse the model's argument string.

    The input is first treated as JSON of shape ``{"query": ..., "n": ...}``.
    Anything that does not parse or validate is used verbatim as the query
    with the default result count.
    """
    text = (raw or "").strip()
    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("item_lookup input is not JSON, using raw text as query")
        payload = None

    if isinstance(payload, str) and payload.strip():
        return ItemLookupArgs(query=payload, n=default_n)
    if isinstance(payload, dict):
        query = payload.get("query")
        if isinstance(query, str) and query.strip():
            try:
                return ItemLookupArgs.model_validate({"query": query, "n": payload.get("n", default_n)})
            except ValidationError:
                logger.debug(f"Ignoring invalid result count: {payload.get('n')!r}")
                return ItemLookupArgs(query=query, n=default_n)
    return ItemLookupArgs(query=text or " ", n=default_n)


def create_item_lookup_tool(
    retriever: HybridRetriever,
    default_n: int = DEFAULT_RESULT_COUNT,
) -> Tool:
    """Create an item_lookup tool instance.

    Args:
        retriever: The HybridRetriever used to search the inventory
        default_n: Result count used when the call does not specify ``n``

    Returns:
        A Tool instance configured for inventory lookup
    """

    async def item_lookup(raw_input: str) -> str:
        args = parse_item_lookup_input(raw_input, default_n=default_n)
        logger.info(f"Item lookup: query='{args.query[:50]}', n={args.n}")
        outcome = await retriever.search(args.query, args.n)
        return outcome.to_json()

    schema = ToolSchema(
        name=ITEM_LOOKUP_TOOL_NAME,
        description=(
            "Gathers furniture item details from the inventory database. "
            "Use this tool whenever the customer asks about products, availability, "
            "prices, brands, materials or categories. Returns JSON with the matching "
            "items, the search strategy used ('vector' or 'text') and a result count; "
            "an 'error' key means no items could be retrieved."
        ),
        parameters={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query describing the items to find",
                },
                "n": {
                    "type": "integer",
                    "description": f"Number of results to return (default: {default_n})",
                    "default": default_n,
                },
            },
        },
        required=["query"],
    )

    return Tool(schema=schema, handler=item_lookup)

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

"""
Tests for the item_lookup tool: argument parsing and the handler contract.
"""

import asyncio
import json

import pytest
from hypothesis import given, settings, strategies as st

from inventory_agent.agent.retrieval.hybrid_retriever import HybridRetriever
from inventory_agent.agent.tools.item_lookup import (
    DEFAULT_RESULT_COUNT,
    ITEM_LOOKUP_TOOL_NAME,
    create_item_lookup_tool,
    parse_item_lookup_input,
)

from fakes import FakeEmbedder, FakeInventoryStore, make_item


# =============================================================================
# Argument parsing
# =============================================================================

@pytest.mark.parametrize(
    "raw, expected_query, expected_n",
    [
        ('{"query": "blue sofa", "n": 3}', "blue sofa", 3),
        ('{"query": "blue sofa"}', "blue sofa", DEFAULT_RESULT_COUNT),
        ('"walnut desk"', "walnut desk", DEFAULT_RESULT_COUNT),
        ("walnut desk", "walnut desk", DEFAULT_RESULT_COUNT),
        ('{"query": "sofa", "n": 0}', "sofa", DEFAULT_RESULT_COUNT),
        ('{"query": "sofa", "n": "many"}', "sofa", DEFAULT_RESULT_COUNT),
        ('{"n": 3}', '{"n": 3}', DEFAULT_RESULT_COUNT),
        ('{"query": ""}', '{"query": ""}', DEFAULT_RESULT_COUNT),
    ],
)
def test_parse_item_lookup_input(raw: str, expected_query: str, expected_n: int):
    args = parse_item_lookup_input(raw)
    assert args.query == expected_query
    assert args.n == expected_n


def test_parse_uses_configured_default_count():
    assert parse_item_lookup_input("chairs", default_n=4).n == 4
    assert parse_item_lookup_input('{"query": "chairs"}', default_n=4).n == 4


@pytest.mark.parametrize("raw", ["", "   "])
def test_blank_input_still_yields_a_query(raw: str):
    args = parse_item_lookup_input(raw)
    assert args.query.strip() == ""
    assert len(args.query) >= 1


@settings(max_examples=200)
@given(raw=st.text(max_size=120))
def test_parse_never_raises(raw: str):
    """Any argument string SHALL parse into a non-empty query and a positive count."""
    args = parse_item_lookup_input(raw)
    assert len(args.query) >= 1
    assert args.n >= 1


# =============================================================================
# Tool handler
# =============================================================================

def build_tool(items, default_n: int = DEFAULT_RESULT_COUNT):
    store = FakeInventoryStore(items)
    retriever = HybridRetriever(store, FakeEmbedder())
    return create_item_lookup_tool(retriever, default_n=default_n), store


def test_tool_schema_describes_query_and_count():
    tool, _ = build_tool([make_item()])

    assert tool.schema_.name == ITEM_LOOKUP_TOOL_NAME
    definition = tool.schema_.to_openai()
    assert definition["type"] == "function"
    function = definition["function"]
    assert function["name"] == "item_lookup"
    assert set(function["parameters"]["properties"]) == {"query", "n"}
    assert function["parameters"]["required"] == ["query"]


def test_handler_returns_search_envelope_json():
    items = [make_item(item_id=f"item-{i}") for i in range(5)]
    tool, store = build_tool(items)

    payload = json.loads(asyncio.run(tool.handler('{"query": "blue sofa", "n": 2}')))

    assert payload["searchType"] == "vector"
    assert payload["query"] == "blue sofa"
    assert payload["count"] == 2
    assert len(payload["results"]) == 2
    assert store.similarity_calls == [2]


def test_handler_uses_default_count_when_omitted():
    items = [make_item(item_id=f"item-{i}") for i in range(8)]
    tool, store = build_tool(items, default_n=6)

    payload = json.loads(asyncio.run(tool.handler("blue sofa")))

    assert payload["count"] == 6
    assert store.similarity_calls == [6]


def test_handler_reports_empty_inventory_as_data():
    tool, _ = build_tool([])

    payload = json.loads(asyncio.run(tool.handler('{"query": "blue sofa"}')))

    assert payload == {
        "error": "No items found in inventory",
        "details": "The inventory collection is empty",
        "query": "blue sofa",
        "count": 0,
    }

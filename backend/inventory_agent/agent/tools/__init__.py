"""
Tools module for the Agent.

Contains the built-in item_lookup tool and the ToolRegistry for managing
callable tools.
"""

from .registry import ToolRegistry, ToolNotFoundError
from .item_lookup import (
    ITEM_LOOKUP_TOOL_NAME,
    ItemLookupArgs,
    create_item_lookup_tool,
    parse_item_lookup_input,
)

__all__ = [
    "ToolRegistry",
    "ToolNotFoundError",
    "ITEM_LOOKUP_TOOL_NAME",
    "ItemLookupArgs",
    "create_item_lookup_tool",
    "parse_item_lookup_input",
]

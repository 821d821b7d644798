"""
Binance USDⓈ-M Futures MCP Tools.

This package holds the declarative tool registry and the dispatcher that
turns tool calls into signed Binance requests.
"""

from binance_futures_mcp.tools.registry import (
    TOOL_REGISTRY,
    TOOL_SPECS,
    ParamSpec,
    ToolSpec,
    get_tool_spec,
    input_schema,
)
from binance_futures_mcp.tools.dispatcher import ToolDispatcher, validate_arguments

__all__ = [
    "TOOL_REGISTRY",
    "TOOL_SPECS",
    "ParamSpec",
    "ToolSpec",
    "get_tool_spec",
    "input_schema",
    "ToolDispatcher",
    "validate_arguments",
]

"""
Binance USDⓈ-M Futures MCP Server.

Exposes signed Binance Futures operations as MCP tools.
"""

__version__ = "0.2.0"

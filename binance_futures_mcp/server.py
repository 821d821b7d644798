"""
Binance Futures MCP Server implementation using FastMCP.

This module provides a Model Context Protocol (MCP) server for the Binance
USDⓈ-M Futures API. Each tool is a thin wrapper that maps its arguments to
Binance parameter names and hands them to the ToolDispatcher, which signs
and sends the request.
"""

import sys
import logging
import argparse
from typing import Any, Dict, List, Literal, Optional, TextIO

from fastmcp import FastMCP
from dotenv import load_dotenv

from binance_futures_mcp.client import FuturesClient
from binance_futures_mcp.config import ConfigurationError, FuturesConfig
from binance_futures_mcp.tools import TOOL_SPECS, ToolDispatcher, input_schema
from binance_futures_mcp.tools.registry import (
    MARGIN_TYPES,
    ORDER_SIDES,
    ORDER_TYPES,
    POSITION_SIDES,
    TIME_IN_FORCE,
    WORKING_TYPES,
)
from binance_futures_mcp.utils import create_error_response


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr
)


logger = logging.getLogger(__name__)


# Advertised argument enums, taken from the registry
OrderSide = Literal[ORDER_SIDES]
OrderType = Literal[ORDER_TYPES]
PositionSide = Literal[POSITION_SIDES]
TimeInForce = Literal[TIME_IN_FORCE]
WorkingType = Literal[WORKING_TYPES]
MarginType = Literal[MARGIN_TYPES]


# Exit code for configuration and startup failures
EXIT_STARTUP_FAILURE = 84


mcp = FastMCP(
    name="binance-futures-mcp",
    version="0.2.0",
    instructions="""
    This server provides signed access to the Binance USDⓈ-M Futures API.

    Order Management:
    - binance-futures-new-order: Place LIMIT, MARKET, STOP, TAKE_PROFIT and trailing orders
    - binance-futures-modify-order: Change price/quantity of an open LIMIT order
    - binance-futures-query-order: Get the status of an order
    - binance-futures-cancel-order: Cancel a single order
    - binance-futures-get-open-orders: List open orders
    - binance-futures-cancel-all-orders: Cancel every open order for a symbol

    Account & Positions:
    - binance-futures-get-account: Balances, margin and positions
    - binance-futures-get-balance: Wallet balance per asset
    - binance-futures-get-position: Position risk (entry, PnL, liquidation price)
    - binance-futures-get-user-trades: Trade history for a symbol

    Account Settings:
    - binance-futures-change-leverage: Set initial leverage
    - binance-futures-change-margin-type: Switch ISOLATED / CROSSED margin

    Every tool returns the raw Binance response under "data" plus a readable "summary".
    Orders are identified by exactly one of orderId or origClientOrderId.
    """
)


# Wired in main() once configuration is validated
_dispatcher: Optional[ToolDispatcher] = None


def init_dispatcher(config: FuturesConfig) -> ToolDispatcher:
    """
    Create the dispatcher used by every tool.

    Args:
        config: Validated configuration

    Returns:
        ToolDispatcher: The installed dispatcher
    """
    global _dispatcher
    _dispatcher = ToolDispatcher(FuturesClient(config))
    return _dispatcher


def get_dispatcher() -> ToolDispatcher:
    """
    Get the installed dispatcher.

    Raises:
        RuntimeError: If the server has not been initialized
    """
    if _dispatcher is None:
        raise RuntimeError("Dispatcher not initialized; start the server through main()")
    return _dispatcher


def _call_tool(name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Dispatch a tool call and log its outcome."""
    logger.info(f"Tool called: {name} with {', '.join(k for k, v in arguments.items() if v is not None) or 'no arguments'}")

    try:
        result = get_dispatcher().dispatch(name, arguments)
    except Exception as e:
        logger.error(f"Unexpected error in {name} tool: {str(e)}")
        return create_error_response("tool_error", f"Tool execution failed: {str(e)}")

    if result.get("success"):
        logger.info(f"Successfully executed {name}")
    else:
        logger.warning(f"Failed to execute {name}: {result.get('error', {}).get('message')}")

    return result


@mcp.tool(name="binance-futures-new-order")
def new_order(
    symbol: str,
    side: OrderSide,
    order_type: OrderType,
    position_side: Optional[PositionSide] = None,
    time_in_force: Optional[TimeInForce] = None,
    quantity: Optional[float] = None,
    price: Optional[float] = None,
    reduce_only: Optional[bool] = None,
    new_client_order_id: Optional[str] = None,
    stop_price: Optional[float] = None,
    close_position: Optional[bool] = None,
    activation_price: Optional[float] = None,
    callback_rate: Optional[float] = None,
    working_type: Optional[WorkingType] = None,
    price_protect: Optional[Literal["TRUE", "FALSE"]] = None,
    new_order_resp_type: Optional[Literal["ACK", "RESULT"]] = None,
    good_till_date: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Create a new order on Binance USDⓈ-M Futures.

    Args:
        symbol: Trading pair symbol (e.g., BTCUSDT, ETHUSDT)
        side: BUY or SELL
        order_type: LIMIT, MARKET, STOP, STOP_MARKET, TAKE_PROFIT,
                    TAKE_PROFIT_MARKET or TRAILING_STOP_MARKET
        position_side: BOTH (One-way Mode), LONG or SHORT (Hedge Mode)
        time_in_force: GTC, IOC, FOK, GTX (post-only) or GTD; defaults to GTC
                       for LIMIT, STOP and TAKE_PROFIT
        quantity: Order quantity (not with close_position=true)
        price: Limit price (LIMIT, STOP, TAKE_PROFIT)
        reduce_only: Only reduce the position
        new_client_order_id: Unique id among open orders
        stop_price: Trigger price for STOP/TAKE_PROFIT types
        close_position: Close-All, with STOP_MARKET or TAKE_PROFIT_MARKET
        activation_price: Activation price for TRAILING_STOP_MARKET
        callback_rate: Callback rate for TRAILING_STOP_MARKET, 0.1 to 10
        working_type: MARK_PRICE or CONTRACT_PRICE
        price_protect: TRUE or FALSE
        new_order_resp_type: ACK or RESULT
        good_till_date: Auto-cancel time in ms for GTD orders

    Returns:
        Dictionary containing the raw order response and a summary.
    """
    return _call_tool("binance-futures-new-order", {
        "symbol": symbol,
        "side": side,
        "type": order_type,
        "positionSide": position_side,
        "timeInForce": time_in_force,
        "quantity": quantity,
        "price": price,
        "reduceOnly": reduce_only,
        "newClientOrderId": new_client_order_id,
        "stopPrice": stop_price,
        "closePosition": close_position,
        "activationPrice": activation_price,
        "callbackRate": callback_rate,
        "workingType": working_type,
        "priceProtect": price_protect,
        "newOrderRespType": new_order_resp_type,
        "goodTillDate": good_till_date,
    })


@mcp.tool(name="binance-futures-modify-order")
def modify_order(
    symbol: str,
    side: OrderSide,
    quantity: float,
    price: float,
    order_id: Optional[int] = None,
    orig_client_order_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Modify the price and quantity of an open LIMIT order.

    Args:
        symbol: Trading pair symbol
        side: BUY or SELL (must match the order)
        quantity: New quantity
        price: New price
        order_id: Order ID (exactly one of order_id / orig_client_order_id)
        orig_client_order_id: Client order ID

    Returns:
        Dictionary containing the modified order and a summary.
    """
    return _call_tool("binance-futures-modify-order", {
        "symbol": symbol,
        "side": side,
        "quantity": quantity,
        "price": price,
        "orderId": order_id,
        "origClientOrderId": orig_client_order_id,
    })


@mcp.tool(name="binance-futures-query-order")
def query_order(
    symbol: str,
    order_id: Optional[int] = None,
    orig_client_order_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Query the status of a specific order.

    Args:
        symbol: Trading pair symbol
        order_id: Order ID (exactly one of order_id / orig_client_order_id)
        orig_client_order_id: Client order ID
    """
    return _call_tool("binance-futures-query-order", {
        "symbol": symbol,
        "orderId": order_id,
        "origClientOrderId": orig_client_order_id,
    })


@mcp.tool(name="binance-futures-cancel-order")
def cancel_order(
    symbol: str,
    order_id: Optional[int] = None,
    orig_client_order_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Cancel an open order.

    Args:
        symbol: Trading pair symbol
        order_id: Order ID (exactly one of order_id / orig_client_order_id)
        orig_client_order_id: Client order ID
    """
    return _call_tool("binance-futures-cancel-order", {
        "symbol": symbol,
        "orderId": order_id,
        "origClientOrderId": orig_client_order_id,
    })


@mcp.tool(name="binance-futures-get-account")
def get_account() -> Dict[str, Any]:
    """Get account balances, margin and positions."""
    return _call_tool("binance-futures-get-account", {})


@mcp.tool(name="binance-futures-get-balance")
def get_balance() -> Dict[str, Any]:
    """Get futures wallet balance per asset."""
    return _call_tool("binance-futures-get-balance", {})


@mcp.tool(name="binance-futures-get-position")
def get_position(symbol: Optional[str] = None) -> Dict[str, Any]:
    """
    Get position information (entry price, size, PnL, margin).

    Args:
        symbol: Trading pair symbol; all positions if omitted
    """
    return _call_tool("binance-futures-get-position", {"symbol": symbol})


@mcp.tool(name="binance-futures-get-open-orders")
def get_open_orders(symbol: Optional[str] = None) -> Dict[str, Any]:
    """
    Get all current open orders.

    Args:
        symbol: Trading pair symbol; all symbols if omitted
    """
    return _call_tool("binance-futures-get-open-orders", {"symbol": symbol})


@mcp.tool(name="binance-futures-cancel-all-orders")
def cancel_all_orders(symbol: str) -> Dict[str, Any]:
    """
    Cancel all open orders for a symbol. Use with caution.

    Args:
        symbol: Trading pair symbol
    """
    return _call_tool("binance-futures-cancel-all-orders", {"symbol": symbol})


@mcp.tool(name="binance-futures-change-leverage")
def change_leverage(symbol: str, leverage: int) -> Dict[str, Any]:
    """
    Change initial leverage for a symbol.

    Args:
        symbol: Trading pair symbol
        leverage: Target leverage, 1 to 125
    """
    return _call_tool("binance-futures-change-leverage", {"symbol": symbol, "leverage": leverage})


@mcp.tool(name="binance-futures-change-margin-type")
def change_margin_type(symbol: str, margin_type: MarginType) -> Dict[str, Any]:
    """
    Switch a symbol between ISOLATED and CROSSED margin.

    Args:
        symbol: Trading pair symbol
        margin_type: ISOLATED or CROSSED
    """
    return _call_tool("binance-futures-change-margin-type", {"symbol": symbol, "marginType": margin_type})


@mcp.tool(name="binance-futures-get-user-trades")
def get_user_trades(
    symbol: str,
    order_id: Optional[int] = None,
    start_time: Optional[int] = None,
    end_time: Optional[int] = None,
    from_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Get trade history for a symbol.

    Args:
        symbol: Trading pair symbol
        order_id: Only trades for this order
        start_time: Start time in ms
        end_time: End time in ms
        from_id: Trade ID to fetch from
        limit: Number of trades, default 500, max 1000
    """
    return _call_tool("binance-futures-get-user-trades", {
        "symbol": symbol,
        "orderId": order_id,
        "startTime": start_time,
        "endTime": end_time,
        "fromId": from_id,
        "limit": limit,
    })


def list_tools(stream: TextIO = sys.stdout) -> None:
    """Print the tool registry with each tool's arguments."""
    print("Available tools:", file=stream)
    for spec in TOOL_SPECS:
        schema = input_schema(spec)
        print(f"\n- {spec.name}", file=stream)
        print(f"  Description: {spec.description}", file=stream)
        print(f"  Endpoint: {spec.method} {spec.endpoint}", file=stream)
        for arg, prop in schema["properties"].items():
            marker = " (required)" if arg in schema["required"] else ""
            print(f"    {arg}: {prop['type']}{marker}", file=stream)


def validate_configuration() -> Optional[FuturesConfig]:
    """
    Load and validate configuration from the environment.

    Returns:
        FuturesConfig if valid, None otherwise
    """
    try:
        config = FuturesConfig.from_env().validate()
    except ConfigurationError as e:
        logger.error(f"Configuration validation failed: {str(e)}")
        return None

    logger.info(f"Configuration validated successfully: {config.summary()}")
    return config


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the Binance Futures MCP Server.

    Exit Codes:
        0: Successful execution, --list-tools, or user interruption
        84: Configuration error or server startup failure
    """
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Binance Futures MCP Server - Model Context Protocol server for Binance USDⓈ-M Futures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
        Examples:
            %(prog)s                           # Start with STDIO transport (default)
            %(prog)s --list-tools              # Print available tools and exit
            %(prog)s --transport sse --port 8080 --host 0.0.0.0  # Custom SSE configuration
        """
    )

    parser.add_argument(
        "--list-tools",
        action="store_true",
        help="List all available tools and exit"
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http", "sse"],
        default="stdio",
        help="Transport method to use (stdio for MCP clients, streamable-http/sse for testing)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for HTTP transport (default: 8000)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Host for HTTP transport (default: localhost)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging level (default: INFO)"
    )

    args = parser.parse_args(argv)

    if args.list_tools:
        list_tools()
        sys.exit(0)

    logging.getLogger().setLevel(getattr(logging, args.log_level))

    logger.info(f"Starting Binance Futures MCP Server with {args.transport} transport")

    config = validate_configuration()
    if config is None:
        logger.error("Required: BINANCE_API_KEY, BINANCE_SECRET_KEY")
        logger.error("Optional: BINANCE_TESTNET, BINANCE_RECV_WINDOW, BINANCE_HTTP_TIMEOUT, BINANCE_ENCODING_MODE")
        sys.exit(EXIT_STARTUP_FAILURE)

    dispatcher = init_dispatcher(config)

    try:
        if args.transport == "stdio":
            logger.info("STDIO mode: Ready for MCP client connections")
            mcp.run(transport="stdio")
        else:
            logger.info(f"Initializing {args.transport} transport on {args.host}:{args.port}")
            mcp.run(transport=args.transport, port=args.port, host=args.host)

    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user (Ctrl+C)")
        sys.exit(0)

    except OSError as e:
        logger.error(f"Network error during server startup: {str(e)}")
        sys.exit(EXIT_STARTUP_FAILURE)

    finally:
        dispatcher.client.close()


if __name__ == "__main__":
    main()

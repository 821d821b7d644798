"""
Declarative registry of Binance USDⓈ-M Futures tools.

Each ToolSpec describes one signed remote operation: its tool name, HTTP verb,
endpoint, argument schema (Binance wire names), encoding mode and optional
normalization. The dispatcher validates arguments generically from this
table; the MCP server builds its tool surface from it.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from binance_futures_mcp import formatters
from binance_futures_mcp.signing import EncodingMode


ORDER_SIDES = ("BUY", "SELL")
ORDER_TYPES = (
    "LIMIT", "MARKET", "STOP", "STOP_MARKET",
    "TAKE_PROFIT", "TAKE_PROFIT_MARKET", "TRAILING_STOP_MARKET",
)
TIME_IN_FORCE = ("GTC", "IOC", "FOK", "GTX", "GTD")  # GTX = Post-Only
POSITION_SIDES = ("BOTH", "LONG", "SHORT")
WORKING_TYPES = ("MARK_PRICE", "CONTRACT_PRICE")
MARGIN_TYPES = ("ISOLATED", "CROSSED")

# Order types Binance rejects without a timeInForce
TIME_IN_FORCE_ORDER_TYPES = ("LIMIT", "STOP", "TAKE_PROFIT")
DEFAULT_TIME_IN_FORCE = "GTC"

ORDER_IDENTIFIERS = ("orderId", "origClientOrderId")


@dataclass(frozen=True)
class ParamSpec:
    """One tool argument, named as Binance expects it on the wire."""

    name: str
    type: str
    description: str
    required: bool = False
    enum: Optional[Tuple[str, ...]] = None

    def schema(self) -> Dict[str, Any]:
        prop: Dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            prop["enum"] = list(self.enum)
        return prop


@dataclass(frozen=True)
class ToolSpec:
    """A remote operation exposed as a tool."""

    name: str
    description: str
    method: str
    endpoint: str
    params: Tuple[ParamSpec, ...] = ()
    encoding: EncodingMode = EncodingMode.STRICT
    # Exactly one of these must be supplied
    one_of: Tuple[str, ...] = ()
    normalize: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = field(default=None, compare=False)
    formatter: Callable[[Any], str] = field(default=formatters.format_message, compare=False)

    @property
    def required(self) -> List[str]:
        return [p.name for p in self.params if p.required]

    def param(self, name: str) -> Optional[ParamSpec]:
        for p in self.params:
            if p.name == name:
                return p
        return None


def input_schema(spec: ToolSpec) -> Dict[str, Any]:
    """
    Render the JSON-schema object describing a tool's arguments.

    Args:
        spec: Tool specification

    Returns:
        Dict with type, properties and required keys
    """
    return {
        "type": "object",
        "properties": {p.name: p.schema() for p in spec.params},
        "required": spec.required,
    }


def default_time_in_force(args: Dict[str, Any]) -> Dict[str, Any]:
    """Inject timeInForce=GTC for order types that need one when none was given."""
    if args.get("type") in TIME_IN_FORCE_ORDER_TYPES and args.get("timeInForce") is None:
        args = dict(args)
        args["timeInForce"] = DEFAULT_TIME_IN_FORCE
    return args


def _symbol(required: bool = True, note: str = "") -> ParamSpec:
    return ParamSpec(
        "symbol", "string",
        "Trading pair symbol (e.g., BTCUSDT, ETHUSDT)" + note,
        required=required,
    )


_ORDER_ID = ParamSpec("orderId", "integer", "Order ID from Binance")
_ORIG_CLIENT_ORDER_ID = ParamSpec("origClientOrderId", "string", "Original client order ID")


TOOL_SPECS: Tuple[ToolSpec, ...] = (
    ToolSpec(
        name="binance-futures-new-order",
        description=(
            "Create a new order on Binance USDⓈ-M Futures. Supports all order types: LIMIT, MARKET, "
            "STOP, STOP_MARKET, TAKE_PROFIT, TAKE_PROFIT_MARKET, TRAILING_STOP_MARKET."
        ),
        method="POST",
        endpoint="/fapi/v1/order",
        encoding=EncodingMode.LENIENT,
        params=(
            _symbol(),
            ParamSpec("side", "string", "Order side: BUY or SELL", required=True, enum=ORDER_SIDES),
            ParamSpec("type", "string", "Order type", required=True, enum=ORDER_TYPES),
            ParamSpec("positionSide", "string",
                      "Position side. Default BOTH for One-way Mode; LONG or SHORT for Hedge Mode",
                      enum=POSITION_SIDES),
            ParamSpec("timeInForce", "string",
                      "Time in force. Defaults to GTC for LIMIT, STOP and TAKE_PROFIT orders",
                      enum=TIME_IN_FORCE),
            ParamSpec("quantity", "number", "Order quantity. Cannot be sent with closePosition=true"),
            ParamSpec("price", "number", "Order price. Required for LIMIT, STOP, TAKE_PROFIT orders"),
            ParamSpec("reduceOnly", "boolean",
                      "Reduce only order. Cannot be sent in Hedge Mode or with closePosition=true"),
            ParamSpec("newClientOrderId", "string",
                      "A unique id among open orders. Automatically generated if not sent"),
            ParamSpec("stopPrice", "number",
                      "Used with STOP/STOP_MARKET or TAKE_PROFIT/TAKE_PROFIT_MARKET orders"),
            ParamSpec("closePosition", "boolean", "Close-All, used with STOP_MARKET or TAKE_PROFIT_MARKET"),
            ParamSpec("activationPrice", "number",
                      "Used with TRAILING_STOP_MARKET orders, default as the latest price"),
            ParamSpec("callbackRate", "number",
                      "Used with TRAILING_STOP_MARKET orders, min 0.1, max 10 where 1 for 1%"),
            ParamSpec("workingType", "string",
                      "stopPrice triggered by: MARK_PRICE or CONTRACT_PRICE. Default CONTRACT_PRICE",
                      enum=WORKING_TYPES),
            ParamSpec("priceProtect", "string", "Price protection. Default FALSE", enum=("TRUE", "FALSE")),
            ParamSpec("newOrderRespType", "string", "Response type. ACK or RESULT, default ACK",
                      enum=("ACK", "RESULT")),
            ParamSpec("goodTillDate", "integer", "Auto-cancel time in ms, required when timeInForce is GTD"),
        ),
        normalize=default_time_in_force,
        formatter=formatters.format_order,
    ),
    ToolSpec(
        name="binance-futures-modify-order",
        description=(
            "Modify the price and quantity of an open LIMIT order on Binance USDⓈ-M Futures. "
            "Identify the order by exactly one of orderId or origClientOrderId."
        ),
        method="PUT",
        endpoint="/fapi/v1/order",
        encoding=EncodingMode.LENIENT,
        params=(
            _symbol(),
            _ORDER_ID,
            _ORIG_CLIENT_ORDER_ID,
            ParamSpec("side", "string", "Order side: BUY or SELL", required=True, enum=ORDER_SIDES),
            ParamSpec("quantity", "number", "New order quantity", required=True),
            ParamSpec("price", "number", "New order price", required=True),
        ),
        one_of=ORDER_IDENTIFIERS,
        formatter=formatters.format_order,
    ),
    ToolSpec(
        name="binance-futures-query-order",
        description=(
            "Query the status of a specific order on Binance USDⓈ-M Futures. "
            "Use this to check if an order was filled, pending, or cancelled."
        ),
        method="GET",
        endpoint="/fapi/v1/order",
        params=(_symbol(), _ORDER_ID, _ORIG_CLIENT_ORDER_ID),
        one_of=ORDER_IDENTIFIERS,
        formatter=formatters.format_order,
    ),
    ToolSpec(
        name="binance-futures-cancel-order",
        description=(
            "Cancel an existing order on Binance USDⓈ-M Futures. "
            "Use this to cancel pending orders that haven't been executed yet."
        ),
        method="DELETE",
        endpoint="/fapi/v1/order",
        params=(_symbol(), _ORDER_ID, _ORIG_CLIENT_ORDER_ID),
        one_of=ORDER_IDENTIFIERS,
        formatter=formatters.format_order,
    ),
    ToolSpec(
        name="binance-futures-get-account",
        description=(
            "Get current account information including balances, margin, and positions "
            "for Binance USDⓈ-M Futures."
        ),
        method="GET",
        endpoint="/fapi/v2/account",
        formatter=formatters.format_account,
    ),
    ToolSpec(
        name="binance-futures-get-balance",
        description="Get futures wallet balances per asset for Binance USDⓈ-M Futures.",
        method="GET",
        endpoint="/fapi/v2/balance",
        formatter=formatters.format_balances,
    ),
    ToolSpec(
        name="binance-futures-get-position",
        description=(
            "Get current position information for Binance USDⓈ-M Futures, including entry price, "
            "size, PnL, and margin used."
        ),
        method="GET",
        endpoint="/fapi/v2/positionRisk",
        params=(_symbol(required=False, note=". If not provided, returns all positions"),),
        formatter=formatters.format_positions,
    ),
    ToolSpec(
        name="binance-futures-get-open-orders",
        description="Get all current open orders for Binance USDⓈ-M Futures.",
        method="GET",
        endpoint="/fapi/v1/openOrders",
        params=(_symbol(required=False, note=". If not provided, returns all open orders"),),
        formatter=formatters.format_orders,
    ),
    ToolSpec(
        name="binance-futures-cancel-all-orders",
        description=(
            "Cancel all open orders for a specific symbol on Binance USDⓈ-M Futures. "
            "Use with caution as this will cancel all pending orders."
        ),
        method="DELETE",
        endpoint="/fapi/v1/allOpenOrders",
        params=(_symbol(),),
        formatter=formatters.format_message,
    ),
    ToolSpec(
        name="binance-futures-change-leverage",
        description="Change the initial leverage for a symbol on Binance USDⓈ-M Futures.",
        method="POST",
        endpoint="/fapi/v1/leverage",
        params=(
            _symbol(),
            ParamSpec("leverage", "integer", "Target initial leverage, 1 to 125", required=True),
        ),
        formatter=formatters.format_leverage,
    ),
    ToolSpec(
        name="binance-futures-change-margin-type",
        description="Switch a symbol between ISOLATED and CROSSED margin on Binance USDⓈ-M Futures.",
        method="POST",
        endpoint="/fapi/v1/marginType",
        params=(
            _symbol(),
            ParamSpec("marginType", "string", "Margin type: ISOLATED or CROSSED",
                      required=True, enum=MARGIN_TYPES),
        ),
        formatter=formatters.format_message,
    ),
    ToolSpec(
        name="binance-futures-get-user-trades",
        description="Get trade history for a symbol on Binance USDⓈ-M Futures.",
        method="GET",
        endpoint="/fapi/v1/userTrades",
        params=(
            _symbol(),
            ParamSpec("orderId", "integer", "Only return trades for this order"),
            ParamSpec("startTime", "integer", "Start time in ms"),
            ParamSpec("endTime", "integer", "End time in ms"),
            ParamSpec("fromId", "integer", "Trade ID to fetch from"),
            ParamSpec("limit", "integer", "Number of trades, default 500, max 1000"),
        ),
        formatter=formatters.format_trades,
    ),
)


TOOL_REGISTRY: Mapping[str, ToolSpec] = MappingProxyType({spec.name: spec for spec in TOOL_SPECS})


def get_tool_spec(name: str) -> Optional[ToolSpec]:
    """Look up a tool by name."""
    return TOOL_REGISTRY.get(name)

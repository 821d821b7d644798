"""
Human-readable summaries of Binance Futures responses.

These are presentation helpers only: the dispatcher returns the raw response
as data and attaches one of these summaries next to it.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Union


def _iso_time(millis: Any) -> str:
    return datetime.fromtimestamp(int(millis) / 1000, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _as_list(value: Union[Dict[str, Any], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    return value if isinstance(value, list) else [value]


def _is_zero(amount: Any) -> bool:
    try:
        return float(amount or 0) == 0
    except (TypeError, ValueError):
        return False


def format_order(order: Dict[str, Any]) -> str:
    """Summarize a single order response."""
    output = [
        "Order Information:",
        f"Symbol: {order.get('symbol')}",
        f"Order ID: {order.get('orderId')}",
        f"Client Order ID: {order.get('clientOrderId')}",
        f"Side: {order.get('side')}",
        f"Type: {order.get('type')}",
        f"Status: {order.get('status')}",
        f"Position Side: {order.get('positionSide')}",
    ]

    optional_fields = [
        ("price", "Price"),
        ("origQty", "Original Quantity"),
        ("executedQty", "Executed Quantity"),
        ("avgPrice", "Average Price"),
        ("stopPrice", "Stop Price"),
        ("timeInForce", "Time In Force"),
        ("workingType", "Working Type"),
        ("activatePrice", "Activation Price"),
        ("priceRate", "Price Rate"),
    ]
    for key, label in optional_fields:
        if order.get(key):
            output.append(f"{label}: {order[key]}")

    if order.get("reduceOnly") is not None:
        output.append(f"Reduce Only: {str(order['reduceOnly']).lower()}")
    if order.get("updateTime"):
        output.append(f"Update Time: {_iso_time(order['updateTime'])}")

    return "\n".join(output)


def format_orders(orders: Union[Dict[str, Any], List[Dict[str, Any]]]) -> str:
    """Summarize a list of orders."""
    orders = _as_list(orders)
    if not orders:
        return "No orders found"

    output = [f"Orders ({len(orders)}):"]
    for index, order in enumerate(orders, start=1):
        output.append(f"\n[{index}] {order.get('symbol')} - {order.get('side')} {order.get('type')}")
        output.append(f"  Order ID: {order.get('orderId')}")
        output.append(f"  Status: {order.get('status')}")
        output.append(f"  Quantity: {order.get('origQty')}")
        if order.get("price"):
            output.append(f"  Price: {order['price']}")
        if order.get("stopPrice"):
            output.append(f"  Stop Price: {order['stopPrice']}")
        output.append(f"  Executed: {order.get('executedQty')}")

    return "\n".join(output)


def _position_lines(position: Dict[str, Any], detailed: bool) -> List[str]:
    unrealized = position.get("unrealizedProfit", position.get("unRealizedProfit"))
    lines = [
        f"\n{position.get('symbol')}:",
        f"  Position Amount: {position.get('positionAmt')}",
        f"  Entry Price: {position.get('entryPrice')}",
        f"  Leverage: {position.get('leverage')}x",
        f"  Unrealized Profit: {unrealized}",
        f"  Position Side: {position.get('positionSide')}",
    ]
    if position.get("maintMargin") is not None:
        lines.append(f"  Maintenance Margin: {position['maintMargin']}")
    if position.get("initialMargin") is not None:
        lines.append(f"  Initial Margin: {position['initialMargin']}")
    if position.get("isolated") is not None:
        lines.append(f"  Isolated: {str(position['isolated']).lower()}")
    if detailed:
        if position.get("markPrice") is not None:
            lines.append(f"  Mark Price: {position['markPrice']}")
        if position.get("liquidationPrice") is not None:
            lines.append(f"  Liquidation Price: {position['liquidationPrice']}")
        if position.get("marginType") is not None:
            lines.append(f"  Margin Type: {position['marginType']}")
        if position.get("notional") is not None:
            lines.append(f"  Notional: {position['notional']}")
        if position.get("updateTime"):
            lines.append(f"  Update Time: {_iso_time(position['updateTime'])}")
    return lines


def format_account(account: Dict[str, Any]) -> str:
    """Summarize account information, listing only non-empty positions."""
    output = [
        "Account Information:",
        f"Total Wallet Balance: {account.get('totalWalletBalance')}",
        f"Total Unrealized Profit: {account.get('totalUnrealizedProfit')}",
        f"Total Margin Balance: {account.get('totalMarginBalance')}",
        f"Available Balance: {account.get('availableBalance')}",
        f"Max Withdraw Amount: {account.get('maxWithdrawAmount')}",
    ]

    assets = account.get("assets") or []
    if assets:
        output.append("\nAssets:")
        for asset in assets:
            output.append(f"\n{asset.get('asset')}:")
            output.append(f"  Wallet Balance: {asset.get('walletBalance')}")
            output.append(f"  Available Balance: {asset.get('availableBalance')}")
            output.append(f"  Unrealized Profit: {asset.get('unrealizedProfit')}")

    open_positions = [p for p in account.get("positions") or [] if not _is_zero(p.get("positionAmt"))]
    if open_positions:
        output.append("\nPositions:")
        for position in open_positions:
            output.extend(_position_lines(position, detailed=False))

    return "\n".join(output)


def format_positions(positions: Union[Dict[str, Any], List[Dict[str, Any]]]) -> str:
    """Summarize position risk entries, skipping flat positions."""
    output = ["Position Information:"]
    open_positions = [p for p in _as_list(positions) if not _is_zero(p.get("positionAmt"))]

    for position in open_positions:
        output.extend(_position_lines(position, detailed=True))

    if not open_positions:
        output.append("\nNo open positions")

    return "\n".join(output)


def format_balances(balances: Union[Dict[str, Any], List[Dict[str, Any]]]) -> str:
    """Summarize futures wallet balances, skipping empty assets."""
    non_empty = [b for b in _as_list(balances) if not _is_zero(b.get("balance"))]
    if not non_empty:
        return "No balances found"

    output = [f"Balances ({len(non_empty)}):"]
    for balance in non_empty:
        output.append(f"\n{balance.get('asset')}:")
        output.append(f"  Balance: {balance.get('balance')}")
        output.append(f"  Available Balance: {balance.get('availableBalance')}")
        output.append(f"  Cross Unrealized PnL: {balance.get('crossUnPnl')}")
    return "\n".join(output)


def format_leverage(result: Dict[str, Any]) -> str:
    """Summarize a leverage change."""
    return "\n".join([
        "Leverage Updated:",
        f"Symbol: {result.get('symbol')}",
        f"Leverage: {result.get('leverage')}x",
        f"Max Notional Value: {result.get('maxNotionalValue')}",
    ])


def format_trades(trades: Union[Dict[str, Any], List[Dict[str, Any]]]) -> str:
    """Summarize account trade history."""
    trades = _as_list(trades)
    if not trades:
        return "No trades found"

    output = [f"Trades ({len(trades)}):"]
    for index, trade in enumerate(trades, start=1):
        output.append(f"\n[{index}] {trade.get('symbol')} - {trade.get('side')} {trade.get('qty')} @ {trade.get('price')}")
        output.append(f"  Trade ID: {trade.get('id')}")
        output.append(f"  Order ID: {trade.get('orderId')}")
        output.append(f"  Realized PnL: {trade.get('realizedPnl')}")
        output.append(f"  Commission: {trade.get('commission')} {trade.get('commissionAsset', '')}".rstrip())
        if trade.get("time"):
            output.append(f"  Time: {_iso_time(trade['time'])}")
    return "\n".join(output)


def format_message(result: Any) -> str:
    """Summarize a ``{"code": ..., "msg": ...}`` acknowledgement, or fall back to JSON."""
    if isinstance(result, dict) and "msg" in result:
        return f"{result['msg']} (code: {result.get('code')})"
    return json.dumps(result, indent=2, default=str)

"""
Unit tests for the tool dispatcher.

These tests cover:
- Unknown tool handling
- Generic argument validation (required, enum, types, unknown names)
- Order identifier rules (exactly one of orderId / origClientOrderId)
- timeInForce default injection
- Remote, transport and unexpected error reporting
- End-to-end signing through a real client with a mocked session
"""

import pytest
from unittest.mock import Mock

from binance_futures_mcp.client import FuturesClient, SignedRequestBuilder
from binance_futures_mcp.config import FuturesConfig
from binance_futures_mcp.signing import EncodingMode, LenientEncoding, create_signature
from binance_futures_mcp.tools import TOOL_REGISTRY, ToolDispatcher, validate_arguments


ORDER_RESPONSE = {
    "orderId": 4000001,
    "clientOrderId": "abc123",
    "symbol": "BTCUSDT",
    "status": "NEW",
    "side": "BUY",
    "type": "LIMIT",
    "positionSide": "BOTH",
    "price": "50000",
    "origQty": "0.010",
    "executedQty": "0",
    "timeInForce": "GTC",
    "updateTime": 1700000000000,
}


@pytest.fixture
def client():
    client = Mock()
    client.config = FuturesConfig(api_key="k", secret_key="s")
    client.request.return_value = (True, ORDER_RESPONSE)
    return client


@pytest.fixture
def dispatcher(client):
    return ToolDispatcher(client)


class TestUnknownTool:
    """Test dispatching names that are not registered."""

    def test_unknown_tool_is_structured_error(self, dispatcher, client):
        result = dispatcher.dispatch("not-a-real-tool", {})

        assert result["success"] is False
        assert result["error"]["type"] == "unknown_tool"
        assert "not-a-real-tool" in result["error"]["message"]
        assert "binance-futures-new-order" in result["error"]["details"]["available_tools"]
        client.request.assert_not_called()

    def test_unknown_tool_without_arguments(self, dispatcher):
        result = dispatcher.dispatch("not-a-real-tool")
        assert result["error"]["type"] == "unknown_tool"

    @pytest.mark.parametrize("name", [["binance-futures-get-account"], None, 42])
    def test_non_string_name(self, dispatcher, client, name):
        result = dispatcher.dispatch(name, {})

        assert result["success"] is False
        assert result["error"]["type"] == "unknown_tool"
        client.request.assert_not_called()


class TestModifyOrderValidation:
    """Test order identifier rules on modify-order."""

    def test_neither_identifier(self, dispatcher, client):
        """Test modify-order without orderId or origClientOrderId never hits the network."""
        result = dispatcher.dispatch("binance-futures-modify-order", {
            "symbol": "BTCUSDT",
            "side": "BUY",
            "quantity": 0.01,
            "price": 50000,
        })

        assert result["success"] is False
        assert result["error"]["type"] == "validation_error"
        assert "orderId or origClientOrderId" in result["error"]["message"]
        client.request.assert_not_called()

    def test_both_identifiers_conflict(self, dispatcher, client):
        result = dispatcher.dispatch("binance-futures-modify-order", {
            "symbol": "BTCUSDT",
            "side": "BUY",
            "quantity": 0.01,
            "price": 50000,
            "orderId": 1,
            "origClientOrderId": "abc",
        })

        assert result["error"]["type"] == "validation_error"
        assert "mutually exclusive" in result["error"]["message"]
        client.request.assert_not_called()

    def test_none_identifier_counts_as_missing(self, dispatcher, client):
        result = dispatcher.dispatch("binance-futures-modify-order", {
            "symbol": "BTCUSDT",
            "side": "BUY",
            "quantity": 0.01,
            "price": 50000,
            "orderId": None,
            "origClientOrderId": None,
        })

        assert result["error"]["type"] == "validation_error"
        client.request.assert_not_called()

    def test_valid_modify(self, dispatcher, client):
        result = dispatcher.dispatch("binance-futures-modify-order", {
            "symbol": "BTCUSDT",
            "side": "buy",
            "quantity": 0.01,
            "price": 50000,
            "orderId": 4000001,
        })

        assert result["success"] is True
        client.request.assert_called_once_with(
            "PUT",
            "/fapi/v1/order",
            {"symbol": "BTCUSDT", "side": "BUY", "quantity": 0.01, "price": 50000, "orderId": 4000001},
            EncodingMode.LENIENT,
        )

    @pytest.mark.parametrize("tool", ["binance-futures-query-order", "binance-futures-cancel-order"])
    def test_query_and_cancel_need_identifier(self, dispatcher, client, tool):
        result = dispatcher.dispatch(tool, {"symbol": "BTCUSDT"})
        assert result["error"]["type"] == "validation_error"
        client.request.assert_not_called()


class TestNewOrderNormalization:
    """Test timeInForce defaulting for new orders."""

    def _sent_params(self, client):
        return client.request.call_args[0][2]

    def test_limit_defaults_to_gtc(self, dispatcher, client):
        dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "BUY", "type": "LIMIT", "quantity": 0.01, "price": 50000,
        })
        assert self._sent_params(client)["timeInForce"] == "GTC"

    @pytest.mark.parametrize("order_type", ["STOP", "TAKE_PROFIT"])
    def test_stop_limit_types_default_to_gtc(self, dispatcher, client, order_type):
        dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "SELL", "type": order_type,
            "quantity": 0.01, "price": 49000, "stopPrice": 49500,
        })
        assert self._sent_params(client)["timeInForce"] == "GTC"

    def test_supplied_time_in_force_kept(self, dispatcher, client):
        dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "BUY", "type": "LIMIT",
            "quantity": 0.01, "price": 50000, "timeInForce": "gtx",
        })
        assert self._sent_params(client)["timeInForce"] == "GTX"

    def test_market_has_no_time_in_force(self, dispatcher, client):
        dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "BUY", "type": "MARKET", "quantity": 0.01,
        })
        assert "timeInForce" not in self._sent_params(client)

    def test_new_order_uses_lenient_post(self, dispatcher, client):
        dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "BUY", "type": "MARKET", "quantity": 0.01,
        })
        method, endpoint, _, encoding = client.request.call_args[0]
        assert (method, endpoint, encoding) == ("POST", "/fapi/v1/order", EncodingMode.LENIENT)


class TestArgumentValidation:
    """Test generic validation against the ToolSpec table."""

    def test_missing_required(self, dispatcher, client):
        result = dispatcher.dispatch("binance-futures-new-order", {"symbol": "BTCUSDT", "type": "MARKET"})

        assert result["error"]["type"] == "validation_error"
        assert result["error"]["message"] == "Missing required argument(s): side"
        client.request.assert_not_called()

    def test_invalid_enum(self, dispatcher, client):
        result = dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "HOLD", "type": "MARKET", "quantity": 1,
        })

        assert result["error"]["type"] == "validation_error"
        assert "Invalid side" in result["error"]["message"]
        client.request.assert_not_called()

    def test_unknown_argument(self, dispatcher, client):
        result = dispatcher.dispatch("binance-futures-get-account", {"symbol": "BTCUSDT"})

        assert result["error"]["type"] == "validation_error"
        assert "Unknown argument" in result["error"]["message"]
        client.request.assert_not_called()

    def test_number_type_checked(self, dispatcher, client):
        result = dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "BUY", "type": "MARKET", "quantity": "lots",
        })
        assert result["error"]["type"] == "validation_error"
        assert "quantity must be a number" in result["error"]["message"]

    def test_numeric_string_passes_through(self, dispatcher, client):
        dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "BUY", "type": "MARKET", "quantity": "0.001",
        })
        assert client.request.call_args[0][2]["quantity"] == "0.001"

    @pytest.mark.parametrize("raw,expected", [
        ("1e-7", "0.0000001"),
        ("2.5E+3", "2500"),
        (" 0.010 ", "0.010"),
    ])
    def test_numeric_string_written_plain(self, dispatcher, client, raw, expected):
        dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "BUY", "type": "MARKET", "quantity": raw,
        })
        assert client.request.call_args[0][2]["quantity"] == expected

    def test_integer_coercion(self, dispatcher, client):
        dispatcher.dispatch("binance-futures-change-leverage", {"symbol": "BTCUSDT", "leverage": "20"})
        assert client.request.call_args[0][2] == {"symbol": "BTCUSDT", "leverage": 20}

    def test_fractional_integer_rejected(self, dispatcher, client):
        result = dispatcher.dispatch("binance-futures-change-leverage", {"symbol": "BTCUSDT", "leverage": 2.5})
        assert result["error"]["type"] == "validation_error"
        client.request.assert_not_called()

    def test_boolean_string_coerced(self, dispatcher, client):
        dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "SELL", "type": "MARKET", "quantity": 0.01, "reduceOnly": "true",
        })
        assert client.request.call_args[0][2]["reduceOnly"] is True

    def test_none_arguments_dropped(self, dispatcher, client):
        dispatcher.dispatch("binance-futures-get-position", {"symbol": None})
        client.request.assert_called_once_with("GET", "/fapi/v2/positionRisk", {}, EncodingMode.STRICT)

    def test_validate_arguments_directly(self):
        spec = TOOL_REGISTRY["binance-futures-change-margin-type"]
        is_valid, params, error = validate_arguments(spec, {"symbol": "BTCUSDT", "marginType": "isolated"})
        assert is_valid is True
        assert params == {"symbol": "BTCUSDT", "marginType": "ISOLATED"}
        assert error is None


class TestErrorReporting:
    """Test failures are returned, never raised."""

    def test_api_error_wraps_raw_payload(self, dispatcher, client):
        client.request.return_value = (False, {
            "kind": "api",
            "status": 400,
            "code": -2019,
            "message": "Margin is insufficient.",
            "raw": {"code": -2019, "msg": "Margin is insufficient."},
        })

        result = dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "BUY", "type": "MARKET", "quantity": 100,
        })

        assert result["success"] is False
        assert result["error"]["type"] == "api_error"
        assert result["error"]["message"] == 'Binance API error: {"code": -2019, "msg": "Margin is insufficient."}'
        assert result["error"]["details"]["code"] == -2019
        assert result["error"]["details"]["status"] == 400
        assert client.request.call_count == 1

    def test_transport_error(self, dispatcher, client):
        client.request.return_value = (False, {"kind": "transport", "code": -1001, "message": "Request timeout"})

        result = dispatcher.dispatch("binance-futures-get-account", {})

        assert result["error"]["type"] == "transport_error"
        assert "Request timeout" in result["error"]["message"]

    def test_unexpected_exception(self, dispatcher, client):
        client.request.side_effect = RuntimeError("boom")

        result = dispatcher.dispatch("binance-futures-get-balance", {})

        assert result["success"] is False
        assert result["error"]["type"] == "tool_error"
        assert "boom" in result["error"]["message"]


class TestSuccessResult:
    """Test the success envelope."""

    def test_raw_response_returned_unchanged(self, dispatcher):
        result = dispatcher.dispatch("binance-futures-query-order", {"symbol": "BTCUSDT", "orderId": 4000001})

        assert result["success"] is True
        assert result["tool"] == "binance-futures-query-order"
        assert result["data"] is ORDER_RESPONSE
        assert "Order Information:" in result["summary"]
        assert isinstance(result["timestamp"], int)

    def test_summary_falls_back_on_unexpected_shape(self, dispatcher, client):
        client.request.return_value = (True, "unexpected")

        result = dispatcher.dispatch("binance-futures-get-account", {})

        assert result["success"] is True
        assert result["summary"] == '"unexpected"'


class TestEncodingOverride:
    """Test forcing a single encoding mode for every tool."""

    def test_explicit_override(self, client):
        dispatcher = ToolDispatcher(client, encoding_override=EncodingMode.STRICT)
        dispatcher.dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "BUY", "type": "MARKET", "quantity": 0.01,
        })
        assert client.request.call_args[0][3] == EncodingMode.STRICT

    def test_override_from_config(self, client):
        client.config = FuturesConfig(api_key="k", secret_key="s", encoding_override="lenient")
        dispatcher = ToolDispatcher(client)
        dispatcher.dispatch("binance-futures-get-balance", {})
        assert client.request.call_args[0][3] == EncodingMode.LENIENT


class TestEndToEnd:
    """Test dispatch through a real client and builder with a mocked HTTP session."""

    def test_modify_order_wire_format(self):
        config = FuturesConfig(api_key="test-api-key", secret_key="s3cr3t")
        session = Mock()
        response = Mock(status_code=200)
        response.json.return_value = ORDER_RESPONSE
        session.request.return_value = response
        client = FuturesClient(
            config,
            builder=SignedRequestBuilder(config, clock=lambda: 1700000000000),
            session=session,
        )

        result = ToolDispatcher(client).dispatch("binance-futures-modify-order", {
            "symbol": "BTCUSDT",
            "side": "BUY",
            "quantity": 0.01,
            "price": 50000.0,
            "origClientOrderId": "grid order 7",
        })

        assert result["success"] is True
        args, kwargs = session.request.call_args
        assert args == ("PUT", "https://fapi.binance.com/fapi/v1/order")

        signed = (
            "origClientOrderId=grid order 7&price=50000&quantity=0.01"
            "&side=BUY&symbol=BTCUSDT&timestamp=1700000000000"
        )
        body_params, _, signature = kwargs["data"].rpartition("&signature=")
        assert LenientEncoding().decode(body_params) == signed
        assert signature == create_signature("s3cr3t", signed)
        assert kwargs["headers"]["X-MBX-APIKEY"] == "test-api-key"

    def test_exponent_quantity_sent_plain(self):
        config = FuturesConfig(api_key="test-api-key", secret_key="s3cr3t")
        session = Mock()
        response = Mock(status_code=200)
        response.json.return_value = ORDER_RESPONSE
        session.request.return_value = response
        client = FuturesClient(
            config,
            builder=SignedRequestBuilder(config, clock=lambda: 1700000000000),
            session=session,
        )

        ToolDispatcher(client).dispatch("binance-futures-new-order", {
            "symbol": "BTCUSDT", "side": "BUY", "type": "MARKET", "quantity": "1e-7",
        })

        body = session.request.call_args[1]["data"]
        assert body.startswith("quantity=0.0000001&side=BUY&symbol=BTCUSDT&timestamp=1700000000000&type=MARKET")
        assert "e-7" not in body

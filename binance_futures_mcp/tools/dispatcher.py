"""
Tool dispatcher for Binance USDⓈ-M Futures.

Maps a tool name and its arguments to one signed remote operation. Each call
is independent: look up the ToolSpec, validate and normalize the arguments,
send the signed request, and return the raw response as data. Every failure
comes back as a structured result; nothing is raised to the caller.
"""

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Tuple

from binance_futures_mcp import formatters
from binance_futures_mcp.client import FuturesClient
from binance_futures_mcp.signing import EncodingMode
from binance_futures_mcp.tools.registry import TOOL_REGISTRY, ParamSpec, ToolSpec
from binance_futures_mcp.utils import create_error_response, create_success_response

logger = logging.getLogger(__name__)


def _coerce(param: ParamSpec, value: Any) -> Tuple[bool, Any, Optional[str]]:
    """
    Check a single argument against its declared JSON type.

    Numeric strings are accepted for numbers (rewritten in plain decimal
    notation, digits preserved) and for integers. "true"/"false" strings are accepted for
    booleans.

    Returns:
        Tuple of (is_valid, coerced_value, error_message)
    """
    if param.type == "string":
        if not isinstance(value, str):
            return False, value, f"{param.name} must be a string"
        value = value.strip()
        if param.enum:
            value = value.upper()
            if value not in param.enum:
                return False, value, f"Invalid {param.name}: {value}. Valid: {', '.join(param.enum)}"
        if not value:
            return False, value, f"{param.name} must be a non-empty string"
        return True, value, None

    if param.type == "number":
        if isinstance(value, bool):
            return False, value, f"{param.name} must be a number"
        if isinstance(value, (int, float, Decimal)):
            return True, value, None
        if isinstance(value, str):
            try:
                parsed = Decimal(value.strip())
            except InvalidOperation:
                return False, value, f"{param.name} must be a number, got: {value!r}"
            if not parsed.is_finite():
                return False, value, f"{param.name} must be a finite number"
            return True, format(parsed, "f"), None
        return False, value, f"{param.name} must be a number"

    if param.type == "integer":
        if isinstance(value, bool):
            return False, value, f"{param.name} must be an integer"
        if isinstance(value, int):
            return True, value, None
        if isinstance(value, float) and value.is_integer():
            return True, int(value), None
        if isinstance(value, str):
            try:
                return True, int(value.strip()), None
            except ValueError:
                pass
        return False, value, f"{param.name} must be an integer, got: {value!r}"

    if param.type == "boolean":
        if isinstance(value, bool):
            return True, value, None
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return True, value.strip().lower() == "true", None
        return False, value, f"{param.name} must be a boolean"

    return False, value, f"Unsupported parameter type for {param.name}: {param.type}"


def validate_arguments(spec: ToolSpec, arguments: Mapping[str, Any]) -> Tuple[bool, Dict[str, Any], Optional[str]]:
    """
    Validate tool arguments against a ToolSpec.

    None values count as not supplied and are dropped.

    Args:
        spec: Tool specification
        arguments: Raw tool arguments

    Returns:
        Tuple of (is_valid, normalized_arguments, error_message)
    """
    supplied = {k: v for k, v in arguments.items() if v is not None}

    unknown = sorted(k for k in supplied if spec.param(k) is None)
    if unknown:
        return False, {}, f"Unknown argument(s) for {spec.name}: {', '.join(unknown)}"

    missing = [name for name in spec.required if name not in supplied]
    if missing:
        return False, {}, f"Missing required argument(s): {', '.join(missing)}"

    normalized: Dict[str, Any] = {}
    for name, value in supplied.items():
        is_valid, coerced, error = _coerce(spec.param(name), value)
        if not is_valid:
            return False, {}, error
        normalized[name] = coerced

    if spec.one_of:
        present = [name for name in spec.one_of if name in normalized]
        if not present:
            return False, {}, f"Either {' or '.join(spec.one_of)} is required"
        if len(present) > 1:
            return False, {}, f"{' and '.join(present)} are mutually exclusive; supply only one"

    if spec.normalize is not None:
        normalized = spec.normalize(normalized)

    return True, normalized, None


class ToolDispatcher:
    """
    Stateless dispatcher from tool calls to signed Binance requests.
    """

    def __init__(
        self,
        client: FuturesClient,
        registry: Optional[Mapping[str, ToolSpec]] = None,
        encoding_override: Optional[EncodingMode] = None,
    ):
        self.client = client
        self.registry = TOOL_REGISTRY if registry is None else registry
        if encoding_override is None and client.config.encoding_override:
            encoding_override = EncodingMode(client.config.encoding_override)
        self.encoding_override = encoding_override

    def encoding_for(self, spec: ToolSpec) -> EncodingMode:
        """Encoding mode used for a tool, honoring a global override."""
        return self.encoding_override or spec.encoding

    def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute a tool call.

        Args:
            name: Tool name (e.g. binance-futures-new-order)
            arguments: Tool arguments keyed by Binance parameter name

        Returns:
            Dict containing:
            - success (bool): Whether the remote call succeeded
            - tool (str): Tool name
            - data: Raw API response
            - summary (str): Human-readable summary of the response
            - timestamp (int): Unix timestamp of the response
            or a structured error (validation_error, unknown_tool,
            api_error, transport_error, tool_error).
        """
        spec = self.registry.get(name) if isinstance(name, str) else None
        if spec is None:
            logger.warning(f"Unknown tool requested: {name}")
            return create_error_response(
                "unknown_tool",
                f"Unknown tool: {name}",
                {"available_tools": sorted(self.registry)},
            )

        try:
            is_valid, params, error = validate_arguments(spec, arguments or {})
            if not is_valid:
                logger.warning(f"Validation failed for {name}: {error}")
                return create_error_response("validation_error", error, {"tool": name})

            success, data = self.client.request(spec.method, spec.endpoint, params, self.encoding_for(spec))

            if not success:
                error_type = "transport_error" if data.get("kind") == "transport" else "api_error"
                payload = data.get("raw", {"code": data.get("code"), "msg": data.get("message")})
                logger.error(f"{name} failed: {data.get('message')} (code: {data.get('code')})")
                return create_error_response(
                    error_type,
                    f"Binance API error: {json.dumps(payload)}",
                    {
                        "tool": name,
                        "code": data.get("code"),
                        "status": data.get("status"),
                    },
                )

            return create_success_response(data, tool=name, summary=self._summarize(spec, data))

        except Exception as e:
            logger.error(f"Unexpected error in {name}: {e}")
            return create_error_response("tool_error", f"Tool execution failed: {str(e)}", {"tool": name})

    def _summarize(self, spec: ToolSpec, data: Any) -> str:
        try:
            return spec.formatter(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"Summary formatting failed for {spec.name}: {e}")
            return formatters.format_message(data)

"""
Signed request construction and HTTP transport for Binance USDⓈ-M Futures.

SignedRequestBuilder turns (method, endpoint, params, encoding) into a
ready-to-send SignedRequest. FuturesClient executes it with requests and
reports the outcome as a (success, data_or_error) tuple without retrying.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import requests

from binance_futures_mcp.config import FuturesConfig
from binance_futures_mcp.signing import (
    EncodingMode,
    create_signature,
    get_encoding_strategy,
)

logger = logging.getLogger(__name__)


API_KEY_HEADER = "X-MBX-APIKEY"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

QUERY_METHODS = ("GET", "DELETE")
BODY_METHODS = ("POST", "PUT")


def current_millis() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SignedRequest:
    """A fully built, signed request ready for the transport."""

    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[str] = None
    signed_payload: str = field(default="", repr=False)
    signature: str = field(default="", repr=False)


class SignedRequestBuilder:
    """
    Builds signed requests from an explicit configuration.

    The timestamp comes from ``clock`` at build time, so every call gets a
    fresh value and tests can pin it.
    """

    def __init__(self, config: FuturesConfig, clock: Optional[Callable[[], int]] = None):
        self.config = config
        self.clock = clock or current_millis

    def build(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        encoding: EncodingMode = EncodingMode.STRICT,
    ) -> SignedRequest:
        """
        Build a signed request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API endpoint (e.g., /fapi/v1/order)
            params: Request parameters
            encoding: Encoding mode used for both signing and transmission

        Returns:
            SignedRequest with query string or form body and API key header

        Raises:
            ValueError: If the HTTP method is not supported
        """
        method = method.upper()
        if method not in QUERY_METHODS + BODY_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        strategy = get_encoding_strategy(encoding)

        payload_params: Dict[str, Any] = {}
        for key, value in (params or {}).items():
            if value is None and not strategy.keep_none:
                continue
            payload_params[key] = value

        payload_params["timestamp"] = self.clock()
        if self.config.recv_window is not None:
            payload_params["recvWindow"] = self.config.recv_window

        signed_payload = strategy.canonical(payload_params)
        signature = create_signature(self.config.secret_key, signed_payload)

        encoded = strategy.encode(payload_params)
        payload = f"{encoded}&signature={signature}" if encoded else f"signature={signature}"

        headers = {API_KEY_HEADER: self.config.api_key}
        url = f"{self.config.base_url}{endpoint}"

        if method in QUERY_METHODS:
            return SignedRequest(
                method=method,
                url=f"{url}?{payload}",
                headers=headers,
                signed_payload=signed_payload,
                signature=signature,
            )

        headers["Content-Type"] = FORM_CONTENT_TYPE
        return SignedRequest(
            method=method,
            url=url,
            headers=headers,
            body=payload,
            signed_payload=signed_payload,
            signature=signature,
        )


class FuturesClient:
    """
    HTTP client for Binance USDⓈ-M Futures signed endpoints.
    """

    def __init__(
        self,
        config: FuturesConfig,
        builder: Optional[SignedRequestBuilder] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.builder = builder or SignedRequestBuilder(config)
        self.session = session or requests.Session()

    def _handle_response(self, response: requests.Response) -> Tuple[bool, Any]:
        """
        Handle API response with error parsing.

        Args:
            response: HTTP response object

        Returns:
            Tuple of (success, data_or_error)
        """
        try:
            data = response.json()
        except ValueError:
            data = {"msg": response.text}

        if 200 <= response.status_code < 300:
            return True, data

        if not isinstance(data, dict):
            data = {"msg": str(data)}

        return False, {
            "kind": "api",
            "status": response.status_code,
            "code": data.get("code", response.status_code),
            "message": data.get("msg", str(data)),
            "raw": data,
        }

    def send(self, request: SignedRequest) -> Tuple[bool, Any]:
        """
        Execute a built request.

        Args:
            request: SignedRequest from the builder

        Returns:
            Tuple of (success, data_or_error)
        """
        logger.debug(f"{request.method} {request.url.split('?', 1)[0]}")

        try:
            response = self.session.request(
                request.method,
                request.url,
                data=request.body,
                headers=request.headers,
                timeout=self.config.timeout,
            )
        except requests.exceptions.Timeout:
            return False, {"kind": "transport", "code": -1001, "message": "Request timeout"}
        except requests.exceptions.ConnectionError:
            return False, {"kind": "transport", "code": -1002, "message": "Connection error"}
        except requests.exceptions.RequestException as e:
            return False, {"kind": "transport", "code": -1, "message": str(e)}

        return self._handle_response(response)

    def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        encoding: EncodingMode = EncodingMode.STRICT,
    ) -> Tuple[bool, Any]:
        """
        Build, sign and send a request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API endpoint (e.g., /fapi/v1/order)
            params: Request parameters
            encoding: Encoding mode for signing and transmission

        Returns:
            Tuple of (success, data_or_error)
        """
        return self.send(self.builder.build(method, endpoint, params, encoding))

    def get(self, endpoint: str, params: Optional[Dict] = None, encoding: EncodingMode = EncodingMode.STRICT) -> Tuple[bool, Any]:
        """Make a signed GET request."""
        return self.request("GET", endpoint, params, encoding)

    def post(self, endpoint: str, params: Optional[Dict] = None, encoding: EncodingMode = EncodingMode.STRICT) -> Tuple[bool, Any]:
        """Make a signed POST request."""
        return self.request("POST", endpoint, params, encoding)

    def put(self, endpoint: str, params: Optional[Dict] = None, encoding: EncodingMode = EncodingMode.STRICT) -> Tuple[bool, Any]:
        """Make a signed PUT request."""
        return self.request("PUT", endpoint, params, encoding)

    def delete(self, endpoint: str, params: Optional[Dict] = None, encoding: EncodingMode = EncodingMode.STRICT) -> Tuple[bool, Any]:
        """Make a signed DELETE request."""
        return self.request("DELETE", endpoint, params, encoding)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

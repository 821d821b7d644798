"""
Binance Futures Configuration.

This module loads the credentials and connection settings for the Binance
USDⓈ-M Futures API from the environment, supporting both production and
testnet hosts. The resulting FuturesConfig is passed explicitly to the
request builder and client; nothing here is global.
"""

import os
import logging
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""


class FuturesConfig:
    """Configuration for the Binance Futures MCP Server."""

    # Production URL
    FUTURES_BASE_URL = "https://fapi.binance.com"

    # Testnet URL
    FUTURES_TESTNET_BASE_URL = "https://testnet.binancefuture.com"

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        api_key: Optional[str],
        secret_key: Optional[str],
        testnet: bool = False,
        recv_window: Optional[int] = None,
        timeout: float = DEFAULT_TIMEOUT,
        encoding_override: Optional[str] = None,
    ):
        self.api_key = api_key
        self.secret_key = secret_key
        self.testnet = testnet
        self.recv_window = recv_window
        self.timeout = timeout
        self.encoding_override = encoding_override

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FuturesConfig":
        """
        Build a configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            FuturesConfig: The configuration, not yet validated

        Raises:
            ConfigurationError: If a numeric setting cannot be parsed
        """
        env = os.environ if environ is None else environ

        recv_window = env.get("BINANCE_RECV_WINDOW") or None
        timeout = env.get("BINANCE_HTTP_TIMEOUT") or None
        try:
            recv_window = int(recv_window) if recv_window is not None else None
            timeout = float(timeout) if timeout is not None else cls.DEFAULT_TIMEOUT
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        encoding_override = (env.get("BINANCE_ENCODING_MODE") or "").strip().lower() or None

        return cls(
            api_key=env.get("BINANCE_API_KEY") or None,
            secret_key=env.get("BINANCE_SECRET_KEY") or None,
            testnet=env.get("BINANCE_TESTNET", "false").lower() == "true",
            recv_window=recv_window,
            timeout=timeout,
            encoding_override=encoding_override,
        )

    @property
    def base_url(self) -> str:
        """Get appropriate base URL based on testnet setting."""
        if self.testnet:
            return self.FUTURES_TESTNET_BASE_URL
        return self.FUTURES_BASE_URL

    def is_valid(self) -> bool:
        """Check if configuration is valid."""
        return not self.get_validation_errors()

    def get_validation_errors(self) -> List[str]:
        """Get list of configuration validation errors."""
        errors = []
        if not self.api_key:
            errors.append("BINANCE_API_KEY environment variable is required")
        if not self.secret_key:
            errors.append("BINANCE_SECRET_KEY environment variable is required")
        if self.recv_window is not None and not 0 < self.recv_window <= 60000:
            errors.append("BINANCE_RECV_WINDOW must be between 1 and 60000")
        if self.timeout <= 0:
            errors.append("BINANCE_HTTP_TIMEOUT must be greater than 0")
        if self.encoding_override not in (None, "strict", "lenient"):
            errors.append("BINANCE_ENCODING_MODE must be 'strict' or 'lenient'")
        return errors

    def validate(self) -> "FuturesConfig":
        """
        Fail fast on invalid configuration.

        Returns:
            FuturesConfig: self, for chaining

        Raises:
            ConfigurationError: If any required setting is missing
        """
        errors = self.get_validation_errors()
        if errors:
            error_msg = "Invalid Binance Futures configuration: " + ", ".join(errors)
            logger.error(error_msg)
            raise ConfigurationError(error_msg)
        return self

    def summary(self) -> Dict[str, object]:
        """Loggable view of the configuration. Credentials are reduced to presence flags."""
        return {
            "base_url": self.base_url,
            "testnet": self.testnet,
            "recv_window": self.recv_window,
            "timeout": self.timeout,
            "encoding_override": self.encoding_override,
            "api_key_set": bool(self.api_key),
            "secret_key_set": bool(self.secret_key),
        }

    def __repr__(self) -> str:
        return f"FuturesConfig(base_url={self.base_url!r}, testnet={self.testnet}, recv_window={self.recv_window})"

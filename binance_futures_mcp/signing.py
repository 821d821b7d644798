"""
Canonical serialization and HMAC signing for Binance signed endpoints.

Binance verifies a signed request by recomputing HMAC-SHA256 over the
parameters it received. The string we sign and the string we transmit are
therefore produced by the same EncodingStrategy, from the same ordered list
of pairs:

- StrictEncoding drops None values and percent-encodes every key and value
  (RFC 3986 unreserved characters stay bare).
- LenientEncoding goes through the generic form encoder (urlencode) and keeps
  None values as ``key=``. It exists for operations that were historically
  signed this way.

Decoding a transmitted payload always reproduces the signed string.
"""

import hmac
import math
import hashlib
from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple
from urllib.parse import quote, unquote, unquote_plus, urlencode

# RFC 3986 unreserved characters besides ALPHA / DIGIT
_UNRESERVED = "-_.~"


class EncodingMode(str, Enum):
    """Per-operation string encoding strategy."""

    STRICT = "strict"
    LENIENT = "lenient"


def format_value(value: Any) -> str:
    """
    Convert a parameter value to the literal string Binance expects.

    Booleans become ``true``/``false``, floats are written in plain decimal
    notation (never exponential) and integral floats lose their ``.0``.

    Args:
        value: Scalar parameter value

    Returns:
        str: Wire representation of the value

    Raises:
        ValueError: If value is a non-finite float
    """
    if isinstance(value, Enum):
        return format_value(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot serialize non-finite number: {value!r}")
        if value.is_integer():
            return str(int(value))
        return format(Decimal(repr(value)), "f")
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


class EncodingStrategy(ABC):
    """Builds both the signing input and the transmitted payload."""

    mode: EncodingMode
    keep_none: bool = False

    def ordered_pairs(self, params: Mapping[str, Any]) -> List[Tuple[str, str]]:
        """Sorted (key, formatted value) pairs; None handling depends on the strategy."""
        pairs = []
        for key in sorted(params):
            value = params[key]
            if value is None:
                if not self.keep_none:
                    continue
                pairs.append((key, ""))
            else:
                pairs.append((key, format_value(value)))
        return pairs

    def canonical(self, params: Mapping[str, Any]) -> str:
        """Unescaped ``key=value&...`` string used as the signing input."""
        return "&".join(f"{key}={value}" for key, value in self.ordered_pairs(params))

    def encode(self, params: Mapping[str, Any]) -> str:
        """Percent-encoded payload, same pairs and order as canonical()."""
        return self.encode_pairs(self.ordered_pairs(params))

    @abstractmethod
    def encode_pairs(self, pairs: List[Tuple[str, str]]) -> str:
        """Encode already ordered pairs for the wire."""

    @abstractmethod
    def unescape(self, component: str) -> str:
        """Reverse the escaping of a single key or value."""

    def decode(self, payload: str) -> str:
        """Undo the wire escaping, returning the unescaped ``key=value&...`` string."""
        if not payload:
            return ""
        parts = []
        for item in payload.split("&"):
            key, _, value = item.partition("=")
            parts.append(f"{self.unescape(key)}={self.unescape(value)}")
        return "&".join(parts)


class StrictEncoding(EncodingStrategy):
    """Explicit RFC 3986 percent-encoding; None values are dropped."""

    mode = EncodingMode.STRICT
    keep_none = False

    def encode_pairs(self, pairs: List[Tuple[str, str]]) -> str:
        return "&".join(
            f"{quote(key, safe=_UNRESERVED)}={quote(value, safe=_UNRESERVED)}"
            for key, value in pairs
        )

    def unescape(self, component: str) -> str:
        return unquote(component)


class LenientEncoding(EncodingStrategy):
    """
    Generic form encoding via urlencode (spaces become ``+``).

    None values are kept and serialized as ``key=``. Whether that was ever
    intended is unconfirmed; it is preserved so existing signatures still
    match.
    """

    mode = EncodingMode.LENIENT
    keep_none = True

    def encode_pairs(self, pairs: List[Tuple[str, str]]) -> str:
        return urlencode(pairs)

    def unescape(self, component: str) -> str:
        return unquote_plus(component)


_STRATEGIES: Dict[EncodingMode, EncodingStrategy] = {
    EncodingMode.STRICT: StrictEncoding(),
    EncodingMode.LENIENT: LenientEncoding(),
}


def get_encoding_strategy(mode: EncodingMode) -> EncodingStrategy:
    """Get the shared (stateless) strategy for an encoding mode."""
    return _STRATEGIES[EncodingMode(mode)]


def canonical_query(params: Mapping[str, Any], mode: EncodingMode = EncodingMode.STRICT) -> str:
    """Canonical signing string for params under the given encoding mode."""
    return get_encoding_strategy(mode).canonical(params)


def create_signature(secret: str, payload: str) -> str:
    """
    Create HMAC SHA256 signature for Binance API.

    Args:
        secret: API secret key
        payload: Canonical string to sign

    Returns:
        str: Hexadecimal signature
    """
    return hmac.new(
        secret.encode('utf-8'),
        payload.encode('utf-8'),
        hashlib.sha256
    ).hexdigest()

"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

HMAC signing helper for operator resolution requests.
"""

import hmac
import hashlib
from decimal import Decimal
from typing import Optional, Union

from rangemarket.config import settings


def resolution_message(market_id: str, actual_value: Union[Decimal, int, str]) -> str:
    """Canonical message signed by the resolving operator."""
    value = Decimal(str(actual_value)).normalize()
    return f"{market_id.lower()}:{value:f}"


def sign_resolution(
    market_id: str,
    actual_value: Union[Decimal, int, str],
    secret: Optional[str] = None
) -> str:
    """
    Generate HMAC-SHA256 signature for a resolution.

    Args:
        market_id: Market contract address
        actual_value: Outcome the market resolves to
        secret: Secret key (defaults to API_SECRET)

    Returns:
        Hex-encoded HMAC signature
    """
    secret = secret or settings.api_secret

    return hmac.new(
        secret.encode("utf-8"),
        resolution_message(market_id, actual_value).encode("utf-8"),
        hashlib.sha256
    ).hexdigest()


def verify_resolution(
    market_id: str,
    actual_value: Union[Decimal, int, str],
    sig: str,
    secret: Optional[str] = None
) -> bool:
    """
    Verify HMAC-SHA256 signature of a resolution.

    Args:
        market_id: Market contract address
        actual_value: Outcome the market resolves to
        sig: The signature to verify against
        secret: Secret key (defaults to API_SECRET)

    Returns:
        True if signature is valid, False otherwise
    """
    expected_sig = sign_resolution(market_id, actual_value, secret)

    # Constant-time comparison
    return hmac.compare_digest(expected_sig, sig)

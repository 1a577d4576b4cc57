"""
TOKEN PULSE — Common Utility Functions
"""
from datetime import datetime, timezone
from typing import Any, Optional
import math


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def utc_timestamp() -> str:
    """Return current UTC timestamp as ISO string."""
    return utc_now().isoformat()


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safe division avoiding ZeroDivisionError."""
    if denominator == 0:
        return default
    return numerator / denominator


def safe_float(value: Any, default: float = 0.0) -> float:
    """Coerce upstream numbers (often strings) to float; NaN and junk become default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def safe_int(value: Any, default: int = 0) -> int:
    """Coerce to int, falling back to default."""
    return int(safe_float(value, float(default)))


def parse_int(value: Optional[str], default: int) -> int:
    """Parse a query-string integer; anything unparseable yields default."""
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def to_native(usd_value: Any, price_usd: Any, price_native: float) -> float:
    """
    Convert a USD-denominated figure into the native quote currency using the
    record's own price ratio: usd_value / price_usd * price_native.
    A missing USD price counts as 1.
    """
    return safe_divide(safe_float(usd_value), safe_float(price_usd, 1.0)) * price_native

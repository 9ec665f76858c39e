"""Human-readable text blocks for method results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

NOT_AVAILABLE = "Not available"


def text_result(text: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build a method result: a single text content block plus optional structured data."""
    result: Dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if data is not None:
        result["data"] = data
    return result


def as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def fmt_number(value: Any, default: str = "Unknown") -> str:
    """Thousands-separated number, trimming a zero fractional part."""
    number = as_number(value)
    if number is None:
        return default
    if number.is_integer():
        return f"{int(number):,}"
    return f"{number:,.6f}".rstrip("0").rstrip(".")


def fmt_usd(value: Any, default: str = NOT_AVAILABLE) -> str:
    number = as_number(value)
    if not number:
        return default
    return f"${fmt_number(number)}"


def fmt_price(value: Any, default: str = "N/A") -> str:
    number = as_number(value)
    if number is None:
        return default
    return f"${number:.6f}"


def fmt_timestamp(epoch_seconds: Any) -> str:
    number = as_number(epoch_seconds)
    if number is None:
        return "Unknown time"
    return datetime.fromtimestamp(number, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def fmt_date(epoch_seconds: Any) -> str:
    number = as_number(epoch_seconds)
    if number is None:
        return "Unknown date"
    return datetime.fromtimestamp(number, tz=timezone.utc).strftime("%Y-%m-%d")


def numbered(lines, empty_message: str) -> str:
    """Render ``lines`` as a 1-based numbered list, each on its own line."""
    rendered = "".join(f"\n{index}. {line}" for index, line in enumerate(lines, start=1))
    return rendered or f"\n{empty_message}"

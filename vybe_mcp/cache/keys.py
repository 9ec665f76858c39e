"""Cache key derivation."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional


def canonical_params(params: Optional[Mapping[str, Any]]) -> str:
    """Serialize parameters so that equal mappings always produce the same string."""
    return json.dumps(dict(params or {}), sort_keys=True, separators=(",", ":"), default=str)


def make_cache_key(method: str, params: Optional[Mapping[str, Any]]) -> str:
    return f"{method}:{canonical_params(params)}"

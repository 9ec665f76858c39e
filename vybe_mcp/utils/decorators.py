import functools
import logging
from typing import Any, Awaitable, Callable, Dict

from ..core.errors import RpcError, UpstreamError

logger = logging.getLogger(__name__)


CallableDictAsync = Callable[..., Awaitable[Dict[str, Any]]]


def upstream_errors(prefix: str) -> Callable[[CallableDictAsync], CallableDictAsync]:
    """Wrap a handler so any non-RPC failure surfaces as an upstream error.

    Args:
        prefix: Text put in front of the underlying error message, e.g.
            ``"Error fetching token details: "``.
    """

    def decorator(func: CallableDictAsync) -> CallableDictAsync:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Dict[str, Any]:
            try:
                return await func(*args, **kwargs)
            except RpcError:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.error(f"{func.__name__} failed: {exc}")
                raise UpstreamError(f"{prefix}{exc}") from exc

        return wrapper

    return decorator

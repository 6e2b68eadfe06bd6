"""
Quote failure taxonomy, classification and bounded retry.

Every failed quote is reduced to a QuoteErrorKind plus a human-readable
exclusion reason so operators can tell "no pool" from "pool locked" from
"genuinely zero liquidity". Only transient lock contention on a
concentrated-liquidity quoter is retried.
"""

import asyncio
import functools
import re
from enum import Enum
from typing import Awaitable, Callable, Collection, Optional, TypeVar

from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from .exceptions import QuoteError
from .utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Uniswap V3 pools revert with "LOK" while the reentrancy lock is held
_LOCK_PATTERN = re.compile(r"\bLOK\b")

_LIQUIDITY_MARKERS = (
    "INSUFFICIENT_LIQUIDITY",
    "INSUFFICIENT_OUTPUT_AMOUNT",
    "INSUFFICIENT_INPUT_AMOUNT",
    "INSUFFICIENT LIQUIDITY",
)

_NO_ROUTE_MARKERS = (
    "execution reverted",
    "missing revert data",
    "could not decode",
    "invalid_path",
    "pair_not_exist",
    "pool does not exist",
)


class QuoteErrorKind(Enum):
    """Classified reason a venue produced no usable quote."""

    NO_ROUTE = "no_route"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    ZERO_OUTPUT = "zero_output"
    TRANSIENT_LOCK = "transient_lock"
    UNKNOWN = "unknown"


_REASONS = {
    QuoteErrorKind.NO_ROUTE: "pool or route does not exist",
    QuoteErrorKind.INSUFFICIENT_LIQUIDITY: "insufficient liquidity",
    QuoteErrorKind.ZERO_OUTPUT: "zero or invalid output",
    QuoteErrorKind.TRANSIENT_LOCK: "pool locked (transient lock contention)",
}


def classify_error(
    error: BaseException, allow_transient_lock: bool = False
) -> QuoteErrorKind:
    """
    Map an exception raised by a quote call to a QuoteErrorKind.

    Args:
        error: Exception raised by the RPC call or the quote adapter
        allow_transient_lock: True for concentrated-liquidity quoter calls;
            lock contention is not a meaningful class for V2 routers

    Returns:
        The classified error kind
    """
    if isinstance(error, QuoteError) and isinstance(error.kind, QuoteErrorKind):
        return error.kind

    message = str(error)
    upper = message.upper()

    if allow_transient_lock and _LOCK_PATTERN.search(message):
        return QuoteErrorKind.TRANSIENT_LOCK

    if any(marker in upper for marker in _LIQUIDITY_MARKERS):
        return QuoteErrorKind.INSUFFICIENT_LIQUIDITY

    if isinstance(error, BadFunctionCallOutput):
        return QuoteErrorKind.NO_ROUTE

    lower = message.lower()
    if any(marker in lower for marker in _NO_ROUTE_MARKERS):
        return QuoteErrorKind.NO_ROUTE

    # A bare revert with no reason string from a router/quoter means no pool
    if isinstance(error, ContractLogicError) and not message.strip():
        return QuoteErrorKind.NO_ROUTE

    return QuoteErrorKind.UNKNOWN


def exclusion_reason(kind: QuoteErrorKind, error: Optional[BaseException] = None) -> str:
    """Human-readable exclusion reason for a classified failure."""
    if kind is QuoteErrorKind.UNKNOWN:
        detail = str(error) if error is not None else ""
        return f"unknown error: {detail}" if detail else "unknown error"
    return _REASONS[kind]


def with_retry(
    retryable: Collection[QuoteErrorKind],
    classify: Callable[[BaseException], QuoteErrorKind],
    max_attempts: int = 3,
    backoff_sec: float = 0.2,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Bounded-retry decorator for a single async quote call.

    Retries only when classify(error) is in `retryable`, waiting
    backoff_sec * attempt between tries (0.2s, 0.4s, ...). The last error is
    re-raised once attempts are exhausted; non-retryable errors are re-raised
    immediately.

    Args:
        retryable: Error kinds eligible for retry (empty disables retry)
        classify: Classifier applied to each raised exception
        max_attempts: Total attempts including the first
        backoff_sec: Base delay; grows linearly with the attempt number
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1: {max_attempts}")

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    kind = classify(e)
                    if kind not in retryable or attempt >= max_attempts:
                        raise
                    delay = backoff_sec * attempt
                    logger.debug(
                        f"{kind.value} on attempt {attempt}/{max_attempts}, "
                        f"retrying in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator

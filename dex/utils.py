"""
Common helpers for the DEX scanner.

Logger construction, amount conversion between raw on-chain integers and
human units, and small formatting utilities shared by the scanner and CLI.
"""

import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Union


# Timestamp utilities
def get_current_timestamp() -> float:
    """Get current Unix timestamp as float."""
    return time.time()


def timestamp_to_iso(timestamp: float) -> str:
    """Convert Unix timestamp to ISO 8601 string."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


# Amount utilities
def to_raw_amount(amount: Union[Decimal, int, float, str], decimals: int) -> int:
    """
    Convert a human amount into the token's smallest unit.

    Args:
        amount: Amount in token units (e.g. 1.5 for 1.5 WHYPE)
        decimals: Token decimals

    Returns:
        Integer amount in the smallest unit, truncated toward zero

    Raises:
        ValueError: If amount is negative
    """
    value = Decimal(str(amount))
    if value < 0:
        raise ValueError(f"amount must not be negative: {amount}")
    return int(value * (Decimal(10) ** decimals))


def from_raw_amount(raw: int, decimals: int) -> Decimal:
    """Convert a raw on-chain integer amount into token units."""
    return Decimal(int(raw)) / (Decimal(10) ** decimals)


# Math utilities
def calculate_percentage(value: Decimal, total: Decimal) -> Decimal:
    """Calculate percentage with zero-division protection."""
    if total == 0:
        return Decimal(0)
    return (value / total) * Decimal(100)


def format_pct(pct: Union[Decimal, float], places: int = 2) -> str:
    """Format a percent value with a sign prefix, e.g. +1.23% / -4.56%."""
    value = float(pct)
    if value >= 0:
        return f"+{value:.{places}f}%"
    return f"{value:.{places}f}%"


def short_address(address: str) -> str:
    """Shorten a hex address for log lines (0x1234...abcd)."""
    if not address or len(address) < 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


# Logging utilities
def get_logger(
    name: str,
    level: Union[str, int] = logging.NOTSET,
    extra: Optional[Dict[str, Any]] = None,
) -> Union[logging.Logger, logging.LoggerAdapter]:
    """
    Get a module logger, optionally wrapped with extra context fields.

    Handlers are configured once at process start by logging_config.setup();
    module loggers only propagate to the root logger.

    Args:
        name: Logger name (typically __name__)
        level: Logging level (NOTSET inherits from parent)
        extra: Additional context fields attached to every record

    Returns:
        Logger, or LoggerAdapter when extra is given
    """
    logger = logging.getLogger(name)

    if level != logging.NOTSET:
        logger.setLevel(level)

    if extra:
        return logging.LoggerAdapter(logger, dict(extra))

    return logger

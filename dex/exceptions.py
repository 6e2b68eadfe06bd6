"""
Exception hierarchy for the DEX scanner.

Quote-level failures never escape the quote client (they become exclusion
reasons on a Quote); these exceptions cover the run-level failures and the
internal signalling between the quote client and its retry wrapper.
"""

from typing import Any, Dict, Optional


class DexScanError(Exception):
    """Base exception for all scanner errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigError(DexScanError):
    """Raised when config is invalid or missing required fields."""

    pass


class ChainConnectionError(DexScanError):
    """Raised when no RPC endpoint could be reached."""

    def __init__(
        self,
        message: str,
        endpoints: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.endpoints = endpoints or []


class QuoteError(DexScanError):
    """Raised inside the quote client when a venue returns no usable amount."""

    def __init__(
        self,
        message: str,
        kind: Optional[Any] = None,
        source_label: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.kind = kind
        self.source_label = source_label

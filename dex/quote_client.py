"""
Protocol quote client.

Turns a QuoteRequest into a Quote for either protocol family. The blocking
web3 call runs on a thread pool and is bounded by a per-call timeout; lock
contention on V3 quoters is retried. Failures are classified and returned as
unsuccessful quotes, never raised.
"""

import asyncio
from concurrent.futures import Executor, ThreadPoolExecutor
from decimal import Decimal
from typing import Optional, Tuple

from .adapters.base import LiquiditySource
from .exceptions import QuoteError
from .quote_errors import QuoteErrorKind, classify_error, exclusion_reason, with_retry
from .types import Quote, QuoteRequest
from .utils import from_raw_amount, get_logger

logger = get_logger(__name__)

DEFAULT_MAX_WORKERS = 16
DEFAULT_CALL_TIMEOUT_SEC = 15.0


class QuoteClient:
    """
    Async quote interface over a blocking ChainClient.

    Args:
        chain: ChainClient (or any object with call_view)
        executor: Executor for blocking calls; a ThreadPoolExecutor with
            max_workers threads is created when omitted
        max_workers: Pool size when creating the executor
        call_timeout_sec: Timeout for a single quote attempt
        max_attempts: Attempts for retryable errors (transient lock only)
        backoff_sec: Base delay between retries
    """

    def __init__(
        self,
        chain,
        executor: Optional[Executor] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        call_timeout_sec: float = DEFAULT_CALL_TIMEOUT_SEC,
        max_attempts: int = 3,
        backoff_sec: float = 0.2,
    ):
        self.chain = chain
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="quote"
        )
        self.call_timeout_sec = call_timeout_sec
        self.max_attempts = max_attempts
        self.backoff_sec = backoff_sec

    def close(self) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=False)

    async def _call(
        self, source: LiquiditySource, token_in: str, token_out: str, amount_in: int
    ) -> Tuple[int, int]:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(
            self.executor, source.call_quote, self.chain, token_in, token_out, amount_in
        )
        return await asyncio.wait_for(future, timeout=self.call_timeout_sec)

    async def get_amount_out(self, request: QuoteRequest) -> Quote:
        """
        Quote an exact-input swap on one source.

        Returns:
            Quote with success=True and a positive rate, or success=False with
            error_kind and exclusion_reason set
        """
        source = request.source
        token_in, token_out = request.token_in, request.token_out

        def classify(error: BaseException) -> QuoteErrorKind:
            return classify_error(error, allow_transient_lock=source.concentrated)

        call = with_retry(
            retryable=source.retryable_errors,
            classify=classify,
            max_attempts=self.max_attempts,
            backoff_sec=self.backoff_sec,
        )(self._call)

        amount_in = from_raw_amount(request.amount_in, token_in.decimals)

        try:
            if request.amount_in <= 0:
                raise QuoteError(
                    "input amount must be positive",
                    kind=QuoteErrorKind.ZERO_OUTPUT,
                    source_label=source.label,
                )
            amount_out_raw, gas = await call(
                source, token_in.address, token_out.address, request.amount_in
            )
            if amount_out_raw <= 0:
                raise QuoteError(
                    "quote returned zero output",
                    kind=QuoteErrorKind.ZERO_OUTPUT,
                    source_label=source.label,
                )
        except asyncio.TimeoutError:
            kind = QuoteErrorKind.UNKNOWN
            reason = f"unknown error: timed out after {self.call_timeout_sec}s"
            return self._failed(request, amount_in, kind, reason)
        except Exception as e:
            kind = classify(e)
            return self._failed(request, amount_in, kind, exclusion_reason(kind, e))

        amount_out = from_raw_amount(amount_out_raw, token_out.decimals)
        rate = amount_out / amount_in

        logger.debug(
            f"{source.label}: {amount_in} {token_in.symbol} → "
            f"{amount_out} {token_out.symbol} (rate {rate:.6f}, gas {gas:,})"
        )

        return Quote(
            source=source,
            token_in=token_in,
            token_out=token_out,
            amount_in_raw=request.amount_in,
            amount_out_raw=amount_out_raw,
            amount_in=amount_in,
            amount_out=amount_out,
            rate=rate,
            gas_estimate=gas,
            success=True,
        )

    def _failed(
        self,
        request: QuoteRequest,
        amount_in: Decimal,
        kind: QuoteErrorKind,
        reason: str,
    ) -> Quote:
        logger.debug(
            f"{request.source.label}: {request.token_in.symbol} → "
            f"{request.token_out.symbol} excluded ({reason})"
        )
        return Quote(
            source=request.source,
            token_in=request.token_in,
            token_out=request.token_out,
            amount_in_raw=request.amount_in,
            amount_out_raw=0,
            amount_in=amount_in,
            amount_out=Decimal(0),
            rate=None,
            gas_estimate=0,
            success=False,
            error_kind=kind,
            exclusion_reason=reason,
        )

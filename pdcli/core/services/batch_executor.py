"""Batch executor: issues many independent API requests under a rate limit.

Consumes an ordered sequence of Request Descriptors, dispatches them
through a fixed pool of asyncio workers sharing one queue, applies the
rate governor and the retry policy, and returns a Result Set whose
outcomes are aligned to the input indices. Individual failures never
abort the batch.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import httpx

from pdcli.domain.errors import BatchUsageError
from pdcli.domain.events.batch_events import (
    BatchCompleted, DomainEvent, RequestDeferred, RequestDispatched,
    RequestFailed, RequestSucceeded, RetryScheduled,
)
from pdcli.domain.interfaces.progress import ProgressSink
from pdcli.domain.models.common import Credential
from pdcli.domain.models.outcome import (
    Classification, ErrorKind, Failure, Outcome, RawOutcome, Success,
)
from pdcli.domain.models.request import RequestDescriptor
from pdcli.domain.models.result_set import ResultSet
from pdcli.infrastructure.api.transport import (
    DEFAULT_BASE_URL, DEFAULT_TIMEOUT_S, HttpTransport, create_client,
)
from pdcli.infrastructure.resilience.rate_limiter import (
    DEFAULT_MAX_REQUESTS, DEFAULT_TIME_WINDOW_SECONDS, RateGovernor,
)
from pdcli.infrastructure.resilience import retry_policy as retry_defaults
from pdcli.infrastructure.resilience.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

# 10 workers at a few hundred ms per call stays well below 900 requests/minute
DEFAULT_CONCURRENCY = 10

EventHandler = Callable[[DomainEvent], None]


@dataclass
class BatchOptions:
    """Per-run configuration of the batch executor."""
    concurrency_limit: int = DEFAULT_CONCURRENCY
    max_attempts: int = retry_defaults.DEFAULT_MAX_ATTEMPTS
    base_delay: float = retry_defaults.DEFAULT_BASE_DELAY_S
    backoff_factor: float = retry_defaults.DEFAULT_BACKOFF_FACTOR
    max_delay: float = retry_defaults.DEFAULT_MAX_DELAY_S
    jitter: float = retry_defaults.DEFAULT_JITTER
    max_retry_after: float = retry_defaults.DEFAULT_MAX_RETRY_AFTER_S
    rate_limit: int = DEFAULT_MAX_REQUESTS
    rate_window_seconds: float = DEFAULT_TIME_WINDOW_SECONDS
    request_timeout: float = DEFAULT_TIMEOUT_S
    description: Optional[str] = None

    def build_retry_policy(self, rng: Optional[random.Random] = None) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            backoff_factor=self.backoff_factor,
            max_delay=self.max_delay,
            jitter=self.jitter,
            max_retry_after=self.max_retry_after,
            rng=rng or random.Random(),
        )


@dataclass
class _RunContext:
    """State owned by a single run; discarded when the batch completes."""
    credential: Credential
    transport: HttpTransport
    governor: RateGovernor
    policy: RetryPolicy
    total: int
    description: Optional[str]
    completed: int = 0
    slots: List[Optional[Outcome]] = field(default_factory=list)


def _log_event(event: DomainEvent) -> None:
    logger.debug(f"EVENT: {event}")


class BatchExecutor:
    """Runs batches of Request Descriptors through a bounded worker pool."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        progress_sink: Optional[ProgressSink] = None,
        event_handler: Optional[EventHandler] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initializes the BatchExecutor.

        Args:
            base_url: Root URL of the PagerDuty API.
            progress_sink: Optional observer notified with "N of M complete".
            event_handler: Optional callable receiving domain events (defaults to debug logging).
            http_transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
            rng: Optional random source for backoff jitter.
        """
        self.base_url = base_url
        self.progress_sink = progress_sink
        self.event_handler = event_handler or _log_event
        self.http_transport = http_transport
        self.rng = rng

    def _dispatch_event(self, event: DomainEvent) -> None:
        try:
            self.event_handler(event)
        except Exception as e:
            logger.warning(f"Event handler failed for {type(event).__name__}: {e}", exc_info=True)

    def _report_progress(self, ctx: _RunContext) -> None:
        if not self.progress_sink:
            return
        try:
            self.progress_sink.update(ctx.completed, ctx.total, ctx.description)
        except Exception as e:
            logger.warning(f"Progress sink failed: {e}", exc_info=True)

    def run_batch(
        self,
        descriptors: Sequence[RequestDescriptor],
        credential: Credential,
        options: Optional[BatchOptions] = None,
    ) -> ResultSet:
        """Blocking wrapper around run() for synchronous callers such as CLI commands."""
        return asyncio.run(self.run(descriptors, credential, options))

    async def run(
        self,
        descriptors: Sequence[RequestDescriptor],
        credential: Credential,
        options: Optional[BatchOptions] = None,
    ) -> ResultSet:
        """Executes every descriptor to a terminal outcome.

        Args:
            descriptors: Ordered requests; the output is aligned to these indices.
            credential: API token used for every request.
            options: Concurrency, retry, rate-limit and timeout settings.

        Returns:
            A ResultSet with exactly one Outcome per descriptor.

        Raises:
            BatchUsageError: If the batch is empty, contains something other
                than RequestDescriptors, or the concurrency limit is not positive.
        """
        options = options or BatchOptions()
        descriptors = list(descriptors)
        if not descriptors:
            raise BatchUsageError("Cannot run an empty batch: at least one request descriptor is required.")
        if options.concurrency_limit < 1:
            raise BatchUsageError(f"Concurrency limit must be positive, got {options.concurrency_limit}.")
        for i, descriptor in enumerate(descriptors):
            if not isinstance(descriptor, RequestDescriptor):
                raise BatchUsageError(f"Item {i} is not a RequestDescriptor: {descriptor!r}")

        total = len(descriptors)
        worker_count = min(options.concurrency_limit, total)
        logger.info(
            f"Starting batch of {total} request(s) with {worker_count} worker(s)"
            + (f": {options.description}" if options.description else "")
        )
        start_time = time.perf_counter()

        queue: "asyncio.Queue[tuple]" = asyncio.Queue()
        for item in enumerate(descriptors):
            queue.put_nowait(item)

        async with create_client(self.base_url, options.request_timeout, self.http_transport) as client:
            ctx = _RunContext(
                credential=credential,
                transport=HttpTransport(client),
                governor=RateGovernor(options.rate_limit, options.rate_window_seconds),
                policy=options.build_retry_policy(self.rng),
                total=total,
                description=options.description,
                slots=[None] * total,
            )
            try:
                await asyncio.gather(*(self._worker(n, queue, ctx) for n in range(worker_count)))
            finally:
                if self.progress_sink:
                    try:
                        self.progress_sink.finish()
                    except Exception as e:
                        logger.warning(f"Progress sink failed to finish: {e}", exc_info=True)

        missing = [i for i, slot in enumerate(ctx.slots) if slot is None]
        if missing:
            # Workers only stop once the queue is drained, so this means a bug
            raise RuntimeError(f"Batch finished without outcomes for indices {missing}")

        result = ResultSet(ctx.slots)
        duration = time.perf_counter() - start_time
        logger.info(
            f"Batch finished in {duration:.2f}s: {result.success_count} succeeded, "
            f"{result.failure_count} failed"
        )
        self._dispatch_event(BatchCompleted(
            total=total, succeeded=result.success_count,
            failed=result.failure_count, duration_seconds=duration,
        ))
        return result

    async def _worker(self, worker_id: int, queue: asyncio.Queue, ctx: _RunContext) -> None:
        """Pulls descriptors until the queue is empty."""
        while True:
            try:
                index, descriptor = queue.get_nowait()
            except asyncio.QueueEmpty:
                logger.debug(f"Worker {worker_id} idle, queue drained.")
                return
            ctx.slots[index] = await self._execute_with_retry(index, descriptor, ctx)
            ctx.completed += 1
            queue.task_done()
            self._report_progress(ctx)

    async def _execute_with_retry(self, index: int, descriptor: RequestDescriptor, ctx: _RunContext) -> Outcome:
        """Drives one descriptor from Pending to Succeeded or Failed."""
        endpoint = descriptor.endpoint
        attempts = 0
        while True:
            # 1. Wait for a slot from the rate governor
            wait_duration = await ctx.governor.reserve()
            if wait_duration > 0:
                self._dispatch_event(RequestDeferred(index=index, endpoint=endpoint, wait_time_seconds=wait_duration))
                await asyncio.sleep(wait_duration)

            # 2. Execute the call
            attempts += 1
            self._dispatch_event(RequestDispatched(
                index=index, method=descriptor.method.value, endpoint=endpoint, attempt_number=attempts,
            ))
            start_time = time.perf_counter()
            try:
                raw = await ctx.transport.execute(descriptor, ctx.credential)
            except Exception as e:
                logger.error(f"Unexpected error calling {endpoint} on attempt {attempts}: {e}", exc_info=True)
                raw = RawOutcome(Classification.NETWORK_ERROR, message=f"Unexpected error: {type(e).__name__}: {e}")
            latency_ms = (time.perf_counter() - start_time) * 1000

            if raw.is_success:
                self._dispatch_event(RequestSucceeded(
                    index=index, endpoint=endpoint, status_code=raw.status_code,
                    attempts=attempts, latency_ms=latency_ms,
                ))
                return Success(status_code=raw.status_code, body=raw.payload, attempts=attempts)

            # 3. Failed: let the server's hint hold back every worker, then ask the policy
            hint = ctx.policy.bound_hint(raw.retry_after)
            if raw.classification is Classification.RATE_LIMITED:
                await ctx.governor.penalize(hint)
            decision = ctx.policy.decide(raw.classification, attempts, hint)

            if not decision.retry:
                error_kind = (
                    ErrorKind.CLIENT_ERROR if raw.classification is Classification.CLIENT_ERROR
                    else ErrorKind.RETRY_EXHAUSTED
                )
                failure = Failure(
                    status_code=raw.status_code,
                    error_kind=error_kind,
                    message=raw.message,
                    attempts=attempts,
                    last_classification=raw.classification,
                )
                logger.error(f"Request #{index} {descriptor.method.value} {endpoint} failed: {failure.describe()}")
                self._dispatch_event(RequestFailed(
                    index=index, endpoint=endpoint, error_kind=error_kind.value,
                    error_message=raw.message, attempts=attempts, status_code=raw.status_code,
                ))
                return failure

            logger.warning(
                f"Retryable error calling {endpoint} on attempt {attempts}/{ctx.policy.max_attempts}: "
                f"{raw.classification.value}. Waiting {decision.delay_seconds:.2f}s..."
            )
            self._dispatch_event(RetryScheduled(
                index=index, endpoint=endpoint, attempt_number=attempts,
                delay_seconds=decision.delay_seconds, classification=raw.classification.value,
                retry_after_hint=hint,
            ))
            await asyncio.sleep(decision.delay_seconds)

"""Concurrent generation of test blocks with retry and fallback.

One job per endpoint runs on a fixed-size thread pool. Each job retries
transient failures with exponential backoff, then either falls back to the
template engine or aborts the whole run. Results are collected in
submission order, whatever order the workers finish in.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol

from api_test_orchestrator.config import GeneratorConfig
from api_test_orchestrator.errors import (
    ExhaustedRetryError,
    FatalConfigurationError,
    FatalRunError,
    MalformedResponseError,
    TransientGenerationError,
)
from api_test_orchestrator.parser.base import ApiEndpoint

from .code import TestBlockRenderer, clean_response, unique_identifier
from .fallback import FallbackTemplateEngine
from .prompt import PromptBuilder
from .validator import validate_block

logger = logging.getLogger(__name__)


class GenerationClient(Protocol):
    def call(self, system: str, user: str) -> str: ...


# -- per-run shared state ------------------------------------------------------


class RunCounters:
    """Monotonic, thread-safe processed/failed counters for one run.

    ``processed`` counts jobs a worker has picked up. Queued jobs cancelled by
    an abort never start, so they are not counted.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._processed = 0
        self._failed = 0

    def record_processed(self) -> int:
        with self._lock:
            self._processed += 1
            return self._processed

    def record_failed(self) -> int:
        with self._lock:
            self._failed += 1
            return self._failed

    @property
    def processed(self) -> int:
        with self._lock:
            return self._processed

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed


class BlockCollector:
    """Ordered output stream; each append holds the lock for the whole write."""

    def __init__(self):
        self._lock = threading.Lock()
        self._blocks: list[str] = []

    def append(self, block: str) -> None:
        with self._lock:
            self._blocks.append(block)

    @property
    def blocks(self) -> list[str]:
        with self._lock:
            return list(self._blocks)


# -- jobs and results ------------------------------------------------------------


@dataclass(frozen=True)
class GenerationJob:
    endpoint: ApiEndpoint
    identifier: str
    system_prompt: str
    user_prompt: str


@dataclass(frozen=True)
class Success:
    endpoint: ApiEndpoint
    block: str
    attempts: int = 1
    used_fallback: bool = False


@dataclass(frozen=True)
class Failure:
    endpoint: ApiEndpoint
    error_kind: str
    last_error: Exception | None
    attempts: int = 0


GenerationResult = Success | Failure

WORKER_CRASH = "WorkerCrash"
CANCELLED = "Cancelled"


@dataclass
class RunContext:
    total: int = 0
    counters: RunCounters = field(default_factory=RunCounters)
    output: BlockCollector = field(default_factory=BlockCollector)
    cancelled: threading.Event = field(default_factory=threading.Event)
    first_failure: Failure | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def fail(self, failure: Failure) -> Failure:
        """Record the run's first failure and stop every other job."""
        with self._lock:
            if self.first_failure is None:
                self.first_failure = failure
        self.cancelled.set()
        return failure


# -- retry state machine -----------------------------------------------------------


class RetryState(Enum):
    ATTEMPTING = "attempting"
    BACKING_OFF = "backing_off"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int
    initial_backoff_ms: int = 1000

    @classmethod
    def from_config(cls, config: GeneratorConfig) -> "RetryPolicy":
        return cls(config.max_retries, config.initial_backoff_ms)


@dataclass(frozen=True)
class RetryOutcome:
    value: str | None
    attempts: int
    last_error: Exception | None = None
    slept_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.value is not None


def run_with_retry(
    attempt: Callable[[], str],
    policy: RetryPolicy,
    sleep: Callable[[float], object] = time.sleep,
    cancelled: threading.Event | None = None,
    label: str = "",
) -> RetryOutcome:
    """Call ``attempt`` up to ``policy.max_retries`` times.

    Transient failures back off ``initial_backoff_ms`` and double the delay
    each time; there is no sleep after the last attempt. A
    FatalConfigurationError propagates immediately.
    """
    state = RetryState.ATTEMPTING if policy.max_retries > 0 else RetryState.RESOLVED
    attempts = 0
    wait_ms = policy.initial_backoff_ms
    slept_ms = 0
    last_error: Exception | None = None

    while True:
        if state is RetryState.ATTEMPTING:
            if cancelled is not None and cancelled.is_set():
                state = RetryState.RESOLVED
                continue
            attempts += 1
            try:
                return RetryOutcome(attempt(), attempts, None, slept_ms)
            except TransientGenerationError as e:
                last_error = e
                logger.warning(
                    "Generation failed for %s (%d/%d): %s",
                    label, attempts, policy.max_retries, e,
                )
            state = RetryState.BACKING_OFF if attempts < policy.max_retries else RetryState.RESOLVED

        elif state is RetryState.BACKING_OFF:
            sleep(wait_ms / 1000)
            slept_ms += wait_ms
            wait_ms *= 2
            state = RetryState.ATTEMPTING

        else:
            return RetryOutcome(None, attempts, last_error, slept_ms)


# -- executor ----------------------------------------------------------------------


class ConcurrentExecutor:
    """Dispatches one generation job per endpoint on a bounded thread pool."""

    def __init__(
        self,
        client: GenerationClient,
        config: GeneratorConfig,
        prompt_builder: PromptBuilder | None = None,
        fallback: FallbackTemplateEngine | None = None,
        renderer: TestBlockRenderer | None = None,
        sleep: Callable[[float], object] | None = None,
    ):
        self.client = client
        self.config = config
        self.policy = RetryPolicy.from_config(config)
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.fallback = fallback or FallbackTemplateEngine()
        self.renderer = renderer or TestBlockRenderer()
        self._sleep = sleep
        self.context = RunContext()

    def build_jobs(self, endpoints: list[ApiEndpoint]) -> list[GenerationJob]:
        """Create jobs in dispatch order with unique function identifiers."""
        jobs = []
        taken: set[str] = set()
        for endpoint in endpoints:
            identifier = unique_identifier(endpoint.operation_id, taken)
            system_prompt, user_prompt = self.prompt_builder.build(endpoint)
            jobs.append(GenerationJob(endpoint, identifier, system_prompt, user_prompt))
        return jobs

    def run(self, endpoints: list[ApiEndpoint]) -> list[Success]:
        """Generate one block per endpoint, in the given order.

        Raises FatalRunError when a job cannot produce a usable result; no
        partial output is returned in that case.
        """
        context = RunContext(total=len(endpoints))
        self.context = context
        jobs = self.build_jobs(endpoints)
        results: list[Success] = []

        pool = ThreadPoolExecutor(
            max_workers=self.config.thread_pool_size,
            thread_name_prefix="generation",
        )
        logger.info("Started a %d-thread generation pool.", self.config.thread_pool_size)
        futures: list[Future] = []
        try:
            futures = [pool.submit(self._process, job, context) for job in jobs]
            pending = set(futures)
            # Watch completions as they happen so a failure anywhere in the
            # batch aborts the run without waiting for earlier jobs.
            while pending and not context.cancelled.is_set():
                _, pending = wait(pending, return_when=FIRST_COMPLETED)

            if context.cancelled.is_set():
                self._abort(pool, futures, context)
                failure = context.first_failure
                raise self._fatal(context, _describe(failure)) from failure.last_error

            for future in futures:
                result = future.result()
                context.output.append(result.block)
                results.append(result)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        return results

    # -- worker side ---------------------------------------------------------

    def _process(self, job: GenerationJob, context: RunContext) -> GenerationResult:
        if context.cancelled.is_set():
            return Failure(job.endpoint, CANCELLED, None)
        try:
            return self._generate(job, context)
        except Exception as e:
            logger.exception("Generation job for %s crashed", job.endpoint)
            return context.fail(Failure(job.endpoint, WORKER_CRASH, e))

    def _generate(self, job: GenerationJob, context: RunContext) -> GenerationResult:
        endpoint = job.endpoint
        current = context.counters.record_processed()
        logger.info("[%d/%d] Processing %s", current, context.total, endpoint)

        try:
            outcome = run_with_retry(
                lambda: self._attempt(job),
                self.policy,
                sleep=self._sleep or context.cancelled.wait,
                cancelled=context.cancelled,
                label=str(endpoint),
            )
        except FatalConfigurationError as e:
            context.counters.record_failed()
            logger.error("Fatal configuration error on %s: %s", endpoint, e)
            return context.fail(Failure(endpoint, type(e).__name__, e))

        if outcome.succeeded:
            logger.info("[%d/%d] Completed %s", current, context.total, endpoint)
            return Success(endpoint, outcome.value, outcome.attempts)

        if context.cancelled.is_set():
            return Failure(endpoint, CANCELLED, outcome.last_error, outcome.attempts)

        context.counters.record_failed()
        exhausted = ExhaustedRetryError(outcome.attempts, outcome.last_error)
        if not self.config.use_fallback_on_error:
            return context.fail(Failure(endpoint, type(exhausted).__name__, exhausted, outcome.attempts))

        logger.warning("Retries exhausted for %s, using fallback template.", endpoint)
        body = self.fallback.render_body(endpoint)
        block = self.renderer.render(endpoint, job.identifier, body, fallback=True)
        return Success(endpoint, block, outcome.attempts, used_fallback=True)

    def _attempt(self, job: GenerationJob) -> str:
        response = self.client.call(system=job.system_prompt, user=job.user_prompt)
        body = clean_response(response or "")
        if not body:
            raise MalformedResponseError("empty response after cleanup")
        block = self.renderer.render(job.endpoint, job.identifier, body)
        error = validate_block(block)
        if error:
            raise MalformedResponseError(error)
        return block

    # -- abort -----------------------------------------------------------------

    def _abort(self, pool: ThreadPoolExecutor, futures: list[Future], context: RunContext) -> None:
        """Stop dispatch, cancel queued jobs and give running ones a grace period."""
        context.cancelled.set()
        pool.shutdown(wait=False, cancel_futures=True)
        _, not_done = wait(futures, timeout=self.config.shutdown_grace_seconds)
        if not_done:
            logger.warning("%d generation job(s) still running after the grace period.", len(not_done))

    @staticmethod
    def _fatal(context: RunContext, detail: str) -> FatalRunError:
        return FatalRunError(
            f"Run aborted: {detail}",
            processed=context.counters.processed,
            failed=context.counters.failed,
        )


def _describe(failure: Failure) -> str:
    if failure.error_kind == WORKER_CRASH:
        return f"worker crashed on {failure.endpoint}: {failure.last_error}"
    return f"{failure.endpoint}: {failure.error_kind}: {failure.last_error}"

"""
Batch evaluation service for pkgsweep.

Drives the per-package decision workflows over a large package list with a
fixed pool of worker threads sharing one rate limiter. Results are streamed
back as they complete, in no particular order.
"""

import logging
import queue
import threading
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from ..domain.package import Package, EvaluationResult
from ..errors import PackageError
from ..infra.github_client import GitHubClient, GitHubAuth, DEFAULT_FORBIDDEN_BACKOFF, GITHUB_API_URL
from ..infra.package_store import PackageStore, InMemoryPackageStore
from ..infra.rate_limiter import TokenBucket, limiter_for
from .decision_service import DecisionService, utc_now

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 8

Decide = Callable[[str], Tuple[bool, bool]]

# Queue markers
_STOP = object()
_DONE = object()

# Seconds between checks for a closed consumer
_POLL_INTERVAL = 0.1


class BatchEvaluator:
    """
    Evaluates many packages concurrently against the GitHub API.

    A dispatcher feeds packages to `workers` worker threads through a
    shared queue. Before evaluating a package a worker takes a token from
    the shared limiter, unless its previous package was a cache hit: a
    cache hit spent no real request, so the next package may go straight
    to the network. Results go through a single-slot queue, so a consumer
    that stops reading eventually stalls the workers.

    Example:
        evaluator = BatchEvaluator(client, limiter, store, workers=8)
        for result in evaluator.should_suppress_packages(packages):
            if result.error:
                print(result.error)
            elif result.decision:
                print(result.path)
    """

    def __init__(
        self,
        client: GitHubClient,
        limiter: TokenBucket,
        store: Optional[PackageStore] = None,
        workers: int = DEFAULT_WORKERS,
        clock=utc_now,
    ):
        """
        Initialize BatchEvaluator.

        Args:
            client: GitHub client shared by all workers
            limiter: Rate limiter shared by all workers
            store: Package datastore (defaults to the importer counts carried
                by the packages of each batch)
            workers: Number of worker threads
            clock: Returns the current time as an aware datetime
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")

        self.client = client
        self.limiter = limiter
        self.store = store
        self.workers = workers
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        auth: Optional[GitHubAuth] = None,
        store: Optional[PackageStore] = None,
        transport: Optional[Any] = None,
        is_cached: Optional[Callable[[Any], bool]] = None,
    ) -> 'BatchEvaluator':
        """
        Build an evaluator from a configuration dict.

        Args:
            config: Configuration (see config.get_default_config)
            auth: Credentials; read from the github config section if None
            store: Package datastore
            transport: HTTP transport for the GitHub client
            is_cached: Cache-hit predicate for the GitHub client
        """
        github = config.get('github', {})
        if auth is None and github.get('client_id') and github.get('client_secret'):
            auth = GitHubAuth(github['client_id'], github['client_secret'])

        client = GitHubClient(
            transport=transport,
            auth=auth,
            is_cached=is_cached,
            api_url=github.get('api_url') or GITHUB_API_URL,
            forbidden_backoff=float(github.get('forbidden_backoff_seconds', DEFAULT_FORBIDDEN_BACKOFF)),
            timeout=float(github.get('timeout_seconds', 30)),
        )
        limiter = limiter_for(auth is not None, config.get('rate_limit'))
        workers = int(config.get('batch', {}).get('workers', DEFAULT_WORKERS))
        return cls(client, limiter, store=store, workers=workers)

    def _decisions(self, packages: List[Package]) -> DecisionService:
        store = self.store if self.store is not None else InMemoryPackageStore.from_packages(packages)
        return DecisionService(self.client, store, clock=self.clock)

    @staticmethod
    def _evaluate_one(package: Package, decide: Decide) -> EvaluationResult:
        try:
            decision, cache_hit = decide(package.path)
        except PackageError as e:
            logger.debug(f"{package.path}: {e}")
            return EvaluationResult(path=package.path, cache_hit=e.cache_hit, error=e)
        return EvaluationResult(path=package.path, decision=decision, cache_hit=cache_hit)

    def evaluate(self, packages: Iterable[Package], decide: Decide) -> Iterator[EvaluationResult]:
        """
        Run `decide` over every package.

        The batch starts when the first result is requested. Exactly one
        result is yielded per package; per-package errors are attached to
        the result and never stop the batch. Closing the generator early
        (break, Ctrl+C) releases the worker threads.

        Args:
            packages: Packages to evaluate
            decide: Per-path workflow returning (decision, cache hit)

        Yields:
            EvaluationResult per package, in completion order
        """
        packages = list(packages)
        inbox: queue.Queue = queue.Queue()
        outbox: queue.Queue = queue.Queue(maxsize=1)
        closed = threading.Event()
        failures: List[Exception] = []

        def deliver(item) -> bool:
            # False once the consumer has gone away
            while not closed.is_set():
                try:
                    outbox.put(item, timeout=_POLL_INTERVAL)
                    return True
                except queue.Full:
                    continue
            return False

        def dispatch():
            for package in packages:
                inbox.put(package)
            for _ in range(self.workers):
                inbox.put(_STOP)

        def work():
            should_wait = True
            while not closed.is_set():
                package = inbox.get()
                if package is _STOP:
                    return
                if should_wait:
                    self.limiter.acquire()
                try:
                    result = self._evaluate_one(package, decide)
                except Exception as e:
                    logger.error(f"Worker failed on {package.path}: {e}")
                    failures.append(e)
                    return
                if not deliver(result):
                    return
                should_wait = not result.cache_hit

        def start(target, name):
            thread = threading.Thread(target=target, name=name)
            thread.daemon = True
            thread.start()
            return thread

        logger.info(f"Evaluating {len(packages)} packages with {self.workers} workers")

        try:
            start(dispatch, 'pkgsweep-dispatch')
            threads = [start(work, f'pkgsweep-worker-{i}') for i in range(self.workers)]

            def finalize():
                for thread in threads:
                    thread.join()
                deliver(_DONE)

            start(finalize, 'pkgsweep-finalize')

            while True:
                item = outbox.get()
                if item is _DONE:
                    break
                yield item

            # Re-raise anything unexpected that killed a worker
            if failures:
                raise failures[0]
        finally:
            closed.set()

    def should_archive_packages(self, packages: Iterable[Package]) -> Iterator[EvaluationResult]:
        """Decide which packages should be archived."""
        packages = list(packages)
        return self.evaluate(packages, self._decisions(packages).should_archive)

    def are_fast_fork_packages(self, packages: Iterable[Package]) -> Iterator[EvaluationResult]:
        """Decide which packages live in fast forks."""
        packages = list(packages)
        return self.evaluate(packages, self._decisions(packages).is_fast_fork)

    def should_suppress_packages(self, packages: Iterable[Package]) -> Iterator[EvaluationResult]:
        """Decide which packages should be suppressed from the index."""
        packages = list(packages)
        return self.evaluate(packages, self._decisions(packages).should_suppress)

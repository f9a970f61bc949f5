"""Base collector class and HTTP utilities."""

import math
import sys
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, TypeVar

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

T = TypeVar("T")
R = TypeVar("R")

# Response outcomes as seen by RetryPolicy.classify
OK = "ok"
NOT_FOUND = "not_found"
RATE_LIMITED = "rate_limited"
RETRY = "retry"

POOL_SIZE = 50


class FetchError(RuntimeError):
    """Raised when a request keeps failing after every retry."""

    def __init__(self, url: str, attempts: int):
        super().__init__(f"Failed to fetch {url} after {attempts} retries")
        self.url = url
        self.attempts = attempts


@dataclass(frozen=True)
class ClientConfig:
    """Settings shared by every GitHub API request of a run."""

    token: Optional[str] = None
    accept: str = "application/vnd.github+json"
    api_version: str = "2022-11-28"
    timeout: float = 30

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def headers(self) -> dict:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": self.accept,
            "X-GitHub-Api-Version": self.api_version,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers


@dataclass(frozen=True)
class RetryPolicy:
    """How FetchClient reacts to each response.

    Failed attempts back off linearly: (attempt + 1) * backoff_factor seconds.
    Rate-limit waits do not count as attempts.
    """

    max_retries: int = 3
    backoff_factor: float = 2.0
    # Slack added after the advertised reset time
    reset_margin: float = 1.0

    def backoff(self, attempt: int) -> float:
        return (attempt + 1) * self.backoff_factor

    def classify(self, response: requests.Response) -> str:
        if 200 <= response.status_code < 300:
            return OK
        if response.status_code == 404:
            return NOT_FOUND
        if (
            response.status_code == 403
            and response.headers.get("x-ratelimit-remaining") == "0"
            and response.headers.get("x-ratelimit-reset", "").isdigit()
        ):
            return RATE_LIMITED
        return RETRY

    def rate_limit_wait(self, response: requests.Response, now: float) -> float:
        """Seconds to wait until the rate limit resets, never negative.

        Args:
            response: A response classified as RATE_LIMITED.
            now: Current time in epoch seconds.
        """
        reset = int(response.headers["x-ratelimit-reset"])
        return max(reset - now + self.reset_margin, 0.0)


class FetchClient:
    """GitHub API client with retries and rate-limit handling.

    A rate-limited request blocks until the limit resets, which can take
    up to an hour on the unauthenticated tier.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: Optional[requests.Session] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.session = session or requests.Session()
        self.policy = policy or RetryPolicy()
        self.sleep = sleep
        self.clock = clock
        self._headers = config.headers()

    def fetch_with_retry(
        self,
        url: str,
        params: Optional[dict] = None,
        max_retries: Optional[int] = None,
    ) -> requests.Response:
        """GET a URL, retrying failures and waiting out rate limits.

        Args:
            url: URL to fetch.
            params: Optional query parameters.
            max_retries: Overrides the policy's attempt budget.

        Returns:
            The first 2xx or 404 response.

        Raises:
            FetchError: If every attempt failed.
        """
        max_retries = self.policy.max_retries if max_retries is None else max_retries
        attempt = 0

        while attempt < max_retries:
            try:
                response = self.session.get(
                    url,
                    params=params,
                    headers=self._headers,
                    timeout=self.config.timeout,
                )
            except requests.RequestException as e:
                delay = self.policy.backoff(attempt)
                print(f"Warning: Request error ({e}), retrying in {delay:g}s...")
                self.sleep(delay)
                attempt += 1
                continue

            outcome = self.policy.classify(response)
            if outcome in (OK, NOT_FOUND):
                return response

            if outcome == RATE_LIMITED:
                wait = self.policy.rate_limit_wait(response, self.clock())
                print(f"Rate limited. Waiting {math.ceil(wait)}s until reset...")
                self.sleep(wait)
                continue

            delay = self.policy.backoff(attempt)
            print(
                f"Warning: Request failed ({response.status_code}), "
                f"retrying in {delay:g}s..."
            )
            self.sleep(delay)
            attempt += 1

        raise FetchError(url, max_retries)


def get_session(retries: int = 3, pool_size: int = POOL_SIZE) -> requests.Session:
    """Create a requests session with retry logic.

    The connection pool is sized for the nested batches that share one
    session (10 repositories x 5 manifests).
    """
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
    )
    adapter = HTTPAdapter(max_retries=retry, pool_maxsize=pool_size)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def run_in_batches(
    items: Sequence[T],
    func: Callable[[T], R],
    batch_size: int,
    delay: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
    on_batch: Optional[Callable[[int, list[R]], None]] = None,
) -> list[R]:
    """Apply func to items, at most batch_size at a time.

    Each batch runs concurrently and must finish before the next one
    starts. Results come back in input order.

    Args:
        items: Items to process.
        func: Called once per item; exceptions propagate.
        batch_size: Number of concurrent calls per batch.
        delay: Seconds to sleep between batches.
        sleep: Sleep function, replaceable in tests.
        on_batch: Called after each batch with (items done, results so far).
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    results: list[R] = []
    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in range(0, len(items), batch_size):
            batch = items[start : start + batch_size]
            results.extend(executor.map(func, batch))

            done = min(start + batch_size, len(items))
            if on_batch:
                on_batch(done, results)
            if delay and done < len(items):
                sleep(delay)
    return results


class BaseCollector(ABC):
    """Abstract base class for plugin collectors."""

    source_name: str = "unknown"

    def __init__(
        self,
        client: FetchClient,
        session: Optional[requests.Session] = None,
    ):
        self.client = client
        # Raw content and registry requests go through a plain retrying session
        self.session = session or get_session()
        self.errors: list[str] = []

    @property
    def sleep(self) -> Callable[[float], None]:
        return self.client.sleep

    def record_error(self, message: str) -> None:
        """Remember a per-item failure and report it on stderr."""
        self.errors.append(message)
        print(f"Error: {message}", file=sys.stderr)

    @abstractmethod
    def collect(self, *args, **kwargs) -> list:
        """Collect plugins from this source."""
        pass

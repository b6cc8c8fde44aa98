# request_executor.py
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

import config
from backoff import compute_wait
from classifier import EndpointKind, Outcome, OutcomeKind, NO_RESPONSE, classify_response, parse_body
from logger import Log, get_logger
from proxy_pool import ProxyPool, as_requests_proxies

logger = get_logger("RequestExecutor", config.LOG_LEVEL)


@dataclass(frozen=True)
class RetryBudget:
    max_attempts: int
    base_wait_seconds: float
    cap_seconds: float = config.MAX_WAIT_TIME

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "RetryBudget":
        return cls(
            max_attempts=int(settings.get("max_retries", config.MAX_RETRIES)),
            base_wait_seconds=float(settings.get("base_wait_time", config.BASE_WAIT_TIME)),
        )


@dataclass
class ExecutionResult:
    outcome: Outcome
    attempts_used: int
    response: Optional[requests.Response] = None
    proxy: Optional[str] = None

    @property
    def body(self) -> Any:
        if self.response is None:
            return None
        return parse_body(self.response.text)


class RequestExecutor:
    """Issues HTTP calls with proxy rotation, per-endpoint timeouts, classification and jittered backoff.

    Holds no per-operation state: the proxy in force is passed in and handed back
    through ExecutionResult, so one executor can serve any number of operations.
    """

    def __init__(
        self,
        proxy_pool: ProxyPool,
        session: Optional[requests.Session] = None,
        faucet_url: str = config.FAUCET_URL,
        solver_url: str = config.SCRAPPEY_URL,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.proxy_pool = proxy_pool
        if session is None:
            session = requests.Session()
            # Proxies are applied explicitly, never picked up from the environment
            session.trust_env = False
        self.session = session
        self.faucet_url = faucet_url
        self.solver_url = solver_url
        self.sleep = sleep
        self.rng = rng or random.Random()

    def endpoint_kind(self, url: str) -> EndpointKind:
        if url == self.faucet_url:
            return EndpointKind.FAUCET
        if url == self.solver_url:
            return EndpointKind.SOLVER
        return EndpointKind.GENERIC

    def _timeout(self, kind: EndpointKind, timeout: Optional[float]) -> float:
        if kind is EndpointKind.FAUCET:
            return config.FAUCET_TIMEOUT
        return timeout if timeout else config.DEFAULT_TIMEOUT

    def execute(
        self,
        method: str,
        url: str,
        budget: RetryBudget,
        proxy: Optional[str] = None,
        timeout: Optional[float] = None,
        log: Optional[Log] = None,
        **request_kwargs: Any,
    ) -> ExecutionResult:
        """Runs the request until it classifies as done or the budget is spent.

        Transport errors and retryable statuses are logged and retried; they never
        propagate. After the last attempt the most recent RETRYABLE outcome is
        returned, or a NO_RESPONSE one if no attempt got a response.
        """
        log = log or logger
        kind = self.endpoint_kind(url)
        # The solver fetches through the proxy named in its payload, not ours
        use_proxy = kind is not EndpointKind.SOLVER
        request_timeout = self._timeout(kind, timeout)

        attempt = 0
        last_outcome = Outcome(OutcomeKind.RETRYABLE, reason=NO_RESPONSE)
        last_response = None
        if budget.max_attempts < 1:
            return ExecutionResult(last_outcome, 0, None, proxy)

        while True:
            proxies = as_requests_proxies(proxy) if use_proxy else None
            try:
                response = self.session.request(
                    method, url, proxies=proxies, timeout=request_timeout, **request_kwargs
                )
            except requests.RequestException as e:
                log.error(f"Request error: {e}")
            else:
                last_response = response
                if kind is EndpointKind.FAUCET:
                    log.info(f"Server response: {response.text}")
                outcome = classify_response(response.status_code, response.text, kind)
                if outcome.is_done:
                    if outcome.kind is OutcomeKind.SOFT_SUCCESS:
                        log.warning(f"Rate limited: {outcome.payload}")
                    return ExecutionResult(outcome, attempt + 1, response, proxy)
                last_outcome = outcome
                log.warning(f"Got status {response.status_code}")

            if attempt + 1 >= budget.max_attempts:
                log.error(f"Giving up on {url} after {attempt + 1} attempts")
                return ExecutionResult(last_outcome, attempt + 1, last_response, proxy)

            wait_time = compute_wait(attempt, budget.base_wait_seconds, budget.cap_seconds, self.rng)
            log.warning(f"Retrying in {wait_time}s... (attempt {attempt + 1}/{budget.max_attempts})")
            self.sleep(wait_time)
            if use_proxy:
                proxy = self.proxy_pool.pick_random()
            attempt += 1

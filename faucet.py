# faucet.py
import time
from typing import Callable, Dict, Optional

import config
from captcha import CaptchaSolver
from classifier import INVALID_CAPTCHA, NO_RESPONSE, Outcome, OutcomeKind, resolve_claim_response
from logger import Log, get_logger
from proxy_pool import ProxyPool
from request_executor import RequestExecutor, RetryBudget

logger = get_logger("Faucet", config.LOG_LEVEL)

CAPTCHA_FAILED = "captcha_failed"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/134.0.0.0 Safari/537.36"
)


def faucet_headers(captcha_token: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        "Origin": config.FAUCET_ORIGIN,
        "Referer": config.FAUCET_REFERER,
        "Accept": "*/*",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
        "Host": config.FAUCET_HOST,
        "h-captcha-response": captcha_token,
    }


class FaucetClaimer:
    """Solves a captcha and claims faucet funds for one address."""

    def __init__(
        self,
        executor: RequestExecutor,
        solver: CaptchaSolver,
        proxy_pool: ProxyPool,
        budget: RetryBudget,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.executor = executor
        self.solver = solver
        self.proxy_pool = proxy_pool
        self.budget = budget
        self.sleep = sleep

    def _solve_captcha(self, proxy: Optional[str], log: Log) -> Optional[str]:
        for attempt in range(config.CAPTCHA_ATTEMPTS):
            log.info(f"Captcha attempt {attempt + 1}/{config.CAPTCHA_ATTEMPTS}")
            token = self.solver.solve(proxy, log=log)
            if token:
                return token
            if attempt < config.CAPTCHA_ATTEMPTS - 1:
                log.warning(f"Captcha attempt {attempt + 1} failed, waiting before retry...")
                self.sleep(config.CAPTCHA_RETRY_DELAY_SEC)
        return None

    def claim_outcome(self, address: str, log: Optional[Log] = None) -> Outcome:
        """Runs one full claim and returns how it ended.

        SUCCESS carries the transaction hash, SOFT_SUCCESS means the address is
        cooling down. RETRYABLE and FATAL both mean the claim should be retried
        from scratch with a new captcha.
        """
        log = log or logger

        # Same proxy for the solve and the claim so the token matches the claiming IP
        proxy = self.proxy_pool.pick_random()
        if proxy:
            log.info(f"Using proxy: {proxy}")

        token = self._solve_captcha(proxy, log)
        if not token:
            log.error("Failed to solve captcha after multiple attempts")
            return Outcome(OutcomeKind.RETRYABLE, reason=CAPTCHA_FAILED)

        log.info(f"Claiming faucet for address: {address}")
        result = self.executor.execute(
            "POST",
            self.executor.faucet_url,
            self.budget,
            proxy=proxy,
            log=log,
            headers=faucet_headers(token),
            json={"address": address},
        )
        if result.proxy != proxy:
            log.info(f"Faucet request finished through proxy: {result.proxy}")

        if result.outcome.kind is OutcomeKind.SOFT_SUCCESS:
            log.warning("Rate limited, moving to next operation")
            return result.outcome
        if not result.outcome.is_done or result.response is None:
            log.error("No response from faucet request")
            return Outcome(OutcomeKind.RETRYABLE, payload=result.outcome.payload, reason=NO_RESPONSE)

        outcome = resolve_claim_response(result.response.text)
        if outcome.kind is OutcomeKind.SUCCESS:
            log.info(f"Success! Transaction: {config.EXPLORER_URL}/tx/{outcome.payload}")
        elif outcome.kind is OutcomeKind.SOFT_SUCCESS:
            log.warning(f"Rate limited: {outcome.payload}")
        elif outcome.reason == INVALID_CAPTCHA:
            log.error("Invalid captcha response received")
        else:
            log.error(f"Unexpected response: {result.response.text}")
        return outcome

    def claim(self, address: str, log: Optional[Log] = None) -> bool:
        """True when done with this address for now, False when the claim should be retried."""
        return self.claim_outcome(address, log).is_done

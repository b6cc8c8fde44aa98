# captcha.py
from typing import Any, Callable, Dict, List, Optional

import config
from classifier import OutcomeKind
from logger import Log, get_logger
from request_executor import RequestExecutor, RetryBudget

logger = get_logger("Captcha", config.LOG_LEVEL)

MIN_TOKEN_LENGTH = 20


def _javascript_return(result: Dict[str, Any]) -> Any:
    values = (result.get("solution") or {}).get("javascriptReturn")
    if isinstance(values, list) and values:
        return values[0]
    return None


def _solution_token(result: Dict[str, Any]) -> Any:
    return (result.get("solution") or {}).get("token")


def _top_level_token(result: Dict[str, Any]) -> Any:
    return result.get("token")


# Searched in this order, first plausible token wins
TOKEN_LOCATIONS: List[Callable[[Dict[str, Any]], Any]] = [
    _javascript_return,
    _solution_token,
    _top_level_token,
]


def extract_token(result: Any) -> Optional[str]:
    if not isinstance(result, dict):
        return None
    for location in TOKEN_LOCATIONS:
        token = location(result)
        if isinstance(token, str) and len(token) > MIN_TOKEN_LENGTH:
            return token
    return None


class CaptchaSolver:
    """Gets an hCaptcha token from the Scrappey solving service."""

    def __init__(
        self,
        executor: RequestExecutor,
        api_key: str,
        budget: RetryBudget,
        site_url: str = config.FAUCET_ORIGIN,
        sitekey: str = config.HCAPTCHA_SITEKEY,
    ):
        self.executor = executor
        self.api_key = api_key
        self.budget = budget
        self.site_url = site_url
        self.sitekey = sitekey

    def build_payload(self, proxy: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "cmd": "request.get",
            "url": self.site_url,
            "dontLoadMainSite": True,
            "filter": ["javascriptReturn"],
            "browserActions": [
                {
                    "type": "solve_captcha",
                    "captcha": "hcaptcha",
                    "captchaData": {"sitekey": self.sitekey},
                }
            ],
        }
        if proxy:
            payload["proxy"] = proxy
        return payload

    def solve(self, proxy: Optional[str] = None, log: Optional[Log] = None) -> Optional[str]:
        """Returns the captcha token, or None when the service fails or answers without one.

        The proxy is forwarded to the service inside the payload; the call to the
        service itself goes out directly.
        """
        log = log or logger
        log.info("Solving hCaptcha for Cytonic faucet...")

        result = self.executor.execute(
            "POST",
            self.executor.solver_url,
            self.budget,
            timeout=config.CAPTCHA_TIMEOUT,
            log=log,
            params={"key": self.api_key},
            headers={"Content-Type": "application/json"},
            json=self.build_payload(proxy),
        )
        if result.outcome.kind is not OutcomeKind.SUCCESS or result.response is None:
            log.error("Failed to solve captcha after all retries")
            return None
        if result.response.status_code != 200:
            log.error(f"Captcha service answered with status {result.response.status_code}")
            return None

        token = extract_token(result.body)
        if token is None:
            log.warning(f"Could not find token in expected locations. Response: {result.response.text}")
            return None

        log.info(f"Successfully obtained captcha token, starts with: {token[:15]}...")
        return token

# classifier.py
"""
Response classification for the faucet flow.

Rules are kept as ordered tables (first match wins) so precedence can be read
top to bottom and tested without any HTTP transport:

- classify_response(): transport tier, decides whether the executor stops or retries
- resolve_claim_response(): faucet body tier, decides what a finished claim means
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import config


class OutcomeKind(Enum):
    SUCCESS = "success"
    SOFT_SUCCESS = "soft_success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


class EndpointKind(Enum):
    FAUCET = "faucet"
    SOLVER = "solver"
    GENERIC = "generic"


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    payload: Any = None
    reason: Optional[str] = None

    @property
    def is_done(self) -> bool:
        """True when the caller should stop retrying."""
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.SOFT_SUCCESS)


RATE_LIMITED = "rate_limited"
INVALID_CAPTCHA = "invalid_captcha"
UNEXPECTED_RESPONSE = "unexpected_response"
NO_RESPONSE = "no_response"

RATE_LIMIT_MARKERS = ("exceeded the rate limit", "wait", "hour")
TX_HASH_MARKERS = ("hash:", "Txhash:")


def parse_body(body: Any) -> Any:
    """Parses a JSON text body; anything else is returned unchanged."""
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            return json.loads(body)
        except ValueError:
            return body
    return body


def _field(body: Any, name: str) -> str:
    if isinstance(body, dict):
        value = body.get(name)
        return value if isinstance(value, str) else ""
    return ""


def _diagnostic_texts(body: Any) -> List[str]:
    if isinstance(body, dict):
        return [_field(body, "msg"), _field(body, "error")]
    if isinstance(body, str):
        return [body]
    return []


def _contains_any(text: str, markers: Tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def _is_rate_limit_text(status: int, body: Any) -> bool:
    return any(_contains_any(text, RATE_LIMIT_MARKERS) for text in _diagnostic_texts(body))


def _is_2xx(status: int, body: Any) -> bool:
    return 200 <= status < 300


def _is_retry_status(status: int, body: Any) -> bool:
    return status in config.RETRY_STATUS_CODES


def _always(status: int, body: Any) -> bool:
    return True


Rule = Tuple[Callable[[int, Any], bool], OutcomeKind, Optional[str]]

# Applied regardless of status: the faucet answers with diagnostic JSON on error codes too
FAUCET_RULES: List[Rule] = [
    (_is_rate_limit_text, OutcomeKind.SOFT_SUCCESS, RATE_LIMITED),
    (_is_2xx, OutcomeKind.SUCCESS, None),
    (_is_retry_status, OutcomeKind.RETRYABLE, None),
    # Terminal here, the claim tier decides what the body means
    (_always, OutcomeKind.SUCCESS, None),
]

GENERIC_RULES: List[Rule] = [
    (_is_retry_status, OutcomeKind.RETRYABLE, None),
    (_always, OutcomeKind.SUCCESS, None),
]

RULES_BY_ENDPOINT: Dict[EndpointKind, List[Rule]] = {
    EndpointKind.FAUCET: FAUCET_RULES,
    EndpointKind.SOLVER: GENERIC_RULES,
    EndpointKind.GENERIC: GENERIC_RULES,
}


def classify_response(status: int, body: Any, kind: EndpointKind) -> Outcome:
    """Pure function of (status, body, endpoint kind)."""
    parsed = parse_body(body)
    for matches, outcome_kind, reason in RULES_BY_ENDPOINT[kind]:
        if matches(status, parsed):
            if outcome_kind is OutcomeKind.RETRYABLE:
                return Outcome(outcome_kind, payload=status, reason=reason or f"status {status}")
            return Outcome(outcome_kind, payload=parsed, reason=reason)
    raise AssertionError("rule table must end with a catch-all rule")


def extract_tx_hash(msg: str) -> str:
    for marker in TX_HASH_MARKERS:
        if marker in msg:
            return msg.split(marker, 1)[1].strip()
    return msg.strip()


def _error_has(*markers: str) -> Callable[[Any], bool]:
    return lambda body: _contains_any(_field(body, "error"), markers)


def _msg_has(*markers: str) -> Callable[[Any], bool]:
    return lambda body: _contains_any(_field(body, "msg"), markers)


def _msg_has_tx_hash(body: Any) -> bool:
    msg = _field(body, "msg")
    return _contains_any(msg, TX_HASH_MARKERS) or msg.startswith("0x")


ClaimRule = Tuple[Callable[[Any], bool], OutcomeKind, Optional[str]]

CLAIM_RULES: List[ClaimRule] = [
    (_error_has("Invalid Captcha"), OutcomeKind.RETRYABLE, INVALID_CAPTCHA),
    (_error_has("hour", "wait"), OutcomeKind.SOFT_SUCCESS, RATE_LIMITED),
    (_msg_has("exceeded the rate limit", "wait"), OutcomeKind.SOFT_SUCCESS, RATE_LIMITED),
    (_msg_has_tx_hash, OutcomeKind.SUCCESS, None),
]


def resolve_claim_response(body: Any) -> Outcome:
    """Maps a terminal faucet response body to the claim outcome.

    Bodies matching no rule are FATAL for this claim; the caller counts that as a
    failed attempt and retries the whole claim with a new captcha.
    """
    parsed = parse_body(body)
    for matches, outcome_kind, reason in CLAIM_RULES:
        if matches(parsed):
            if outcome_kind is OutcomeKind.SUCCESS:
                return Outcome(outcome_kind, payload=extract_tx_hash(_field(parsed, "msg")))
            text = _field(parsed, "error") or _field(parsed, "msg")
            return Outcome(outcome_kind, payload=text, reason=reason)
    return Outcome(OutcomeKind.FATAL, payload=parsed, reason=UNEXPECTED_RESPONSE)

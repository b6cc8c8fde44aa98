import pytest

from classifier import (
    EndpointKind,
    INVALID_CAPTCHA,
    OutcomeKind,
    RATE_LIMITED,
    UNEXPECTED_RESPONSE,
    classify_response,
    extract_tx_hash,
    parse_body,
    resolve_claim_response,
)

RETRY_STATUSES = [408, 429, 500, 502, 503, 504]


class TestFaucetTransportRules:

    @pytest.mark.parametrize("status", [200, 400, 429, 503])
    def test_rate_limit_msg_is_soft_success_for_any_status(self, status):
        outcome = classify_response(status, {"msg": "You have exceeded the rate limit"}, EndpointKind.FAUCET)
        assert outcome.kind is OutcomeKind.SOFT_SUCCESS
        assert outcome.reason == RATE_LIMITED

    @pytest.mark.parametrize("body", [
        '{"msg": "please wait a bit"}',
        '{"error": "please wait 6 hours"}',
        "Too many requests, wait and retry",
        '{"msg": "try again in 1 hour"}',
    ])
    @pytest.mark.parametrize("status", RETRY_STATUSES + [200, 400])
    def test_wait_text_is_never_retried(self, body, status):
        assert classify_response(status, body, EndpointKind.FAUCET).kind is OutcomeKind.SOFT_SUCCESS

    def test_2xx_is_success(self):
        outcome = classify_response(200, '{"msg": "Txhash: 0xabc"}', EndpointKind.FAUCET)
        assert outcome.kind is OutcomeKind.SUCCESS
        assert outcome.payload == {"msg": "Txhash: 0xabc"}

    @pytest.mark.parametrize("status", RETRY_STATUSES)
    def test_retry_status_is_retryable(self, status):
        outcome = classify_response(status, '{"error": "bad gateway"}', EndpointKind.FAUCET)
        assert outcome.kind is OutcomeKind.RETRYABLE
        assert outcome.payload == status

    def test_other_error_status_is_terminal_for_claim_tier(self):
        outcome = classify_response(400, '{"error": "Invalid Captcha"}', EndpointKind.FAUCET)
        assert outcome.kind is OutcomeKind.SUCCESS
        assert outcome.is_done


class TestGenericRules:

    @pytest.mark.parametrize("kind", [EndpointKind.SOLVER, EndpointKind.GENERIC])
    @pytest.mark.parametrize("status", RETRY_STATUSES)
    def test_retry_statuses(self, kind, status):
        assert classify_response(status, '{"error": "overloaded"}', kind).kind is OutcomeKind.RETRYABLE

    @pytest.mark.parametrize("status", [200, 201, 400, 401, 403, 404, 501])
    def test_everything_else_is_terminal(self, status):
        assert classify_response(status, "", EndpointKind.SOLVER).kind is OutcomeKind.SUCCESS

    def test_rate_limit_text_does_not_matter_off_faucet(self):
        assert classify_response(503, '{"msg": "wait"}', EndpointKind.GENERIC).kind is OutcomeKind.RETRYABLE


@pytest.mark.parametrize("status,body,kind", [
    (200, '{"msg": "Txhash: 0x1"}', EndpointKind.FAUCET),
    (429, '{"msg": "wait"}', EndpointKind.FAUCET),
    (502, "", EndpointKind.SOLVER),
    (404, "not json", EndpointKind.GENERIC),
])
def test_classification_is_idempotent(status, body, kind):
    assert classify_response(status, body, kind) == classify_response(status, body, kind)


class TestClaimResolution:

    def test_txhash_message(self):
        outcome = resolve_claim_response('{"msg": "Txhash: 0xabc123"}')
        assert outcome.kind is OutcomeKind.SUCCESS
        assert outcome.payload == "0xabc123"

    def test_hash_marker(self):
        assert resolve_claim_response({"msg": "Sent! hash: 0xdef"}).payload == "0xdef"

    def test_bare_hash_message(self):
        assert resolve_claim_response({"msg": "0xfeed"}).payload == "0xfeed"

    def test_invalid_captcha_is_retryable(self):
        outcome = resolve_claim_response('{"error": "Invalid Captcha"}')
        assert outcome.kind is OutcomeKind.RETRYABLE
        assert outcome.reason == INVALID_CAPTCHA

    def test_invalid_captcha_wins_over_other_rules(self):
        outcome = resolve_claim_response({"error": "Invalid Captcha", "msg": "Txhash: 0x1"})
        assert outcome.reason == INVALID_CAPTCHA

    @pytest.mark.parametrize("body", [
        {"error": "please wait 6 hours"},
        {"error": "one claim per hour"},
        {"msg": "exceeded the rate limit"},
        {"msg": "please wait"},
    ])
    def test_cooldown_is_soft_success(self, body):
        outcome = resolve_claim_response(body)
        assert outcome.kind is OutcomeKind.SOFT_SUCCESS
        assert outcome.reason == RATE_LIMITED

    @pytest.mark.parametrize("body", ["<html>oops</html>", "{}", '{"msg": "ok"}', '{"error": 42}', "[]"])
    def test_unexpected_body_is_fatal(self, body):
        outcome = resolve_claim_response(body)
        assert outcome.kind is OutcomeKind.FATAL
        assert outcome.reason == UNEXPECTED_RESPONSE
        assert not outcome.is_done


def test_extract_tx_hash_variants():
    assert extract_tx_hash("Txhash: 0xabc123") == "0xabc123"
    assert extract_tx_hash("hash:0x9 ") == "0x9"
    assert extract_tx_hash("0x77") == "0x77"


def test_parse_body_falls_back_to_text():
    assert parse_body('{"a": 1}') == {"a": 1}
    assert parse_body(b'{"a": 1}') == {"a": 1}
    assert parse_body("plain") == "plain"

import random
from unittest.mock import MagicMock

import requests
from urllib3.util.request import ACCEPT_ENCODING

from captcha import CaptchaSolver
from classifier import OutcomeKind
from faucet import CAPTCHA_FAILED, FaucetClaimer, faucet_headers
from proxy_pool import ProxyPool
from request_executor import RequestExecutor, RetryBudget
from tests.helpers import fake_response

FAUCET_URL = "https://faucet.example/api"
SOLVER_URL = "https://solver.example/api/v1"
ADDRESS = "0x1111111111111111111111111111111111111111"
TOKEN = "P1_" + "a" * 40


def make_claimer(faucet_responses, tokens=(TOKEN,), proxies=(), max_attempts=3):
    session = MagicMock()
    session.request.side_effect = list(faucet_responses)
    sleeps = []
    pool = ProxyPool(proxies, rng=random.Random(3))
    executor = RequestExecutor(pool, session=session, faucet_url=FAUCET_URL, solver_url=SOLVER_URL,
                               sleep=sleeps.append, rng=random.Random(3))
    solver = MagicMock(spec=CaptchaSolver)
    solver.solve.side_effect = list(tokens)
    claimer = FaucetClaimer(executor, solver, pool, RetryBudget(max_attempts, 1), sleep=sleeps.append)
    return claimer, session, solver, sleeps


def test_txhash_response_is_success_with_hash():
    claimer, session, _, _ = make_claimer([fake_response(200, {"msg": "Txhash: 0xabc123"})])
    outcome = claimer.claim_outcome(ADDRESS)
    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.payload == "0xabc123"

    call = session.request.call_args
    assert call.args == ("POST", FAUCET_URL)
    assert call.kwargs["json"] == {"address": ADDRESS}
    assert call.kwargs["headers"]["h-captcha-response"] == TOKEN
    assert call.kwargs["timeout"] == 180


def test_claim_true_on_success():
    claimer, _, _, _ = make_claimer([fake_response(200, {"msg": "Txhash: 0xabc123"})])
    assert claimer.claim(ADDRESS) is True


def test_cooldown_error_is_soft_success_without_retry():
    claimer, session, _, _ = make_claimer([fake_response(400, {"error": "please wait 6 hours"})])
    outcome = claimer.claim_outcome(ADDRESS)
    assert outcome.kind is OutcomeKind.SOFT_SUCCESS
    assert session.request.call_count == 1


def test_cooldown_claim_returns_true():
    claimer, _, _, _ = make_claimer([fake_response(400, {"error": "please wait 6 hours"})])
    assert claimer.claim(ADDRESS) is True


def test_invalid_captcha_returns_false():
    claimer, session, _, _ = make_claimer([fake_response(400, {"error": "Invalid Captcha"})])
    assert claimer.claim(ADDRESS) is False
    assert session.request.call_count == 1


def test_unexpected_body_returns_false():
    claimer, _, _, _ = make_claimer([fake_response(200, "<html>maintenance</html>")])
    assert claimer.claim_outcome(ADDRESS).kind is OutcomeKind.FATAL


def test_faucet_server_errors_exhaust_budget():
    claimer, session, _, _ = make_claimer([fake_response(503)] * 3)
    outcome = claimer.claim_outcome(ADDRESS)
    assert outcome.kind is OutcomeKind.RETRYABLE
    assert session.request.call_count == 3


def test_faucet_transport_errors_return_false():
    claimer, _, _, _ = make_claimer([requests.ConnectionError("down")] * 3)
    assert claimer.claim(ADDRESS) is False


def test_captcha_retried_three_times_with_pause():
    claimer, session, solver, sleeps = make_claimer([], tokens=(None, None, None))
    outcome = claimer.claim_outcome(ADDRESS)
    assert outcome.kind is OutcomeKind.RETRYABLE
    assert outcome.reason == CAPTCHA_FAILED
    assert solver.solve.call_count == 3
    assert sleeps == [5, 5]
    session.request.assert_not_called()


def test_captcha_succeeds_on_second_attempt():
    claimer, _, solver, sleeps = make_claimer(
        [fake_response(200, {"msg": "hash: 0x42"})], tokens=(None, TOKEN)
    )
    assert claimer.claim_outcome(ADDRESS).payload == "0x42"
    assert solver.solve.call_count == 2
    assert sleeps == [5]


def test_same_proxy_used_for_captcha_and_claim():
    claimer, session, solver, _ = make_claimer([fake_response(200, {"msg": "0xbeef"})], proxies=["9.9.9.9:99"])
    claimer.claim(ADDRESS)
    assert solver.solve.call_args.args[0] == "9.9.9.9:99"
    assert session.request.call_args.kwargs["proxies"]["https"] == "http://9.9.9.9:99"


def test_headers_only_offer_encodings_requests_can_decode():
    # urllib3 lists br/zstd here only when their decoder packages are installed
    decodable = {enc.strip() for enc in ACCEPT_ENCODING.split(",")}
    offered = {enc.strip() for enc in faucet_headers(TOKEN)["Accept-Encoding"].split(",")}
    assert offered <= {"gzip", "deflate"}
    assert offered <= decodable


def test_claim_request_sends_decodable_encodings():
    claimer, session, _, _ = make_claimer([fake_response(200, {"msg": "Txhash: 0xabc123"})])
    claimer.claim(ADDRESS)
    headers = session.request.call_args.kwargs["headers"]
    assert headers["Accept-Encoding"] == "gzip, deflate"
    assert headers["h-captcha-response"] == TOKEN


def test_rotated_proxy_is_logged():
    session = MagicMock()
    session.request.side_effect = [fake_response(503), fake_response(200, {"msg": "Txhash: 0xabc123"})]
    pool = MagicMock(spec=ProxyPool)
    pool.pick_random.side_effect = ["1.1.1.1:80", "2.2.2.2:80"]
    executor = RequestExecutor(pool, session=session, faucet_url=FAUCET_URL, solver_url=SOLVER_URL,
                               sleep=lambda s: None, rng=random.Random(1))
    solver = MagicMock(spec=CaptchaSolver)
    solver.solve.return_value = TOKEN
    claimer = FaucetClaimer(executor, solver, pool, RetryBudget(3, 1), sleep=lambda s: None)
    log = MagicMock()

    outcome = claimer.claim_outcome(ADDRESS, log)

    assert outcome.kind is OutcomeKind.SUCCESS
    assert solver.solve.call_args.args[0] == "1.1.1.1:80"
    assert session.request.call_args.kwargs["proxies"]["https"] == "http://2.2.2.2:80"
    messages = [c.args[0] for c in log.info.call_args_list]
    assert any("finished through proxy: 2.2.2.2:80" in m for m in messages)

import random

from proxy_pool import ProxyPool, as_requests_proxies, proxy_url


def test_empty_pool_always_returns_none():
    pool = ProxyPool([])
    assert len(pool) == 0
    assert all(pool.pick_random() is None for _ in range(10))


def test_pick_comes_from_pool():
    proxies = ["1.1.1.1:80", "2.2.2.2:80", "3.3.3.3:80"]
    pool = ProxyPool(proxies, rng=random.Random(7))
    picks = {pool.pick_random() for _ in range(100)}
    assert picks <= set(proxies)
    assert len(picks) == 3


def test_single_proxy_repeats():
    pool = ProxyPool(["user:pass@host:8080"])
    assert [pool.pick_random() for _ in range(3)] == ["user:pass@host:8080"] * 3


def test_pool_is_a_snapshot_of_the_input():
    proxies = ["a:1"]
    pool = ProxyPool(proxies)
    proxies.append("b:2")
    assert len(pool) == 1


def test_proxy_url_adds_scheme_only_when_missing():
    assert proxy_url("host:3128") == "http://host:3128"
    assert proxy_url("http://host:3128") == "http://host:3128"
    assert proxy_url("https://u:p@host:3128") == "https://u:p@host:3128"


def test_requests_proxies_mapping():
    assert as_requests_proxies(None) is None
    assert as_requests_proxies("host:1") == {"http": "http://host:1", "https": "http://host:1"}

# proxy_pool.py
import random
from typing import Dict, Optional, Sequence


def proxy_url(proxy: str) -> str:
    """Bare host:port entries are treated as plain HTTP proxies."""
    return proxy if proxy.startswith("http") else f"http://{proxy}"


def as_requests_proxies(proxy: Optional[str]) -> Optional[Dict[str, str]]:
    if not proxy:
        return None
    url = proxy_url(proxy)
    return {"http": url, "https": url}


class ProxyPool:
    """Flat list of proxy endpoints loaded once at start. Picks are uniform and memoryless."""

    def __init__(self, proxies: Sequence[str] = (), rng: Optional[random.Random] = None):
        self._proxies = tuple(proxies)
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._proxies)

    def pick_random(self) -> Optional[str]:
        if not self._proxies:
            return None
        return self._rng.choice(self._proxies)

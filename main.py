# main.py
import asyncio
import random
import sys
from typing import Any, Callable, Dict, List, Optional

import config
from backoff import capped_wait
from captcha import CaptchaSolver
from contracts import run_contract_operations, run_erc20_operations, run_nft_operations
from faucet import FaucetClaimer
from logger import Log, get_logger, wallet_logger
from proxy_pool import ProxyPool, proxy_url
from request_executor import RequestExecutor, RetryBudget
from transfer import transfer_to_self
from utils import FatalConfigError, address_from_key, load_private_keys, load_proxies, load_settings

logger = get_logger("Main", config.LOG_LEVEL)

BANNER = "\n=== Cytonic Ethereum Testnet Automation Tool ===\n"


def build_faucet_claimer(settings: Dict[str, Any], proxy_pool: ProxyPool) -> FaucetClaimer:
    budget = RetryBudget.from_settings(settings)
    executor = RequestExecutor(proxy_pool)
    api_key = settings.get("scrappey_api_key") or config.SCRAPPEY_API_KEY
    if not api_key:
        logger.warning("No Scrappey API key configured, captcha solving will fail")
    solver = CaptchaSolver(executor, api_key, budget)
    return FaucetClaimer(executor, solver, proxy_pool, budget)


async def retry_operation(name: str, operation: Callable[[], bool], settings: Dict[str, Any], log: Log) -> bool:
    """Runs a blocking operation until it returns True, at most max_retries times."""
    max_retries = int(settings.get("max_retries", config.MAX_RETRIES))
    base_wait = float(settings.get("base_wait_time", config.BASE_WAIT_TIME))
    loop = asyncio.get_running_loop()

    for attempt in range(max_retries):
        log.info(f"{name}... (Attempt {attempt + 1}/{max_retries})")
        try:
            success = await loop.run_in_executor(None, operation)
        except Exception as e:
            log.error(f"{name} failed: {e}")
            success = False
        if success:
            return True
        if attempt + 1 < max_retries:
            wait_time = capped_wait(attempt + 1, base_wait)
            log.warning(f"Waiting {wait_time} seconds before retry...")
            await asyncio.sleep(wait_time)

    log.error(f"{name} gave up after {max_retries} attempts")
    return False


async def run_optional_step(name: str, operation: Callable[[], Any], log: Log) -> None:
    """Contract-style steps: errors are logged and the wallet moves on."""
    log.info(f"=== Running {name} ===")
    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(None, operation)
    except Exception as e:
        log.error(f"Error in {name}: {e}")


async def process_wallet(private_key: str, wallet_num: int, settings: Dict[str, Any],
                         claimer: Optional[FaucetClaimer], proxy_pool: ProxyPool) -> None:
    log = wallet_logger(logger, wallet_num)
    address = address_from_key(private_key)
    if not address:
        log.error("Invalid private key, skipping wallet")
        return

    proxy = proxy_pool.pick_random()
    rpc_proxy = proxy_url(proxy) if proxy else None
    if proxy:
        log.info(f"Using proxy: {proxy}")

    if settings.get("enable_faucet") and claimer is not None:
        await retry_operation("Claiming tokens from faucet", lambda: claimer.claim(address, log), settings, log)

    if settings.get("enable_transfer"):
        await retry_operation(
            "Transferring tokens", lambda: transfer_to_self(private_key, settings, rpc_proxy, log), settings, log
        )

    if settings.get("enable_contract_deploy"):
        await run_optional_step(
            "Contract Operations", lambda: run_contract_operations(private_key, settings, rpc_proxy, log), log
        )

    if (settings.get("erc20") or {}).get("enable_erc20"):
        await run_optional_step(
            "ERC20 Token Operations", lambda: run_erc20_operations(private_key, settings, rpc_proxy, log), log
        )

    if (settings.get("nft") or {}).get("enable_nft"):
        await run_optional_step(
            "NFT Operations", lambda: run_nft_operations(private_key, settings, rpc_proxy, log), log
        )


async def run_cycle(private_keys: List[str], settings: Dict[str, Any], proxies: List[str]) -> None:
    """One pass over every wallet, strictly one wallet at a time."""
    proxy_pool = ProxyPool(proxies)
    claimer = build_faucet_claimer(settings, proxy_pool) if settings.get("enable_faucet") else None

    logger.info(f"Processing {len(private_keys)} wallets with {len(proxy_pool)} proxies...")
    for i, private_key in enumerate(private_keys):
        wallet_num = i + 1
        logger.info(f"=== Processing Wallet {wallet_num}/{len(private_keys)} ===")
        await process_wallet(private_key, wallet_num, settings, claimer, proxy_pool)

        if i < len(private_keys) - 1:
            wait_time = random.randint(*config.SLEEP_BETWEEN_WALLETS_SEC)
            wallet_logger(logger, wallet_num).info(f"Waiting {wait_time} seconds before next wallet...")
            await asyncio.sleep(wait_time)


async def countdown(hours: float) -> None:
    remaining = int(hours * 3600)
    while remaining > 0:
        h, rest = divmod(remaining, 3600)
        m, s = divmod(rest, 60)
        print(f"\rNext cycle in: {h:02d}:{m:02d}:{s:02d}", end="", flush=True)
        await asyncio.sleep(1)
        remaining -= 1
    print("\r", end="")
    logger.info("Countdown completed!")


async def main_loop() -> None:
    while True:
        print(BANNER)
        settings = load_settings()
        logger.info("Configuration loaded")
        proxies = load_proxies()
        private_keys = load_private_keys()

        await run_cycle(private_keys, settings, proxies)

        logger.info(f"Wallet processing completed! Starting {config.CYCLE_HOURS}-hour countdown...")
        await countdown(config.CYCLE_HOURS)


def run() -> None:
    try:
        asyncio.run(main_loop())
    except KeyboardInterrupt:
        logger.info("Exiting...")
    except FatalConfigError as e:
        logger.critical(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.critical(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()

# chain.py
from typing import Any, Callable, Dict, Optional, Tuple

from web3 import Web3

import config
from logger import Log, get_logger
from utils import get_w3_with_retry, shorten_address

logger = get_logger("Chain", config.LOG_LEVEL)

TxBuilder = Callable[[Web3, int, Dict[str, int], int], Dict[str, Any]]


def connect(proxy: Optional[str] = None) -> Optional[Web3]:
    """First reachable RPC from config.RPC_LIST on the expected chain."""
    for rpc in config.RPC_LIST:
        w3 = get_w3_with_retry(rpc, proxy)
        if w3 is not None:
            return w3
    logger.error("No RPC endpoint reachable")
    return None


def compute_fees(w3: Web3, multiplier: float = config.GAS_PRICE_MULTIPLIER) -> Dict[str, int]:
    """EIP-1559 fee fields: maxPriorityFeePerGas and maxFeePerGas, the latter scaled by multiplier."""
    try:
        priority = w3.eth.max_priority_fee
        if priority is None:
            raise ValueError("max_priority_fee not available")
    except Exception:
        try:
            priority = int(w3.eth.gas_price * 0.1)
        except Exception:
            priority = 1_000_000_000  # 1 gwei

    try:
        pending = w3.eth.get_block("pending")
        base_fee = pending.get("baseFeePerGas", None)
        if base_fee is None:
            base_fee = w3.eth.gas_price
    except Exception:
        base_fee = w3.eth.gas_price

    max_fee = int((int(base_fee) * 2 + int(priority)) * multiplier)
    return {"maxPriorityFeePerGas": int(priority), "maxFeePerGas": max_fee}


def send_transaction(
    wallet: Any,
    txn_builder: TxBuilder,
    gas_multiplier: float = config.GAS_PRICE_MULTIPLIER,
    proxy: Optional[str] = None,
    timeout: int = config.TX_TIMEOUT,
    log: Optional[Log] = None,
) -> Tuple[bool, Optional[str], Optional[Any]]:
    """Builds, signs and sends a transaction, then waits for its receipt.

    Each RPC gets config.RPC_TRY attempts before moving to the next one.
    Returns (success, tx_hash, receipt).
    """
    log = log or logger
    wallet_short = shorten_address(wallet.address)
    for rpc in config.RPC_LIST:
        w3 = get_w3_with_retry(rpc, proxy)
        if w3 is None:
            log.debug(f"RPC {rpc} unreachable, skipping")
            continue
        for attempt in range(1, config.RPC_TRY + 1):
            try:
                nonce = w3.eth.get_transaction_count(wallet.address)
                fee_params = compute_fees(w3, gas_multiplier)

                temp_txn = txn_builder(w3, nonce, fee_params, 1_000_000)
                try:
                    gas_limit = int(w3.eth.estimate_gas(temp_txn) * 1.2)
                except Exception as e:
                    log.warning(f"Gas estimation failed (attempt {attempt}) on {rpc}: {e}")
                    if "execution reverted" in str(e).lower():
                        log.error(f"Contract execution reverted during gas estimate: {e}")
                        return False, None, None
                    continue

                txn = txn_builder(w3, nonce, fee_params, gas_limit)
                txn["chainId"] = config.CHAIN_ID
                txn.pop("gasPrice", None)
                txn.update(fee_params)

                signed_txn = w3.eth.account.sign_transaction(txn, wallet.key)
                tx_hash = w3.eth.send_raw_transaction(signed_txn.raw_transaction)
                log.info(f"Transaction sent ({wallet_short}), tx: {tx_hash.hex()}")

                receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
                if receipt.status == 1:
                    log.info(f"Transaction confirmed: {config.EXPLORER_URL}/tx/{tx_hash.hex()}")
                    return True, tx_hash.hex(), receipt
                log.warning(f"Transaction reverted ({wallet_short}), tx: {tx_hash.hex()}")
                return False, tx_hash.hex(), receipt
            except Exception as e:
                log.warning(f"Error on RPC {rpc} attempt {attempt}/{config.RPC_TRY}: {e}")

        log.error(f"RPC {rpc} exhausted attempts, switching to next RPC if available.")
    return False, None, None

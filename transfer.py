# transfer.py
from typing import Any, Dict, Optional

from eth_account import Account
from web3 import Web3

import config
from chain import compute_fees, connect, send_transaction
from logger import Log, get_logger

logger = get_logger("Transfer", config.LOG_LEVEL)

# Gas for a plain value transfer
TRANSFER_GAS = 21_000


def transfer_amount(balance: int, percentage: float, reserved_fee: int) -> int:
    """Share of the balance to send, leaving room for the fee. Zero when nothing can be sent."""
    amount = int(balance * percentage / 100)
    if amount + reserved_fee > balance:
        amount = balance - reserved_fee
    return max(0, amount)


def transfer_to_self(private_key: str, settings: Dict[str, Any], proxy: Optional[str] = None,
                     log: Optional[Log] = None) -> bool:
    """Sends transfer_amount_percentage% of the native balance back to the same address."""
    log = log or logger
    wallet = Account.from_key(private_key)

    w3 = connect(proxy)
    if w3 is None:
        return False

    balance = w3.eth.get_balance(wallet.address)
    log.info(f"Balance: {Web3.from_wei(balance, 'ether')}")
    if balance == 0:
        log.warning("Zero balance, nothing to transfer")
        return False

    multiplier = float(settings.get("gas_price_multiplier", config.GAS_PRICE_MULTIPLIER))
    # Headroom for the worst-case fee the transaction can be charged
    reserved_fee = compute_fees(w3, multiplier)["maxFeePerGas"] * int(TRANSFER_GAS * 1.2)
    percentage = float(settings.get("transfer_amount_percentage", config.TRANSFER_AMOUNT_PERCENTAGE))
    amount = transfer_amount(balance, percentage, reserved_fee)
    if amount == 0:
        log.warning("Balance too low to cover transfer fees")
        return False

    log.info(f"Transferring {Web3.from_wei(amount, 'ether')} to self")

    def build_transfer_tx(w3: Web3, nonce: int, fee_params: Dict[str, int], gas_limit: int) -> Dict[str, Any]:
        return {
            "from": wallet.address,
            "to": wallet.address,
            "value": amount,
            "nonce": nonce,
            "gas": gas_limit,
        }

    success, tx_hash, _ = send_transaction(wallet, build_transfer_tx, multiplier, proxy, log=log)
    if success:
        log.info(f"Transfer completed, tx: {tx_hash}")
    else:
        log.warning("Transfer failed")
    return success

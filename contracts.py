# contracts.py
"""
Contract, ERC20 and NFT steps run for every wallet.

Contracts are not compiled here: each step deploys a pre-compiled artifact
(``artifacts/<Name>.json`` holding ``abi`` and ``bytecode``) and then calls it.
Failures raise, main.py logs them and moves on to the next step.
"""
import random
from typing import Any, Dict, Optional

from eth_account import Account
from web3 import Web3

import config
from chain import connect, send_transaction
from logger import Log, get_logger
from utils import load_artifact

logger = get_logger("Contracts", config.LOG_LEVEL)

CONTRACT_ARTIFACT = "SimpleStorage"
ERC20_ARTIFACT = "TestToken"
NFT_ARTIFACT = "TestNFT"


class ContractStepError(Exception):
    pass


def deploy_artifact(wallet: Any, artifact: Dict[str, Any], *constructor_args: Any,
                    gas_multiplier: float = config.GAS_PRICE_MULTIPLIER, proxy: Optional[str] = None,
                    log: Optional[Log] = None) -> str:
    """Deploys the artifact and returns the new contract address."""
    log = log or logger

    def build_deploy_tx(w3: Web3, nonce: int, fee_params: Dict[str, int], gas_limit: int) -> Dict[str, Any]:
        factory = w3.eth.contract(abi=artifact["abi"], bytecode=artifact["bytecode"])
        return factory.constructor(*constructor_args).build_transaction({
            "from": wallet.address,
            "nonce": nonce,
            "gas": gas_limit,
            **fee_params,
        })

    success, tx_hash, receipt = send_transaction(wallet, build_deploy_tx, gas_multiplier, proxy, log=log)
    if not success or receipt is None or not receipt.contractAddress:
        raise ContractStepError(f"Deployment failed (tx: {tx_hash})")
    log.info(f"Contract deployed at {receipt.contractAddress}")
    return receipt.contractAddress


def call_contract(wallet: Any, address: str, abi: Any, function: str, *args: Any,
                  gas_multiplier: float = config.GAS_PRICE_MULTIPLIER, proxy: Optional[str] = None,
                  log: Optional[Log] = None) -> str:
    """Sends a state-changing call and returns its tx hash."""
    log = log or logger

    def build_call_tx(w3: Web3, nonce: int, fee_params: Dict[str, int], gas_limit: int) -> Dict[str, Any]:
        contract = w3.eth.contract(address=address, abi=abi)
        return getattr(contract.functions, function)(*args).build_transaction({
            "from": wallet.address,
            "nonce": nonce,
            "gas": gas_limit,
            **fee_params,
        })

    success, tx_hash, _ = send_transaction(wallet, build_call_tx, gas_multiplier, proxy, log=log)
    if not success:
        raise ContractStepError(f"{function}() failed (tx: {tx_hash})")
    log.info(f"{function}() confirmed, tx: {tx_hash}")
    return tx_hash


def read_contract(address: str, abi: Any, function: str, *args: Any, proxy: Optional[str] = None) -> Any:
    """Calls a view function and returns its result."""
    w3 = connect(proxy)
    if w3 is None:
        raise ContractStepError(f"No RPC available to read {function}()")
    contract = w3.eth.contract(address=address, abi=abi)
    return getattr(contract.functions, function)(*args).call()


def run_contract_operations(private_key: str, settings: Dict[str, Any], proxy: Optional[str] = None,
                            log: Optional[Log] = None) -> str:
    """Deploys the storage contract, stores a value and reads it back."""
    log = log or logger
    wallet = Account.from_key(private_key)
    multiplier = float(settings.get("gas_price_multiplier", config.GAS_PRICE_MULTIPLIER))

    artifact = load_artifact(CONTRACT_ARTIFACT)
    address = deploy_artifact(wallet, artifact, gas_multiplier=multiplier, proxy=proxy, log=log)

    value = random.randint(1, 1_000_000)
    call_contract(wallet, address, artifact["abi"], "set", value,
                  gas_multiplier=multiplier, proxy=proxy, log=log)
    stored = read_contract(address, artifact["abi"], "get", proxy=proxy)
    if stored != value:
        raise ContractStepError(f"Stored value mismatch at {address}: expected {value}, got {stored}")
    log.info(f"Stored value {stored} verified")
    return address


def run_erc20_operations(private_key: str, settings: Dict[str, Any], proxy: Optional[str] = None,
                         log: Optional[Log] = None) -> str:
    """Deploys an ERC20 token, mints mint_amount and burns burn_amount whole tokens."""
    log = log or logger
    wallet = Account.from_key(private_key)
    multiplier = float(settings.get("gas_price_multiplier", config.GAS_PRICE_MULTIPLIER))
    erc20 = settings.get("erc20") or {}

    artifact = load_artifact(ERC20_ARTIFACT)
    total_supply = Web3.to_wei(erc20.get("total_supply", 0), "ether")
    address = deploy_artifact(
        wallet, artifact, erc20.get("name"), erc20.get("symbol"), total_supply,
        gas_multiplier=multiplier, proxy=proxy, log=log,
    )
    mint_amount = Web3.to_wei(erc20.get("mint_amount", 0), "ether")
    if mint_amount > 0:
        call_contract(wallet, address, artifact["abi"], "mint", wallet.address, mint_amount,
                      gas_multiplier=multiplier, proxy=proxy, log=log)
    burn_amount = Web3.to_wei(erc20.get("burn_amount", 0), "ether")
    if burn_amount > 0:
        call_contract(wallet, address, artifact["abi"], "burn", burn_amount,
                      gas_multiplier=multiplier, proxy=proxy, log=log)

    balance = read_contract(address, artifact["abi"], "balanceOf", wallet.address, proxy=proxy)
    log.info(f"Token balance: {Web3.from_wei(balance, 'ether')} {erc20.get('symbol')}")
    return address


def run_nft_operations(private_key: str, settings: Dict[str, Any], proxy: Optional[str] = None,
                       log: Optional[Log] = None) -> str:
    """Deploys an NFT collection, mints mint_count tokens and optionally burns the last one."""
    log = log or logger
    wallet = Account.from_key(private_key)
    multiplier = float(settings.get("gas_price_multiplier", config.GAS_PRICE_MULTIPLIER))
    nft = settings.get("nft") or {}

    artifact = load_artifact(NFT_ARTIFACT)
    address = deploy_artifact(
        wallet, artifact, nft.get("name"), nft.get("symbol"),
        gas_multiplier=multiplier, proxy=proxy, log=log,
    )
    mint_count = int(nft.get("mint_count", 1))
    for i in range(mint_count):
        log.info(f"Minting NFT {i + 1}/{mint_count}")
        call_contract(wallet, address, artifact["abi"], "mint", wallet.address,
                      gas_multiplier=multiplier, proxy=proxy, log=log)

    if nft.get("burn") and mint_count > 0:
        # Token ids are sequential from 1, so the supply is the last minted id
        token_id = read_contract(address, artifact["abi"], "totalSupply", proxy=proxy)
        log.info(f"Burning NFT #{token_id}")
        call_contract(wallet, address, artifact["abi"], "burn", token_id,
                      gas_multiplier=multiplier, proxy=proxy, log=log)
    return address

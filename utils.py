# utils.py
import copy
import json
import os
from typing import List, Dict, Any, Optional

import pandas as pd
from eth_account import Account
from requests import Session
from web3 import Web3, HTTPProvider

import config
from logger import get_logger

logger = get_logger("Utils", config.LOG_LEVEL)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "enable_faucet": True,
    "enable_transfer": True,
    "enable_contract_deploy": True,
    "erc20": {
        "enable_erc20": True,
        "name": "Cytonic Test Token",
        "symbol": "CTT",
        "total_supply": 1_000_000,
        "mint_amount": 1_000,
        "burn_amount": 100,
    },
    "nft": {
        "enable_nft": True,
        "name": "Cytonic Test NFT",
        "symbol": "CNFT",
        "mint_count": 1,
        "burn": True,
    },
    "gas_price_multiplier": config.GAS_PRICE_MULTIPLIER,
    "max_retries": config.MAX_RETRIES,
    "base_wait_time": config.BASE_WAIT_TIME,
    "transfer_amount_percentage": config.TRANSFER_AMOUNT_PERCENTAGE,
    "scrappey_api_key": config.SCRAPPEY_API_KEY,
}


class FatalConfigError(Exception):
    """Raised when a required input is missing; terminates the run."""


def shorten_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


def load_lines(path: str) -> List[str]:
    """Reads a newline-delimited text file, skipping blank lines."""
    with open(path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def load_private_keys(path: str = config.PRIVATE_KEYS_PATH) -> List[str]:
    """Loads private keys from a text file (one per line) or an Excel sheet with a private_key column.
    Keys are normalized to carry the 0x prefix.
    """
    if not os.path.exists(path):
        raise FatalConfigError(f"Private key file not found: {path}")

    if path.lower().endswith((".xlsx", ".xls")):
        df = pd.read_excel(path, engine="openpyxl")
        df.columns = df.columns.str.lower().str.strip()
        if "private_key" not in df.columns:
            raise FatalConfigError(f"{path} must contain a private_key column")
        raw_keys = [str(pk).strip() for pk in df["private_key"].dropna()]
    else:
        raw_keys = load_lines(path)

    keys = []
    for pk in raw_keys:
        if not pk:
            continue
        keys.append(pk if pk.startswith("0x") else "0x" + pk)

    logger.info(f"Found {len(keys)} private keys in {path}")
    return keys


def load_proxies(path: str = config.PROXY_PATH) -> List[str]:
    try:
        proxies = load_lines(path)
    except FileNotFoundError:
        logger.warning(f"{path} not found, requests will go out without a proxy")
        return []
    logger.info(f"Loaded {len(proxies)} proxies")
    return proxies


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(merged.get(key), dict):
            if isinstance(value, dict):
                merged[key] = _merge(merged[key], value)
            else:
                logger.warning(f"Ignoring non-object value for \"{key}\", keeping defaults")
        else:
            merged[key] = value
    return merged


def load_settings(path: str = config.CONFIG_PATH) -> Dict[str, Any]:
    """Loads config.json merged over DEFAULT_SETTINGS. A missing or broken file yields the defaults."""
    if not os.path.exists(path):
        logger.warning(f"No {path} found, using defaults")
        return copy.deepcopy(DEFAULT_SETTINGS)
    try:
        with open(path, "r", encoding="utf-8") as f:
            overrides = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading {path}: {e}, using defaults")
        return copy.deepcopy(DEFAULT_SETTINGS)
    if not isinstance(overrides, dict):
        logger.error(f"{path} must hold a JSON object, using defaults")
        return copy.deepcopy(DEFAULT_SETTINGS)

    logger.info(f"Found {path}")
    return _merge(DEFAULT_SETTINGS, overrides)


def load_artifact(name: str, artifacts_dir: str = config.ARTIFACTS_DIR) -> Dict[str, Any]:
    """Loads a pre-compiled contract artifact: JSON with abi and bytecode."""
    path = os.path.join(artifacts_dir, f"{name}.json")
    with open(path) as f:
        artifact = json.load(f)
    if "abi" not in artifact or "bytecode" not in artifact:
        raise ValueError(f"Artifact {path} must contain abi and bytecode")
    return artifact


def address_from_key(private_key: str) -> Optional[str]:
    try:
        return Account.from_key(private_key).address
    except Exception as e:
        logger.error(f"Error generating address: {e}")
        return None


def get_w3(rpc_url: str, proxy: Optional[str] = None) -> Web3:
    """Returns Web3 connection to RPC (with optional HTTP proxy session)."""
    if proxy:
        session = Session()
        session.proxies = {'http': proxy, 'https': proxy}
        provider = HTTPProvider(rpc_url, request_kwargs={'timeout': config.DEFAULT_TIMEOUT}, session=session)
    else:
        provider = HTTPProvider(rpc_url, request_kwargs={'timeout': config.DEFAULT_TIMEOUT})
    return Web3(provider)


def get_w3_with_retry(rpc_url: str, proxy: Optional[str] = None) -> Optional[Web3]:
    """Returns Web3 connection with retries and verifies chain_id matches config.CHAIN_ID."""
    for attempt in range(1, config.RPC_TRY + 1):
        try:
            w3 = get_w3(rpc_url, proxy)
            chain_id = w3.eth.chain_id
            if chain_id == config.CHAIN_ID:
                return w3
            logger.warning(f"{rpc_url}: unexpected chain_id {chain_id} (expected {config.CHAIN_ID})")
            return None
        except Exception as e:
            logger.warning(f"Attempt {attempt}/{config.RPC_TRY} failed for {rpc_url}: {e}")
    logger.error(f"All attempts failed for {rpc_url}")
    return None

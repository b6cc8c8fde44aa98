# config.py
# Static configuration. Runtime options live in config.json (see utils.load_settings)
import os

# Cytonic EVM testnet
RPC_LIST = [
    "https://rpc.evm.testnet.cytonic.com",
]
CHAIN_ID = 52226
EXPLORER_URL = "https://explorer.evm.testnet.cytonic.com"

# Faucet endpoint and the page its hCaptcha lives on
FAUCET_URL = "https://faucet.evm.testnet.cytonic.com/api/faucet"
FAUCET_HOST = "faucet.evm.testnet.cytonic.com"
FAUCET_ORIGIN = "https://www.cytonic.com"
FAUCET_REFERER = "https://www.cytonic.com/"
HCAPTCHA_SITEKEY = "e7ee4ba6-2a9a-4d0e-9c0e-2a6e1c1b1a52"

# Captcha solving service
SCRAPPEY_URL = "https://publisher.scrappey.com/api/v1"
SCRAPPEY_API_KEY = ""  # can be overridden by scrappey_api_key in config.json

# Request timeouts in seconds
DEFAULT_TIMEOUT = 30
FAUCET_TIMEOUT = 180
CAPTCHA_TIMEOUT = 120

# Retry defaults (max_retries / base_wait_time in config.json override these)
MAX_RETRIES = 5
BASE_WAIT_TIME = 10
MAX_WAIT_TIME = 300
RETRY_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

CAPTCHA_ATTEMPTS = 3
CAPTCHA_RETRY_DELAY_SEC = 5

# Number of RPC retry attempts (per RPC entry)
RPC_TRY = 3

# Gas price multiplier for safety (applied to maxFeePerGas)
GAS_PRICE_MULTIPLIER = 1.1

# Transaction timeout in seconds
TX_TIMEOUT = 120

# Percentage of native balance sent back to self
TRANSFER_AMOUNT_PERCENTAGE = 10

# Random pause between wallets (seconds, inclusive)
SLEEP_BETWEEN_WALLETS_SEC = (5, 15)

# Pause between full cycles over the wallet list
CYCLE_HOURS = 8

# Input files
CONFIG_PATH = "config.json"
PRIVATE_KEYS_PATH = "pk.txt"
PROXY_PATH = "proxy.txt"
# Pre-compiled contract artifacts shipped beside this file
ARTIFACTS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "artifacts")

# Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
LOG_LEVEL = "INFO"

# Log file path
LOG_FILE = "automation_log.txt"

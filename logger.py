# logger.py
import logging
from typing import Optional, Union
import colorlog
import config

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def get_logger(name: str, level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Returns a named logger writing colored lines to the console and plain lines to the log file.
    Handlers are attached once per name, repeated calls return the configured logger.
    """
    logger = colorlog.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    console_handler = colorlog.StreamHandler()
    console_handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s" + LOG_FORMAT,
        datefmt=DATE_FORMAT,
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'bold_red',
        }
    ))
    logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_file or config.LOG_FILE)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


class WalletAdapter(logging.LoggerAdapter):
    """Prefixes every message with the wallet number being processed."""

    def process(self, msg, kwargs):
        wallet_num = self.extra.get("wallet_num")
        if wallet_num is None:
            return msg, kwargs
        return f"[Wallet {wallet_num}] {msg}", kwargs


def wallet_logger(logger: logging.Logger, wallet_num: Optional[int] = None) -> logging.LoggerAdapter:
    return WalletAdapter(logger, {"wallet_num": wallet_num})


Log = Union[logging.Logger, logging.LoggerAdapter]

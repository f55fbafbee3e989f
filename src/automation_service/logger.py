import logging
import os
import sys
from contextlib import asynccontextmanager

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

NOISY_LOGGERS = ['web3', 'web3.providers', 'web3.RequestManager', 'aiohttp', 'apscheduler', 'urllib3']


def configure_logging():
    """Configure root logging from LOG_LEVEL and quiet third-party loggers"""
    logging.basicConfig(
        level=getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


@asynccontextmanager
async def wallet_logger_context(wallet_id: str):
    """Create a logger context with the wallet id in every line"""

    logger = logging.getLogger(f"wallet.{wallet_id}")

    # Clear any existing handlers to prevent duplicates
    logger.handlers.clear()

    logger.setLevel(logging.getLogger().getEffectiveLevel())
    logger.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        f'[%(asctime)s] [WALLET:{wallet_id}] [%(levelname)s] %(message)s',
        datefmt=LOG_DATEFMT
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    try:
        yield logger
    finally:
        logger.removeHandler(handler)

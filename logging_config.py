"""
Console logging for the quote scanner.

Usage:
    import logging_config
    logging_config.setup()            # INFO, compact format
    logging_config.setup_debug()      # per-quote lines and web3 requests
    logging_config.set_silent(True)   # results and warnings only
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Third-party loggers that log every RPC request at INFO/DEBUG
NOISY_LOGGERS = ("web3", "urllib3", "asyncio")

APP_LOGGERS = ("__main__", "dex")


def setup(level=logging.INFO, stream=None):
    """
    Install a single compact console handler on the root logger.

    Calling it again replaces the handler, so the CLI can switch levels
    without duplicating output. RPC client chatter stays at WARNING.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name in APP_LOGGERS:
        logging.getLogger(name).setLevel(level)


def setup_debug(stream=None):
    """Per-quote DEBUG lines plus web3 request logs."""
    setup(level=logging.DEBUG, stream=stream)
    logging.getLogger("web3").setLevel(logging.INFO)


def set_silent(silent: bool = True):
    """
    Hide per-pair and per-quote chatter from the scanner.

    Only the `dex` logger is affected; results are identical either way.
    """
    logging.getLogger("dex").setLevel(logging.WARNING if silent else logging.NOTSET)

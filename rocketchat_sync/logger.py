import logging
import sys
from typing import Any

"""
Provide an extensible logging method that protects auth tokens and passwords.

The handler scans the args of each log call for dicts (and lists and tuples of them),
and replaces password or authToken keys with ***.

Log calls may pass extra values print-style:
    logger.debug("Request details: ", params)
They are masked and appended to the message instead of breaking %-formatting.

Set the debug flag in config to get DEBUG output.
There is also a dryrun flag in config that you can set to True to prevent changes from being made.
"""

__all__ = ['debug', 'info', 'warning', 'error', 'logger', 'mask_for_log', 'safe_format']

secure_dict_keys = ['password', 'authToken', 'X-Auth-Token', 'db_password']


def mask_for_log(obj: Any) -> Any:
    """
    Mask sensitive information in dictionaries.
    For other types, return the object as is.
    """
    if isinstance(obj, dict):
        return {k: '***' if k in secure_dict_keys else mask_for_log(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [mask_for_log(item) for item in obj]
    elif isinstance(obj, tuple):
        return tuple(mask_for_log(item) for item in obj)
    return obj


def safe_format(msg: Any, *args: Any) -> str:
    masked_args = [mask_for_log(arg) for arg in args]
    msg = mask_for_log(msg)
    if not masked_args:
        return str(msg)
    try:
        return str(msg) % tuple(masked_args)
    except (TypeError, ValueError, KeyError):
        # print-style call. glue the args on the end.
        return f"{msg} {' '.join(map(str, masked_args))}".strip()


class SafeFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        if record.args or not isinstance(record.msg, str):
            args = record.args if isinstance(record.args, tuple) else (record.args,)
            record.msg = safe_format(record.msg, *args)
            record.args = ()
        return super().format(record)


def setup_logging(level=logging.INFO):
    logger = logging.getLogger('rocketchat_sync')
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(SafeFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        logger.addHandler(handler)

    return logger


# Create logger instance
logger = setup_logging()

# Create convenience methods
debug = logger.debug
info = logger.info
warning = logger.warning
error = logger.error

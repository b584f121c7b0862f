import logging
import sys

from storefront.config import settings


def get_logger(name: str, tag: str) -> logging.Logger:
    """
    Return the named logger, attaching a single stdout handler on first use.
    Messages are prefixed with ``[TAG]`` so the cart, checkout and order flows
    can be told apart in a mixed console.
    """
    log = logging.getLogger(name)
    log.setLevel(settings.LOG_LEVEL.upper())
    if not log.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(f"[{tag}] %(message)s"))
        log.addHandler(h)
    return log

"""Logging setup with a custom TRACE level below DEBUG."""

import logging
from typing import Tuple

TRACE = 5
logging.TRACE = TRACE
logging.addLevelName(TRACE, "TRACE")


def trace_method(self, msg, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, msg, args, **kwargs)


logging.Logger.trace = trace_method

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)-8s - %(message)s'

# (root, http client, connectors) for the pseudo-levels
_MODE_LEVELS = {
    "VERBOSE": (logging.DEBUG, logging.DEBUG, TRACE),
    "TRACE": (TRACE, TRACE, TRACE),
}
_HTTP_LOGGERS = ("httpcore", "httpx")


def resolve_levels(log_level_str: str) -> Tuple[int, int, int]:
    """Root, HTTP client and connector levels for a LOG_LEVEL value; unknown names fall back to INFO."""
    name = log_level_str.strip().upper()
    if name in _MODE_LEVELS:
        return _MODE_LEVELS[name]
    root_level = logging.getLevelName(name)
    if not isinstance(root_level, int):
        root_level = logging.INFO
    return root_level, logging.WARNING, logging.DEBUG


def configure_logging(log_level_str: str) -> None:
    """Configure the root logger once. Later calls are no-ops."""
    root = logging.getLogger()
    if root.hasHandlers():
        return

    root_level, http_level, connectors_level = resolve_levels(log_level_str)
    logging.basicConfig(level=root_level, format=LOG_FORMAT)
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
    logging.getLogger("rm_sync.connectors").setLevel(connectors_level)

    if log_level_str.strip().upper() == "VERBOSE":
        root.info("VERBOSE mode enabled: HTTP details and connector traces active")
    root.debug(f"Logging configured at {logging.getLevelName(root_level)}")

"""Logging setup: custom TRACE level and per-library log levels."""

import logging

TRACE = 5


def _trace(self, msg, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, msg, args, **kwargs)


def install_trace_level() -> None:
    """Register the TRACE level and add ``Logger.trace`` for all loggers."""
    logging.TRACE = TRACE
    logging.addLevelName(TRACE, "TRACE")
    logging.Logger.trace = _trace


def configure_logging(log_level_str: str) -> None:
    """Configure the root logger once, honoring TRACE and VERBOSE modes."""
    log_level_str = log_level_str.upper()
    if logging.getLogger().hasHandlers():
        return

    if log_level_str == "TRACE":
        root_level = TRACE
    elif log_level_str == "VERBOSE":
        root_level = logging.DEBUG
    else:
        root_level = getattr(logging, log_level_str, logging.INFO)

    logging.basicConfig(
        level=root_level,
        format='%(asctime)s - %(name)s - %(levelname)-8s - %(message)s'
    )
    root = logging.getLogger()

    if log_level_str == "VERBOSE":
        http_level = logging.DEBUG
        connectors_level = TRACE
        root.info("VERBOSE mode enabled: HTTP details and connector traces active for debugging.")
    elif log_level_str == "TRACE":
        http_level = TRACE
        connectors_level = TRACE
    else:
        http_level = logging.WARNING
        connectors_level = logging.DEBUG if root_level <= logging.DEBUG else root_level

    logging.getLogger("httpcore").setLevel(http_level)
    logging.getLogger("httpx").setLevel(http_level)
    logging.getLogger("timetracker.connectors").setLevel(connectors_level)

    if log_level_str == "TRACE":
        root.trace("Trace logging enabled at startup (verbose details).")
    else:
        root.debug("Debug logging enabled at startup.")


install_trace_level()

"""Logging helpers for the gateway harness."""

from __future__ import annotations

import logging

LOGGER_NAME = "gateway_e2e"


def setup_logging(level: str = "INFO") -> None:
    """Set the verbosity of the harness loggers.

    Handlers and formatting are left to pytest's log capture (``log_cli``);
    only the level of the ``gateway_e2e`` hierarchy is adjusted here.
    """
    logging.getLogger(LOGGER_NAME).setLevel(
        getattr(logging, level.upper(), logging.INFO)
    )

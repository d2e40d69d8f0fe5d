# -*- coding: utf-8 -*-
"""
Loguru sink management for scripts and the command line tool.

The library itself only ever writes through `loguru.logger`; nothing is
emitted until a sink is installed with `start_client_log`.
"""

import os
import pathlib
import sys
import traceback

from loguru import logger

from .defaults import DEFAULT_LOGLEVEL, SINGLE_LINE_ERR_LOG


def format_error_response():
    err_str = traceback.format_exc()
    if SINGLE_LINE_ERR_LOG:
        return "\t".join(line.strip() for line in err_str.splitlines())
    return err_str


def start_client_log(
    log_to_file=True,
    log_to_stdout=False,
    log_path=None,
    clear_prev=True,
    log_level=DEFAULT_LOGLEVEL,
):
    """Replace all loguru sinks with a log file and/or stderr.

    Parameters
    ----------
    log_to_file : bool
        Write to `log_path`, default `~/.vxilink/client.log`.
    log_to_stdout : bool
        Write (colourised) to stderr.
    clear_prev : bool
        Delete an existing log file first.
    log_level : str
        Minimum level for both sinks, e.g. "TRACE" to see every RPC call.
    """
    log_path = os.path.abspath(log_path) if log_path else log_default_path_client()

    if log_to_file and clear_prev:
        clear_log(log_path)

    logger.remove()
    if log_to_file:
        logger.add(log_path, level=log_level, enqueue=True, colorize=False)
    if log_to_stdout:
        logger.add(sys.stderr, level=log_level, enqueue=True, colorize=True)

    if log_to_file:
        logger.info("Client log started at {}", log_path)
    else:
        logger.info("Client log started.")


def log_default_path_client() -> str:
    return str(pathlib.Path.home().joinpath(".vxilink/client.log"))


def clear_log(log_path: str):
    """Delete the log file at `log_path`, if there is one."""
    if not os.path.exists(log_path):
        return
    try:
        os.remove(log_path)
    except PermissionError:
        logger.error("Could not clear log file {}. Permission denied. Continuing.", log_path)


def shutdown_client_log():
    """Flush queued messages and remove every sink."""
    try:
        logger.info("Closing down client log.")
        logger.complete()
        logger.remove()
    except Exception:
        logger.exception("Error shutting down client log - skipping.")

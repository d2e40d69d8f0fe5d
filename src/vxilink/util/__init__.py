# -*- coding: utf-8 -*-
"""
Utility functions and constants for vxilink.

- Default timeouts and sizes used across the protocol engine
- Logging configuration and management (loguru)

Examples
--------
Logging to stderr while scripting:
```python
from vxilink.util import start_client_log
start_client_log(log_to_file=False, log_to_stdout=True, log_level="DEBUG")
```
"""

from .defaults import (
    DEFAULT_BACKEND,
    DEFAULT_DEVICE_NAME,
    DEFAULT_LOGLEVEL,
    DEFAULT_MAX_PAYLOAD,
    DEFAULT_READ_TIMEOUT_MS,
    DEFAULT_TIMEOUT_MS,
    MAX_BLOCK_HEADER,
    MAX_STALLED_READS,
    NUMERIC_REPLY_SIZE,
    SINGLE_LINE_ERR_LOG,
    TEST_LOGLEVEL,
)
from .logging import (
    clear_log,
    format_error_response,
    log_default_path_client,
    shutdown_client_log,
    start_client_log,
)

__all__ = [
    "DEFAULT_BACKEND",
    "DEFAULT_DEVICE_NAME",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_MAX_PAYLOAD",
    "DEFAULT_READ_TIMEOUT_MS",
    "DEFAULT_TIMEOUT_MS",
    "MAX_BLOCK_HEADER",
    "MAX_STALLED_READS",
    "NUMERIC_REPLY_SIZE",
    "SINGLE_LINE_ERR_LOG",
    "TEST_LOGLEVEL",
    "clear_log",
    "format_error_response",
    "log_default_path_client",
    "shutdown_client_log",
    "start_client_log",
]

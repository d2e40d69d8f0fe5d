# -*- coding: utf-8 -*-

DEFAULT_TIMEOUT_MS = 10000  # link/lock timeout, also used for writes
DEFAULT_READ_TIMEOUT_MS = 2000
DEFAULT_DEVICE_NAME = "inst0"
DEFAULT_BACKEND = "native"
DEFAULT_MAX_PAYLOAD = 4096  # substituted when an instrument advertises <= 0
NUMERIC_REPLY_SIZE = 50  # more than enough for one number in ascii
MAX_BLOCK_HEADER = 12  # '#9' + 9 digits, plus one spare
MAX_STALLED_READS = 100  # unterminated replies adding no data before giving up
DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"
SINGLE_LINE_ERR_LOG = False  # reformat tracebacks into a single line

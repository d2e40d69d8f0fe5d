"""Higher level helpers built on the chunked writer and reader.

- `send` / `receive` : one message out, one message in
- `send_data_block` / `receive_data_block` : definite-length block transfers
- `send_and_receive` : query with retry on dropped calls
- `obtain_long_value` / `obtain_double_value` : numeric queries
"""

from __future__ import annotations

import re
from typing import Optional

from loguru import logger

from vxilink.types.errors import (
    BufferTooSmallError,
    DroppedError,
    ValueParseError,
    VxiError,
)
from vxilink.util.defaults import (
    DEFAULT_READ_TIMEOUT_MS,
    DEFAULT_TIMEOUT_MS,
    MAX_BLOCK_HEADER,
    NUMERIC_REPLY_SIZE,
)

from . import chunked
from .block import decode_block, encode_block
from .chunked import BytesLike
from .session import SessionHandle

# leading numeric prefix, as accepted by strtol(.., 10) / strtod
_LONG_RE = re.compile(rb"^\s*([+-]?\d+)")
_DOUBLE_RE = re.compile(
    rb"^\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)


def send(handle: SessionHandle, cmd: BytesLike, timeout: int = DEFAULT_TIMEOUT_MS) -> None:
    """Send a command (text or bytes) as one message."""
    chunked.write(handle, cmd, timeout)


def receive(
    handle: SessionHandle, capacity: int, timeout: int = DEFAULT_READ_TIMEOUT_MS
) -> bytes:
    """Receive one message of at most `capacity` bytes."""
    return chunked.read(handle, capacity, timeout)


def send_data_block(
    handle: SessionHandle,
    cmd: BytesLike,
    payload: bytes,
    timeout: int = DEFAULT_TIMEOUT_MS,
) -> None:
    """Send `cmd` followed by `payload` as an 8 digit definite-length block."""
    if isinstance(cmd, str):
        cmd = cmd.encode("ascii")
    chunked.write(handle, encode_block(bytes(cmd), payload), timeout)


def receive_data_block(
    handle: SessionHandle, capacity: int, timeout: int = DEFAULT_READ_TIMEOUT_MS
) -> bytes:
    """Read a definite-length block reply and return its payload.

    Room for the largest header is added to `capacity`, so `capacity` is the
    payload size the caller is prepared to take.

    Raises
    ------
    MalformedBlockError
        If the reply is not a definite-length block.
    BufferTooSmallError
        If the block's payload is larger than `capacity`.
    """
    raw = chunked.read(handle, capacity + MAX_BLOCK_HEADER, timeout)
    payload = decode_block(raw)
    if len(payload) > capacity:
        raise BufferTooSmallError(payload[:capacity], capacity)
    return payload


def send_and_receive(
    handle: SessionHandle,
    cmd: BytesLike,
    capacity: int,
    timeout: int = DEFAULT_READ_TIMEOUT_MS,
    max_retries: Optional[int] = None,
) -> bytes:
    """Send a query and read the reply, resending while either side is dropped.

    A dropped write or read means the instrument was busy and ignored us, so
    the whole query is sent again. Any other error is raised immediately.

    Parameters
    ----------
    max_retries : int, optional
        Give up (re-raising the last dropped error) after this many resends.
        None retries for as long as the instrument keeps dropping calls.
    """
    attempt = 0
    while True:
        try:
            chunked.write(handle, cmd, DEFAULT_TIMEOUT_MS)
            return chunked.read(handle, capacity, timeout)
        except DroppedError as e:
            if max_retries is not None and attempt >= max_retries:
                logger.error(
                    "Giving up on query to {} after {} retries", handle.address, attempt
                )
                raise
            attempt += 1
            logger.info(
                "({} in send_and_receive, resending query)", type(e).__name__
            )


def _parse(reply: bytes, pattern: re.Pattern, kind: str) -> str:
    match = pattern.match(reply)
    if match is None:
        raise ValueParseError(reply, kind)
    return match.group(1).decode("ascii")


def obtain_long_value(
    handle: SessionHandle,
    cmd: BytesLike,
    timeout: int = DEFAULT_READ_TIMEOUT_MS,
    lenient: bool = False,
    max_retries: Optional[int] = None,
) -> int:
    """Query an integer value.

    With `lenient` any failure (communication or parsing) returns 0 and is
    only logged; otherwise the error is raised.
    """
    try:
        reply = send_and_receive(handle, cmd, NUMERIC_REPLY_SIZE, timeout, max_retries)
        return int(_parse(reply, _LONG_RE, "integer"))
    except VxiError as e:
        if not lenient:
            raise
        logger.warning("obtain_long_value({!r}) failed, returning 0: {}", cmd, e)
        return 0


def obtain_double_value(
    handle: SessionHandle,
    cmd: BytesLike,
    timeout: int = DEFAULT_READ_TIMEOUT_MS,
    lenient: bool = False,
    max_retries: Optional[int] = None,
) -> float:
    """Query a floating point value. `lenient` as for `obtain_long_value`."""
    try:
        reply = send_and_receive(handle, cmd, NUMERIC_REPLY_SIZE, timeout, max_retries)
        return float(_parse(reply, _DOUBLE_RE, "double"))
    except VxiError as e:
        if not lenient:
            raise
        logger.warning("obtain_double_value({!r}) failed, returning 0.0: {}", cmd, e)
        return 0.0

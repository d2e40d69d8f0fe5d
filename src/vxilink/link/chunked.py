"""Fragmented write and read over a link.

The instrument accepts at most `max_payload_size` bytes per device_write, so
longer messages go out as several fragments with only the last one carrying
the END flag. Reads come back in pieces too and end on in-band signalling:

- `RX_END`: the instrument's end indicator
- `RX_CHR`: a matched terminator character
- `RX_REQCNT`: the requested byte count was reached

Only the first two complete a message. Filling the caller's capacity without
either is reported as `BufferTooSmallError`.
"""

from __future__ import annotations

from typing import Union

from loguru import logger

from vxilink.types.errors import (
    ERR_IO_ERROR,
    BufferTooSmallError,
    DeviceReadError,
    DeviceWriteError,
    ReadDroppedError,
    RPCFailure,
    WriteDroppedError,
)
from vxilink.types.protocols import OP_FLAG_END
from vxilink.util.defaults import (
    DEFAULT_READ_TIMEOUT_MS,
    DEFAULT_TIMEOUT_MS,
    MAX_STALLED_READS,
)

from .session import SessionHandle

BytesLike = Union[bytes, bytearray, memoryview, str]


def as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode("ascii")
    return bytes(data)


def write(handle: SessionHandle, data: BytesLike, timeout: int = DEFAULT_TIMEOUT_MS) -> None:
    """Send `data` as one message, fragmenting to the link's payload size.

    Parameters
    ----------
    handle : SessionHandle
        Open link.
    data : bytes-like or str
        Message to send. Text is encoded as ASCII.
    timeout : int
        Used as both io and lock timeout (ms) for every fragment.

    Raises
    ------
    WriteDroppedError
        The instrument did not acknowledge a fragment (usually busy). The
        caller may retry the whole message.
    DeviceWriteError
        The instrument reported an error code. Not retried.
    """
    handle.ensure_open()
    payload = as_bytes(data)
    total = len(payload)
    bytes_left = total
    fragments = 0

    # an empty message still goes out as one END fragment
    while True:
        threshold = handle.chunk_size
        if bytes_left <= threshold:
            flags = OP_FLAG_END
            length = bytes_left
        else:
            flags = 0
            length = threshold
        offset = total - bytes_left
        fragment = payload[offset : offset + length]

        try:
            resp = handle.transport.device_write(
                handle.link_id, timeout, timeout, flags, fragment
            )
        except RPCFailure as e:
            logger.info("Write to {} dropped: {}", handle.address, e)
            raise WriteDroppedError(handle.address, str(e)) from e
        if resp.error != 0:
            logger.error("vxilink: write error: {}", resp.error)
            raise DeviceWriteError(resp.error, handle.address)
        if resp.size == 0 and length > 0:
            # no progress would loop forever
            logger.error("{} accepted 0 of {} bytes", handle.address, length)
            raise DeviceWriteError(ERR_IO_ERROR, handle.address)

        fragments += 1
        bytes_left -= min(resp.size, length)
        if bytes_left <= 0:
            break

    logger.trace(
        "Wrote {} bytes to {} in {} fragment(s)", total, handle.address, fragments
    )


def read(
    handle: SessionHandle, capacity: int, timeout: int = DEFAULT_READ_TIMEOUT_MS
) -> bytes:
    """Read one message of at most `capacity` bytes.

    Returns
    -------
    bytes
        The message, once END or a terminator character was signalled.

    Raises
    ------
    ReadDroppedError
        The read call did not complete, e.g. after a query the instrument
        never answered.
    DeviceReadError
        The instrument reported an error code (15 is an I/O timeout), or
        kept answering without data and without terminating (17).
    BufferTooSmallError
        `capacity` bytes arrived without END or terminator. The partial data
        is on the exception.
    """
    if capacity <= 0:
        raise ValueError(f"Read capacity must be positive (got {capacity})")
    handle.ensure_open()
    buffer = bytearray()
    stalled = 0

    while True:
        # never request more in total than the caller asked for
        request_size = capacity - len(buffer)
        try:
            resp = handle.transport.device_read(
                handle.link_id, request_size, timeout, timeout, 0, 0
            )
        except RPCFailure as e:
            logger.info("Read from {} dropped: {}", handle.address, e)
            raise ReadDroppedError(handle.address, str(e)) from e
        if resp.error != 0:
            logger.error("vxilink: read error: {}", resp.error)
            raise DeviceReadError(resp.error, handle.address)

        if len(buffer) + len(resp.data) > capacity:
            logger.warning(
                "Discarding {} byte reply from {}, exceeds request of {}",
                len(resp.data),
                handle.address,
                request_size,
            )
            stalled += 1
        elif resp.data:
            buffer.extend(resp.data)
            stalled = 0
        else:
            stalled += 1
        if resp.terminated:
            break
        if len(buffer) == capacity:
            logger.error(
                "vxilink: read error: buffer too small. Read {} bytes "
                + "without hitting terminator.",
                len(buffer),
            )
            raise BufferTooSmallError(buffer, capacity)
        if stalled >= MAX_STALLED_READS:
            logger.error(
                "{} sent {} unterminated replies without data, giving up",
                handle.address,
                stalled,
            )
            raise DeviceReadError(ERR_IO_ERROR, handle.address)

    logger.trace("Read {} bytes from {}", len(buffer), handle.address)
    return bytes(buffer)

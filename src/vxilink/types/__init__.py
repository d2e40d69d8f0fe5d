"""
Wire types, the transport protocol and the exception taxonomy.

- `protocols` : `Transport` protocol, reply dataclasses and flag constants
- `errors` : every exception raised by vxilink, rooted at `VxiError`
"""

from .errors import (
    DEVICE_ERROR_MESSAGES,
    BufferTooSmallError,
    ConnectError,
    DeviceError,
    DeviceReadError,
    DeviceWriteError,
    DroppedError,
    LinkCreateError,
    LinkDestroyError,
    LinkError,
    MalformedBlockError,
    ReadDroppedError,
    RPCFailure,
    SessionClosedError,
    UnknownAddressError,
    ValueParseError,
    VxiError,
    WriteDroppedError,
    describe_device_error,
)
from .protocols import (
    OP_FLAG_END,
    OP_FLAG_TERMCHAR_SET,
    RX_CHR,
    RX_END,
    RX_REQCNT,
    LinkResponse,
    ReadResponse,
    Transport,
    WriteResponse,
)

__all__ = [
    "DEVICE_ERROR_MESSAGES",
    "BufferTooSmallError",
    "ConnectError",
    "DeviceError",
    "DeviceReadError",
    "DeviceWriteError",
    "DroppedError",
    "LinkCreateError",
    "LinkDestroyError",
    "LinkError",
    "MalformedBlockError",
    "ReadDroppedError",
    "RPCFailure",
    "SessionClosedError",
    "UnknownAddressError",
    "ValueParseError",
    "VxiError",
    "WriteDroppedError",
    "describe_device_error",
    "OP_FLAG_END",
    "OP_FLAG_TERMCHAR_SET",
    "RX_CHR",
    "RX_END",
    "RX_REQCNT",
    "LinkResponse",
    "ReadResponse",
    "Transport",
    "WriteResponse",
]

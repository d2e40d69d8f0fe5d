"""Exception taxonomy for the VXI-11 link engine.

Every failure the engine can produce has its own class, so callers can tell a
transient non-response (`DroppedError`) from an explicit protocol error
reported by the instrument (`DeviceError`) or a caller bookkeeping mistake
(`UnknownAddressError`) without inspecting integer codes.

Hierarchy
---------
```
VxiError
├── ConnectError
├── LinkError
│   ├── LinkCreateError
│   └── LinkDestroyError
├── UnknownAddressError
│   └── SessionClosedError
├── DroppedError
│   ├── WriteDroppedError
│   └── ReadDroppedError
├── DeviceError
│   ├── DeviceWriteError
│   └── DeviceReadError
├── MalformedBlockError
├── BufferTooSmallError
├── ValueParseError
└── RPCFailure
```
"""

from __future__ import annotations

from typing import Optional

# From the published VXI-11 protocol, section B.5.2
DEVICE_ERROR_MESSAGES = {
    0: "No error",
    1: "Syntax error",
    3: "Device not accessible",
    4: "Invalid link identifier",
    5: "Parameter error",
    6: "Channel not established",
    8: "Operation not supported",
    9: "Out of resources",
    11: "Device locked by another link",
    12: "No lock held by this link",
    15: "I/O timeout",
    17: "I/O error",
    21: "Invalid address",
    23: "Abort",
    29: "Channel already established",
}

ERR_IO_TIMEOUT = 15
ERR_IO_ERROR = 17


def describe_device_error(code: int) -> str:
    """Human readable text for a device error code, e.g. '15: I/O timeout'."""
    return f"{code}: {DEVICE_ERROR_MESSAGES.get(code, 'Unknown error')}"


class VxiError(Exception):
    """Base exception for everything raised by vxilink."""

    pass


class ConnectError(VxiError):
    """Could not reach the instrument, or it does not serve the VXI-11 core program."""

    def __init__(self, address: str, reason: str = ""):
        self.address = address
        self.reason = reason
        msg = f"Could not connect to {address}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class LinkError(VxiError):
    """Remote failure establishing or tearing down a link."""

    _action = "Link operation"

    def __init__(self, address: str, note: str = "", code: Optional[int] = None):
        self.address = address
        self.code = code
        msg = f"{self._action} failed for {address}"
        if code is not None:
            msg += f" [{describe_device_error(code)}]"
        if note:
            msg += f": {note}"
        super().__init__(msg)


class LinkCreateError(LinkError):
    _action = "create_link"


class LinkDestroyError(LinkError):
    _action = "destroy_link"


class UnknownAddressError(VxiError):
    """An address with no live registration was referenced.

    This is a caller bookkeeping bug, not a communication failure: report it
    and carry on.
    """

    def __init__(self, address: str, note: str = ""):
        self.address = address
        msg = f"No record of ever opening device with address {address}"
        if note:
            msg += f" ({note})"
        super().__init__(msg)


class SessionClosedError(UnknownAddressError):
    """A session handle was used after it was closed."""

    def __init__(self, address: str):
        super().__init__(address, "session handle already closed")


class DroppedError(VxiError):
    """The instrument never acknowledged the call. Transient, safe to retry."""

    _direction = "call"

    def __init__(self, address: str, note: str = ""):
        self.address = address
        msg = f"Instrument at {address} dropped the {self._direction}"
        if note:
            msg += f" ({note})"
        super().__init__(msg)


class WriteDroppedError(DroppedError):
    _direction = "write"


class ReadDroppedError(DroppedError):
    _direction = "read"


class DeviceError(VxiError):
    """The instrument reported an explicit VXI-11 error code.

    Attributes
    ----------
    code : int
        The device error code exactly as reported, see `DEVICE_ERROR_MESSAGES`.
    """

    _direction = "device"

    def __init__(self, code: int, address: str = ""):
        self.code = code
        self.address = address
        msg = f"{self._direction} error {describe_device_error(code)}"
        if address:
            msg += f" (address {address})"
        super().__init__(msg)


class DeviceWriteError(DeviceError):
    _direction = "write"


class DeviceReadError(DeviceError):
    _direction = "read"


class MalformedBlockError(VxiError):
    """A reply did not follow the definite-length block grammar."""

    def __init__(self, reason: str, head: bytes = b""):
        self.head = bytes(head[:20])
        msg = f"Malformed data block: {reason}"
        if head:
            msg += f"; first 20 bytes received were {self.head!r}"
        super().__init__(msg)


class BufferTooSmallError(VxiError):
    """Capacity was reached before an END flag or terminator character arrived.

    Attributes
    ----------
    data : bytes
        Whatever was read before giving up.
    """

    def __init__(self, data: bytes, capacity: int):
        self.data = bytes(data)
        self.capacity = capacity
        super().__init__(
            f"Buffer too small. Read {len(self.data)} bytes (capacity {capacity}) "
            + "without hitting terminator."
        )

    @property
    def count(self) -> int:
        return len(self.data)


class ValueParseError(VxiError, ValueError):
    """A numeric query reply could not be parsed."""

    def __init__(self, reply: bytes, kind: str):
        self.reply = bytes(reply)
        super().__init__(f"Could not parse {kind} from reply {self.reply!r}")


class RPCFailure(VxiError):
    """A primitive remote call did not complete.

    Raised by transports only; the link engine translates it into the
    appropriate dropped/link error for the caller.
    """

    pass

"""Transport protocol and wire-level reply types.

The link engine talks to an instrument through exactly four primitive remote
calls. Anything that implements them, and raises `RPCFailure` when a call does
not complete, can act as a backend:

- `create_link(client_id, lock_device, lock_timeout, device_name)`
- `destroy_link(link_id)`
- `device_write(link_id, io_timeout, lock_timeout, flags, data)`
- `device_read(link_id, request_size, io_timeout, lock_timeout, flags, term_char)`

Device-level errors are *returned* in the `error` field of the reply, never
raised, so the engine can surface them verbatim.

See Also
--------
vxilink.transport : Backend implementations
vxilink.types.errors : Exception taxonomy
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

# Operation flags (device_write / device_read parms)
OP_FLAG_END = 8
OP_FLAG_TERMCHAR_SET = 128

# Read reply reason bits
RX_REQCNT = 1  # requestSize bytes have been transferred, including a size of 0
RX_CHR = 2  # termchar set in flags and a matching character was transferred
RX_END = 4  # an end indicator has been read


@dataclass(frozen=True)
class LinkResponse:
    """Reply to create_link."""

    error: int
    link_id: int
    abort_port: int = 0
    max_recv_size: int = 0


@dataclass(frozen=True)
class WriteResponse:
    """Reply to device_write. `size` is the number of bytes actually accepted."""

    error: int
    size: int


@dataclass(frozen=True)
class ReadResponse:
    """Reply to device_read."""

    error: int
    reason: int
    data: bytes = b""

    @property
    def terminated(self) -> bool:
        """True if the END indicator or a matching termchar ended this read."""
        return bool(self.reason & (RX_END | RX_CHR))


@runtime_checkable
class Transport(Protocol):
    """Connection to one instrument address, shared by all of its links."""

    address: str

    def create_link(
        self, client_id: int, lock_device: bool, lock_timeout: int, device_name: str
    ) -> LinkResponse: ...

    def destroy_link(self, link_id: int) -> int: ...

    def device_write(
        self,
        link_id: int,
        io_timeout: int,
        lock_timeout: int,
        flags: int,
        data: bytes,
    ) -> WriteResponse: ...

    def device_read(
        self,
        link_id: int,
        request_size: int,
        io_timeout: int,
        lock_timeout: int,
        flags: int,
        term_char: int,
    ) -> ReadResponse: ...

    def close(self) -> None: ...

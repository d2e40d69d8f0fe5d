"""VISA backend: the four link primitives on top of a pyvisa resource manager.

Each link is its own VISA session on `TCPIP::<address>::<device>::INSTR`;
the resource manager plays the part of the shared per-address client. The
VISA library does its own fragmentation, so the advertised max payload is the
resource's `chunk_size`.

VISA completion codes are mapped back onto VXI-11 read reasons:

| VISA status                               | reason      |
|-------------------------------------------|-------------|
| `success`                                 | `RX_END`    |
| `success_termination_character_read`      | `RX_CHR`    |
| `success_max_count_read`                  | `RX_REQCNT` |

A VISA timeout is reported as device error 15 (I/O timeout); any other
`VisaIOError` counts as a call that did not complete.
"""

from __future__ import annotations

import itertools
from typing import Optional

import pyvisa
from loguru import logger
from pyvisa import constants
from pyvisa.errors import VisaIOError

from vxilink.types.errors import ERR_IO_TIMEOUT, ConnectError, RPCFailure
from vxilink.types.protocols import (
    OP_FLAG_END,
    OP_FLAG_TERMCHAR_SET,
    RX_CHR,
    RX_END,
    RX_REQCNT,
    LinkResponse,
    ReadResponse,
    WriteResponse,
)

ERR_INVALID_LINK_IDENTIFIER = 4

_STATUS_TO_REASON = {
    constants.StatusCode.success: RX_END,
    constants.StatusCode.success_termination_character_read: RX_CHR,
    constants.StatusCode.success_max_count_read: RX_REQCNT,
}


def visa_resource_name(address: str, device_name: str) -> str:
    """Build a VISA resource string, passing full resource strings through."""
    if "::" in address:
        return address
    return f"TCPIP::{address}::{device_name}::INSTR"


class VisaTransport:
    """Shared VISA resource manager for one instrument address.

    Parameters
    ----------
    address : str
        Host name, IP address or full VISA resource string.
    resource_manager : pyvisa.ResourceManager, optional
        Manager to open sessions with. If None, one is created (and closed
        again by `close`).
    visa_library : str, optional
        Backend passed to `pyvisa.ResourceManager`, e.g. "@py".
    """

    def __init__(
        self,
        address: str,
        resource_manager: Optional[pyvisa.ResourceManager] = None,
        visa_library: str = "",
    ):
        self.address = address
        self._owns_rm = resource_manager is None
        if resource_manager is None:
            try:
                resource_manager = pyvisa.ResourceManager(visa_library)
            except (OSError, ValueError) as e:
                logger.error("Could not start VISA library for {}: {}", address, e)
                raise ConnectError(address, f"VISA library unavailable: {e}") from e
        self.rm = resource_manager
        self._sessions: dict[int, pyvisa.resources.MessageBasedResource] = {}
        self._link_ids = itertools.count(1)

    def _session(self, link_id: int):
        return self._sessions.get(link_id)

    def create_link(
        self, client_id: int, lock_device: bool, lock_timeout: int, device_name: str
    ) -> LinkResponse:
        resource_name = visa_resource_name(self.address, device_name)
        try:
            inst = self.rm.open_resource(resource_name, open_timeout=lock_timeout)
        except VisaIOError as e:
            raise RPCFailure(f"viOpen {resource_name}: {e}") from e
        # raw byte I/O only, terminations are handled by the link engine
        inst.read_termination = None
        inst.write_termination = ""
        link_id = next(self._link_ids)
        self._sessions[link_id] = inst
        logger.trace("Opened VISA session {} as link {}", resource_name, link_id)
        return LinkResponse(0, link_id, 0, inst.chunk_size)

    def destroy_link(self, link_id: int) -> int:
        inst = self._sessions.pop(link_id, None)
        if inst is None:
            return ERR_INVALID_LINK_IDENTIFIER
        try:
            inst.close()
        except VisaIOError as e:
            raise RPCFailure(f"viClose link {link_id}: {e}") from e
        return 0

    def device_write(
        self,
        link_id: int,
        io_timeout: int,
        lock_timeout: int,
        flags: int,
        data: bytes,
    ) -> WriteResponse:
        inst = self._session(link_id)
        if inst is None:
            return WriteResponse(ERR_INVALID_LINK_IDENTIFIER, 0)
        inst.timeout = io_timeout
        inst.send_end = bool(flags & OP_FLAG_END)
        try:
            count = inst.write_raw(bytes(data))
        except VisaIOError as e:
            if e.error_code == constants.StatusCode.error_timeout:
                return WriteResponse(ERR_IO_TIMEOUT, 0)
            raise RPCFailure(f"viWrite link {link_id}: {e}") from e
        return WriteResponse(0, count)

    def device_read(
        self,
        link_id: int,
        request_size: int,
        io_timeout: int,
        lock_timeout: int,
        flags: int,
        term_char: int,
    ) -> ReadResponse:
        inst = self._session(link_id)
        if inst is None:
            return ReadResponse(ERR_INVALID_LINK_IDENTIFIER, 0)
        inst.timeout = io_timeout
        if flags & OP_FLAG_TERMCHAR_SET:
            inst.read_termination = chr(term_char)
        else:
            inst.read_termination = None
        try:
            data, status = inst.visalib.read(inst.session, request_size)
        except VisaIOError as e:
            if e.error_code == constants.StatusCode.error_timeout:
                return ReadResponse(ERR_IO_TIMEOUT, 0)
            raise RPCFailure(f"viRead link {link_id}: {e}") from e
        return ReadResponse(0, _STATUS_TO_REASON.get(status, RX_END), bytes(data))

    def close(self) -> None:
        failure = None
        for link_id in list(self._sessions):
            logger.warning("Closing VISA link {} left open on {}", link_id, self.address)
            try:
                self.destroy_link(link_id)
            except RPCFailure as e:
                failure = failure or e
        if self._owns_rm:
            try:
                self.rm.close()
            except VisaIOError as e:
                raise RPCFailure(f"closing VISA library for {self.address}: {e}") from e
        if failure is not None:
            raise failure

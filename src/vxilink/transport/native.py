"""Native VXI-11 backend on top of python-vxi11's ONC-RPC core client.

`vxi11.vxi11.CoreClient` already does the portmapper lookup, the XDR
marshalling and the TCP record marking. This module only adapts its tuples to
the reply dataclasses and maps "the call did not complete" to `RPCFailure`.
"""

from __future__ import annotations

import socket

from loguru import logger
from vxi11 import rpc
from vxi11.vxi11 import CoreClient

from vxilink.types.errors import ConnectError, RPCFailure
from vxilink.types.protocols import LinkResponse, ReadResponse, WriteResponse

# exceptions that mean the remote never answered the call
_CALL_FAILURES = (rpc.RPCError, OSError, EOFError)


class CoreTransport:
    """One TCP connection to the DEVICE_CORE program of an instrument.

    Parameters
    ----------
    address : str
        Host name or IP address of the instrument.
    port : int, optional
        TCP port of the core channel. 0 asks the instrument's portmapper.
    """

    def __init__(self, address: str, port: int = 0):
        self.address = address
        try:
            self._client = CoreClient(address, port)
        except (rpc.RPCError, OSError) as e:
            logger.error("clnt_create failed for {}: {}", address, e)
            raise ConnectError(address, str(e)) from e
        logger.debug("Created core client for {} on port {}", address, port)

    def _set_call_timeout(self, timeout_ms: int) -> None:
        # socket must outlive the instrument side timeout, as python-vxi11 does
        self._client.sock.settimeout(timeout_ms / 1000 + 1)

    def create_link(
        self, client_id: int, lock_device: bool, lock_timeout: int, device_name: str
    ) -> LinkResponse:
        self._set_call_timeout(lock_timeout)
        try:
            error, link, abort_port, max_recv_size = self._client.create_link(
                client_id, int(lock_device), lock_timeout, device_name.encode("utf-8")
            )
        except _CALL_FAILURES as e:
            raise RPCFailure(f"create_link to {self.address}: {e}") from e
        return LinkResponse(error, link, abort_port, max_recv_size)

    def destroy_link(self, link_id: int) -> int:
        try:
            return self._client.destroy_link(link_id)
        except _CALL_FAILURES as e:
            raise RPCFailure(f"destroy_link on {self.address}: {e}") from e

    def device_write(
        self,
        link_id: int,
        io_timeout: int,
        lock_timeout: int,
        flags: int,
        data: bytes,
    ) -> WriteResponse:
        self._set_call_timeout(max(io_timeout, lock_timeout))
        try:
            error, size = self._client.device_write(
                link_id, io_timeout, lock_timeout, flags, bytes(data)
            )
        except _CALL_FAILURES as e:
            raise RPCFailure(f"device_write to {self.address}: {e}") from e
        return WriteResponse(error, size)

    def device_read(
        self,
        link_id: int,
        request_size: int,
        io_timeout: int,
        lock_timeout: int,
        flags: int,
        term_char: int,
    ) -> ReadResponse:
        self._set_call_timeout(max(io_timeout, lock_timeout))
        try:
            error, reason, data = self._client.device_read(
                link_id, request_size, io_timeout, lock_timeout, flags, term_char
            )
        except _CALL_FAILURES as e:
            raise RPCFailure(f"device_read from {self.address}: {e}") from e
        return ReadResponse(error, reason, bytes(data))

    def close(self) -> None:
        try:
            self._client.close()
        except socket.error as e:
            logger.warning("Error closing core client for {}: {}", self.address, e)
        logger.debug("Destroyed core client for {}", self.address)

"""Session (link) management on top of the client registry.

A `SessionHandle` is the unit callers hold: one VXI-11 link, multiplexed over
the transport shared by every link to the same address. `SessionManager`
opens and closes handles, keeping the registry's link counts in step so the
transport is created with the first link and torn down with the last.

Examples
--------
```python
from vxilink.link import SessionManager, send_and_receive

manager = SessionManager(backend="native")
with manager.open("192.168.1.20") as scope:
    print(send_and_receive(scope, "*IDN?", 256))
```
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from vxilink.config import LinkConfig
from vxilink.transport import transport_factory
from vxilink.types.errors import (
    LinkCreateError,
    LinkDestroyError,
    RPCFailure,
    SessionClosedError,
    UnknownAddressError,
)
from vxilink.types.protocols import Transport
from vxilink.util.defaults import DEFAULT_MAX_PAYLOAD

from .registry import ClientRegistry, close_transport


@dataclass(eq=False)
class SessionHandle:
    """An open link to one logical device on an instrument.

    Attributes
    ----------
    address : str
        Registry key of the instrument.
    transport : Transport
        Transport shared with every other link to `address` (not owned).
    link_id : int
        Link identifier returned by create_link.
    max_payload_size : int
        Max fragment size as advertised by the instrument. Not trustworthy,
        use `chunk_size`.
    device_name : str
        Device the link was created for, e.g. "inst0".
    fallback_max_payload : int
        Fragment size substituted when `max_payload_size` is not positive.
    """

    address: str
    transport: Transport
    link_id: int
    max_payload_size: int
    device_name: str
    fallback_max_payload: int = DEFAULT_MAX_PAYLOAD
    closed: bool = False
    _manager: Optional["SessionManager"] = field(default=None, repr=False)
    _warned_payload: bool = field(default=False, repr=False)

    @property
    def chunk_size(self) -> int:
        """Usable max fragment size for writes."""
        if self.max_payload_size > 0:
            return self.max_payload_size
        # Some scope firmware advertises 0 here, in breach of rule B.6.3
        if not self._warned_payload:
            logger.warning(
                "{} advertised max payload {}, using {} bytes",
                self.address,
                self.max_payload_size,
                self.fallback_max_payload,
            )
            self._warned_payload = True
        return self.fallback_max_payload

    def ensure_open(self) -> None:
        if self.closed:
            raise SessionClosedError(self.address)

    def close(self) -> int:
        """Close through the manager that opened this handle."""
        if self._manager is None:
            raise SessionClosedError(self.address)
        return self._manager.close(self)

    def __enter__(self) -> "SessionHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.closed:
            self.close()


class SessionManager:
    """Opens and closes links, sharing transports through a registry.

    Parameters
    ----------
    registry : ClientRegistry, optional
        Registry to share transports through. If None, a new one is created
        using `backend`. Pass the same registry to several managers to share
        transports between them.
    backend : str, optional
        Transport backend for a newly created registry ("native", "visa" or
        "mock"). Ignored when `registry` is given.
    config : LinkConfig, optional
        Supplies the link/lock timeout and the fallback max payload. Its
        backend is used when `backend` is not given.
    **transport_kwargs
        Forwarded to the backend's transport constructor.
    """

    def __init__(
        self,
        registry: Optional[ClientRegistry] = None,
        backend: Optional[str] = None,
        config: Optional[LinkConfig] = None,
        **transport_kwargs,
    ):
        self.config = config if config is not None else LinkConfig()
        if registry is None:
            backend = backend or self.config.backend
            registry = ClientRegistry(transport_factory(backend, **transport_kwargs))
        self.registry = registry
        self.client_id = random.getrandbits(31)
        self._handles: list[SessionHandle] = []

    @property
    def handles(self) -> list[SessionHandle]:
        return list(self._handles)

    def open(self, address: str, device_name: Optional[str] = None) -> SessionHandle:
        """Create a link to `device_name` (default from config, "inst0") at `address`.

        Raises
        ------
        ConnectError
            If a new transport to `address` cannot be established.
        LinkCreateError
            If create_link fails. The registry acquisition is rolled back.
        """
        device_name = device_name or self.config.device_name
        transport, is_new = self.registry.acquire(address)
        try:
            resp = transport.create_link(
                self.client_id, False, self.config.timeout_ms, device_name
            )
        except RPCFailure as e:
            logger.error("create_link to {} ({}) failed: {}", address, device_name, e)
            self.registry.rollback(address)
            raise LinkCreateError(address, str(e)) from e
        if resp.error != 0:
            logger.error(
                "create_link to {} ({}) refused with error {}",
                address,
                device_name,
                resp.error,
            )
            self.registry.rollback(address)
            raise LinkCreateError(address, device_name, code=resp.error)

        handle = SessionHandle(
            address=address,
            transport=transport,
            link_id=resp.link_id,
            max_payload_size=resp.max_recv_size,
            device_name=device_name,
            fallback_max_payload=self.config.fallback_max_payload,
            _manager=self,
        )
        self._handles.append(handle)
        logger.debug(
            "Opened link {} to {} ({}), new client: {}, max payload {}",
            resp.link_id,
            address,
            device_name,
            is_new,
            resp.max_recv_size,
        )
        return handle

    def close(self, handle: SessionHandle) -> int:
        """Destroy the link and release its share of the transport.

        Returns
        -------
        int
            0, or the device error code reported by destroy_link.

        Raises
        ------
        SessionClosedError
            If the handle was already closed.
        UnknownAddressError
            If the handle's address has no registration.
        LinkDestroyError
            If destroy_link did not complete. The registry is still released.
        """
        handle.ensure_open()
        rpc_error = None
        status = 0
        try:
            status = handle.transport.destroy_link(handle.link_id)
        except RPCFailure as e:
            logger.error("destroy_link {} on {} failed: {}", handle.link_id, handle.address, e)
            rpc_error = e
        if status != 0:
            logger.error(
                "destroy_link {} on {} returned error {}",
                handle.link_id,
                handle.address,
                status,
            )

        handle.closed = True
        if handle in self._handles:
            self._handles.remove(handle)
        if self.registry.release(handle.address):
            close_transport(handle.transport)
            logger.debug("Closed last link to {}, client destroyed", handle.address)
        else:
            logger.debug("Closed link {} to {}", handle.link_id, handle.address)

        if rpc_error is not None:
            raise LinkDestroyError(handle.address, str(rpc_error)) from rpc_error
        return status

    def close_all(self) -> None:
        """Close every handle this manager opened, reporting but not raising errors."""
        for handle in self.handles:
            try:
                self.close(handle)
            except (LinkDestroyError, UnknownAddressError) as e:
                logger.warning("Error closing link to {}: {}", handle.address, e)

    def __enter__(self) -> "SessionManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close_all()

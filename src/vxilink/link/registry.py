"""Client registry: one shared transport per instrument address.

Several links to the same instrument share a single RPC client. The registry
keeps the client for each address together with the number of links open on
it, and tells the caller when the last link has gone so that the client can
be torn down.

Concurrency
-----------
The registry does no locking. Every call is expected to come from a single
thread; callers that share one registry between threads must hold their own
mutex around `SessionManager.open` / `SessionManager.close`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from loguru import logger

from vxilink.types.errors import RPCFailure, UnknownAddressError
from vxilink.types.protocols import Transport


def close_transport(transport: Transport) -> None:
    """Tear down a transport whose last link has gone.

    Failures are only logged: the links are already accounted for, and there
    is nothing left for the caller to retry.
    """
    try:
        transport.close()
    except (RPCFailure, OSError) as e:
        logger.warning("Error closing client for {}: {}", transport.address, e)


@dataclass
class ClientRegistration:
    """A live transport and the number of links using it."""

    address: str
    transport: Transport
    link_count: int = 1


class ClientRegistry:
    """Address -> shared transport table with link reference counts.

    Parameters
    ----------
    transport_factory : Callable[[str], Transport]
        Called with the address when a never-seen address is acquired. May
        raise `ConnectError`.
    """

    def __init__(self, transport_factory: Callable[[str], Transport]):
        self._factory = transport_factory
        self._entries: list[ClientRegistration] = []

    def _find(self, address: str) -> Optional[ClientRegistration]:
        # linear scan, the table holds one entry per instrument
        for entry in self._entries:
            if entry.address == address:
                return entry
        return None

    def acquire(self, address: str) -> tuple[Transport, bool]:
        """Get the transport for `address`, connecting if it is a new address.

        Returns
        -------
        tuple[Transport, bool]
            The (possibly shared) transport, and whether it was just created.
        """
        entry = self._find(address)
        if entry is not None:
            entry.link_count += 1
            logger.trace("Reusing client for {} ({} links)", address, entry.link_count)
            return entry.transport, False

        transport = self._factory(address)
        self._entries.append(ClientRegistration(address, transport))
        logger.debug("Registered new client for {}", address)
        return transport, True

    def release(self, address: str) -> bool:
        """Drop one link from `address`.

        Returns
        -------
        bool
            True if that was the last link: the entry is gone and the caller
            must close the transport. False if other links remain.

        Raises
        ------
        UnknownAddressError
            If `address` has no registration.
        """
        entry = self._find(address)
        if entry is None:
            logger.error("No record of ever opening device with address {}", address)
            raise UnknownAddressError(address)
        entry.link_count -= 1
        if entry.link_count > 0:
            logger.trace("{} links remain on {}", entry.link_count, address)
            return False
        self._entries.remove(entry)
        logger.debug("Unregistered client for {}", address)
        return True

    def rollback(self, address: str) -> None:
        """Undo one `acquire`, closing the transport if nothing else uses it."""
        entry = self._find(address)
        if entry is None:
            return
        if self.release(address):
            close_transport(entry.transport)

    def link_count(self, address: str) -> int:
        entry = self._find(address)
        return 0 if entry is None else entry.link_count

    def transport_for(self, address: str) -> Optional[Transport]:
        entry = self._find(address)
        return None if entry is None else entry.transport

    def addresses(self) -> list[str]:
        return [entry.address for entry in self._entries]

    def __contains__(self, address: str) -> bool:
        return self._find(address) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ClientRegistration]:
        return iter(list(self._entries))

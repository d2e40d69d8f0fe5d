# -*- coding: utf-8 -*-
"""
Transport backends providing the four VXI-11 link primitives.

- `CoreTransport` ("native"): ONC-RPC core channel via python-vxi11
- `VisaTransport` ("visa"): vendor VISA library via pyvisa
- `MockTransport` ("mock"): scripted in-memory instrument

The backend is picked by name when a `SessionManager` is constructed.

Examples
--------
```python
from vxilink.transport import make_transport
transport = make_transport("192.168.1.20", backend="visa")
```
"""

from __future__ import annotations

from typing import Callable

from loguru import logger

from vxilink.types.protocols import Transport

from .mock import MockTransport


def _native(address: str, **kwargs) -> Transport:
    # deferred so that the VISA-only and mock paths do not need python-vxi11
    from .native import CoreTransport

    return CoreTransport(address, **kwargs)


def _visa(address: str, **kwargs) -> Transport:
    from .visa import VisaTransport

    return VisaTransport(address, **kwargs)


TRANSPORT_BACKENDS: dict[str, Callable[..., Transport]] = {
    "native": _native,
    "visa": _visa,
    "mock": MockTransport,
}


def make_transport(address: str, backend: str = "native", **kwargs) -> Transport:
    """Connect a transport of the named backend to `address`.

    Raises
    ------
    ValueError
        If `backend` is not one of `TRANSPORT_BACKENDS`.
    vxilink.types.ConnectError
        If the instrument cannot be reached.
    """
    try:
        factory = TRANSPORT_BACKENDS[backend]
    except KeyError:
        raise ValueError(
            f"Unknown transport backend {backend!r}, "
            + f"expected one of {sorted(TRANSPORT_BACKENDS)}"
        ) from None
    logger.debug("Connecting {} transport to {}", backend, address)
    return factory(address, **kwargs)


def transport_factory(backend: str = "native", **kwargs) -> Callable[[str], Transport]:
    """Bind a backend name (and options) into a factory for `ClientRegistry`."""

    def factory(address: str) -> Transport:
        return make_transport(address, backend, **kwargs)

    return factory


__all__ = [
    "MockTransport",
    "TRANSPORT_BACKENDS",
    "make_transport",
    "transport_factory",
]

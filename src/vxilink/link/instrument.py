"""Convenience wrapper bundling a session handle with its configuration."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from vxilink.config import LinkConfig, load_link_config

from . import query
from .chunked import BytesLike
from .session import SessionHandle, SessionManager


class Instrument:
    """One link to an instrument, with the configured timeouts applied.

    Parameters
    ----------
    config : LinkConfig
        Where and how to connect.
    manager : SessionManager, optional
        Manager (and so registry) to open the link through. If None, a
        private manager using `config.backend` is created.

    Examples
    --------
    ```python
    with Instrument(LinkConfig(address="192.168.1.20")) as scope:
        idn = scope.query("*IDN?")
        trace = scope.query_block(":WAV:DATA?", 1_000_000)
    ```
    """

    def __init__(self, config: LinkConfig, manager: Optional[SessionManager] = None):
        self.config = config
        self.manager = manager if manager is not None else SessionManager(config=config)
        self.handle: Optional[SessionHandle] = None

    @classmethod
    def from_name(cls, name: str, path=None, **kwargs) -> "Instrument":
        """Build from a named section of the instrument INI file."""
        return cls(load_link_config(name, path), **kwargs)

    def open(self) -> "Instrument":
        if self.handle is None or self.handle.closed:
            self.handle = self.manager.open(self.config.address, self.config.device_name)
        return self

    def close(self) -> int:
        if self.handle is None or self.handle.closed:
            logger.debug("Instrument {} already closed", self.config.address)
            return 0
        return self.manager.close(self.handle)

    def is_connected(self) -> bool:
        return self.handle is not None and not self.handle.closed

    def _link(self) -> SessionHandle:
        if self.handle is None:
            raise RuntimeError(f"Instrument {self.config.address} is not open")
        return self.handle

    def write(self, cmd: BytesLike) -> None:
        query.send(self._link(), cmd, self.config.timeout_ms)

    def read(self, capacity: int) -> bytes:
        return query.receive(self._link(), capacity, self.config.read_timeout_ms)

    def query(self, cmd: BytesLike, capacity: int = 1024) -> str:
        reply = query.send_and_receive(
            self._link(),
            cmd,
            capacity,
            self.config.read_timeout_ms,
            self.config.max_retries,
        )
        return reply.decode("ascii", errors="replace").strip()

    def write_block(self, cmd: BytesLike, payload: bytes) -> None:
        query.send_data_block(self._link(), cmd, payload, self.config.timeout_ms)

    def query_block(self, cmd: BytesLike, capacity: int) -> bytes:
        self.write(cmd)
        return query.receive_data_block(self._link(), capacity, self.config.read_timeout_ms)

    def query_long(self, cmd: BytesLike) -> int:
        return query.obtain_long_value(
            self._link(),
            cmd,
            self.config.read_timeout_ms,
            lenient=self.config.lenient_values,
            max_retries=self.config.max_retries,
        )

    def query_double(self, cmd: BytesLike) -> float:
        return query.obtain_double_value(
            self._link(),
            cmd,
            self.config.read_timeout_ms,
            lenient=self.config.lenient_values,
            max_retries=self.config.max_retries,
        )

    def __enter__(self) -> "Instrument":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self):
        state = "open" if self.is_connected() else "closed"
        return f"Instrument({self.config.address!r}, {self.config.backend}, {state})"

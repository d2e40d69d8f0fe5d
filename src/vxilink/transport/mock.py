from __future__ import annotations

from collections import deque
from typing import Callable, Optional, Union

from loguru import logger

from vxilink.types.errors import ERR_IO_TIMEOUT, RPCFailure
from vxilink.types.protocols import (
    OP_FLAG_END,
    RX_END,
    RX_REQCNT,
    LinkResponse,
    ReadResponse,
    WriteResponse,
)

# canned answers of the idle mock instrument
DEFAULT_REPLIES = {b"*IDN?": b"VXILINK,MOCK,0,0\n"}

_Scripted = Union[ReadResponse, WriteResponse, LinkResponse, int, Exception]


class MockTransport:
    """In-memory scripted instrument implementing the transport primitives.

    Behaviour is scripted per primitive with queues; when a queue is empty the
    mock behaves like a well mannered instrument:

    - create_link hands out increasing link ids and `max_recv_size`
    - device_write accepts up to `accept_limit` bytes of each fragment
    - device_read serves queued replies, split to the request size (the tail
      is kept for the next read), or reports an I/O timeout when idle

    Complete messages (fragments up to the one carrying END) are collected
    per link in `messages`. If a message matches a key of `replies`, the
    reply is queued for reading, so simple query/answer instruments need no
    per-test scripting.
    """

    def __init__(
        self,
        address: str = "mock",
        max_recv_size: int = 4096,
        accept_limit: Optional[int] = None,
        replies: Optional[dict[bytes, bytes]] = None,
    ):
        self.address = address
        self.max_recv_size = max_recv_size
        self.accept_limit = accept_limit
        self.replies = dict(DEFAULT_REPLIES if replies is None else replies)
        self.closed = False
        self.calls: list[tuple] = []
        self.fragments: list[tuple[int, int, bytes]] = []  # (link, flags, data)
        self.messages: dict[int, list[bytes]] = {}
        self.links: set[int] = set()
        self._partial: dict[int, bytearray] = {}
        self._next_link = 0
        self._create: deque[_Scripted] = deque()
        self._destroy: deque[_Scripted] = deque()
        self._writes: deque[_Scripted] = deque()
        self._reads: deque[tuple[_Scripted, bool]] = deque()
        self._close_error: Optional[Exception] = None

    @classmethod
    def factory(cls, **kwargs) -> Callable[[str], "MockTransport"]:
        """Transport factory for `ClientRegistry`; created mocks are kept on it."""
        created: list[MockTransport] = []

        def make(address: str) -> MockTransport:
            transport = cls(address, **kwargs)
            created.append(transport)
            return transport

        make.created = created
        return make

    # ------------------------------------------------------------------
    # scripting
    # ------------------------------------------------------------------

    def queue_read(
        self, data: bytes, reason: int = RX_END, error: int = 0, exact: bool = False
    ) -> None:
        """Queue a read reply. `exact` replies are served as-is, ignoring size."""
        self._reads.append((ReadResponse(error, reason, bytes(data)), exact))

    def queue_read_error(self, code: int) -> None:
        self._reads.append((ReadResponse(code, 0), True))

    def drop_reads(self, count: int = 1) -> None:
        for _ in range(count):
            self._reads.append((RPCFailure("read dropped by mock"), True))

    def queue_write(self, error: int = 0, size: Optional[int] = None) -> None:
        """Script the next write reply. `size` None means accept everything."""
        self._writes.append(WriteResponse(error, -1 if size is None else size))

    def drop_writes(self, count: int = 1) -> None:
        for _ in range(count):
            self._writes.append(RPCFailure("write dropped by mock"))

    def fail_create(self, code: Optional[int] = None) -> None:
        """Fail the next create_link, with an RPC failure if `code` is None."""
        if code is None:
            self._create.append(RPCFailure("create_link failed in mock"))
        else:
            self._create.append(LinkResponse(code, 0))

    def fail_destroy(self, code: Optional[int] = None) -> None:
        if code is None:
            self._destroy.append(RPCFailure("destroy_link failed in mock"))
        else:
            self._destroy.append(code)

    def fail_close(self, error: Optional[Exception] = None) -> None:
        """Make `close` raise, after marking the mock closed."""
        self._close_error = error or RPCFailure("close failed in mock")

    def calls_to(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    # ------------------------------------------------------------------
    # primitives
    # ------------------------------------------------------------------

    def _check_open(self):
        if self.closed:
            raise RPCFailure(f"mock transport for {self.address} is closed")

    def create_link(
        self, client_id: int, lock_device: bool, lock_timeout: int, device_name: str
    ) -> LinkResponse:
        self._check_open()
        self.calls.append(
            ("create_link", client_id, lock_device, lock_timeout, device_name)
        )
        if self._create:
            scripted = self._create.popleft()
            if isinstance(scripted, Exception):
                raise scripted
            return scripted
        self._next_link += 1
        self.links.add(self._next_link)
        logger.trace("mock {}: link {} -> {}", self.address, self._next_link, device_name)
        return LinkResponse(0, self._next_link, 0, self.max_recv_size)

    def destroy_link(self, link_id: int) -> int:
        self._check_open()
        self.calls.append(("destroy_link", link_id))
        if self._destroy:
            scripted = self._destroy.popleft()
            if isinstance(scripted, Exception):
                raise scripted
            return scripted
        if link_id not in self.links:
            return 4
        self.links.discard(link_id)
        return 0

    def device_write(
        self,
        link_id: int,
        io_timeout: int,
        lock_timeout: int,
        flags: int,
        data: bytes,
    ) -> WriteResponse:
        self._check_open()
        data = bytes(data)
        self.calls.append(("device_write", link_id, io_timeout, lock_timeout, flags, data))
        if self._writes:
            scripted = self._writes.popleft()
            if isinstance(scripted, Exception):
                raise scripted
            if scripted.error:
                return scripted
            size = len(data) if scripted.size < 0 else scripted.size
        else:
            size = len(data)
            if self.accept_limit is not None:
                size = min(size, self.accept_limit)
        self.fragments.append((link_id, flags, data[:size]))
        self._partial.setdefault(link_id, bytearray()).extend(data[:size])
        if flags & OP_FLAG_END and size == len(data):
            self._complete_message(link_id)
        return WriteResponse(0, size)

    def _complete_message(self, link_id: int) -> None:
        message = bytes(self._partial.pop(link_id, b""))
        self.messages.setdefault(link_id, []).append(message)
        reply = self.replies.get(message.strip())
        if reply is not None:
            self.queue_read(reply)

    def device_read(
        self,
        link_id: int,
        request_size: int,
        io_timeout: int,
        lock_timeout: int,
        flags: int,
        term_char: int,
    ) -> ReadResponse:
        self._check_open()
        self.calls.append(
            ("device_read", link_id, request_size, io_timeout, lock_timeout, flags, term_char)
        )
        if not self._reads:
            return ReadResponse(ERR_IO_TIMEOUT, 0)
        scripted, exact = self._reads.popleft()
        if isinstance(scripted, Exception):
            raise scripted
        if exact or scripted.error or len(scripted.data) <= request_size:
            return scripted
        head, tail = scripted.data[:request_size], scripted.data[request_size:]
        self._reads.appendleft((ReadResponse(0, scripted.reason, tail), False))
        return ReadResponse(0, RX_REQCNT, head)

    def close(self) -> None:
        self.calls.append(("close",))
        self.closed = True
        if self._close_error is not None:
            raise self._close_error

# -*- coding: utf-8 -*-
"""
The VXI-11 link engine.

- `ClientRegistry` : shared transport per address, with link counts
- `SessionManager` / `SessionHandle` : open and close links
- `write` / `read` : fragmented message transfer
- `encode_block` / `decode_block` : definite-length block framing
- query helpers : `send_and_receive`, numeric queries, block transfers
- `Instrument` : a configured link with a context manager

See Also
--------
vxilink.transport : Backends providing the link primitives
vxilink.types.errors : Exceptions raised here
"""

from .block import block_header_size, decode_block, encode_block
from .chunked import read, write
from .instrument import Instrument
from .query import (
    obtain_double_value,
    obtain_long_value,
    receive,
    receive_data_block,
    send,
    send_and_receive,
    send_data_block,
)
from .registry import ClientRegistration, ClientRegistry
from .session import SessionHandle, SessionManager

__all__ = [
    "ClientRegistration",
    "ClientRegistry",
    "Instrument",
    "SessionHandle",
    "SessionManager",
    "block_header_size",
    "decode_block",
    "encode_block",
    "obtain_double_value",
    "obtain_long_value",
    "read",
    "receive",
    "receive_data_block",
    "send",
    "send_and_receive",
    "send_data_block",
    "write",
]

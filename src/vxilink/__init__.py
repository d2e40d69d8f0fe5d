# -*- coding: utf-8 -*-
"""# vxilink

A (python) client for the VXI-11 instrument control protocol: open links to
LAN instruments (oscilloscopes, multimeters, signal generators), move
commands and bulk data over them, and query values.

- Several links to one instrument share a single RPC client.
- Long writes are fragmented to the instrument's advertised payload size.
- Reads complete on END or terminator character, as VXI-11 requires.
- Definite-length (`#8...`) blocks for waveform and setup transfers.
- Two interchangeable transports: the native ONC-RPC core channel
  (python-vxi11) and a VISA library (pyvisa).

```python
from vxilink import SessionManager, send_and_receive, obtain_double_value

with SessionManager() as manager:
    scope = manager.open("192.168.1.20")
    print(send_and_receive(scope, "*IDN?", 256))
    print(obtain_double_value(scope, ":MEAS:FREQ?"))
```

## See Also

- `vxilink.link` : the link engine
- `vxilink.transport` : transport backends
- `vxilink.config` : instrument configuration files
"""

from ._version import __version__
from .config import LinkConfig, load_link_config
from .link import (
    ClientRegistry,
    Instrument,
    SessionHandle,
    SessionManager,
    decode_block,
    encode_block,
    obtain_double_value,
    obtain_long_value,
    read,
    receive,
    receive_data_block,
    send,
    send_and_receive,
    send_data_block,
    write,
)
from .types.errors import (
    BufferTooSmallError,
    ConnectError,
    DeviceError,
    DeviceReadError,
    DeviceWriteError,
    DroppedError,
    LinkCreateError,
    LinkDestroyError,
    MalformedBlockError,
    ReadDroppedError,
    SessionClosedError,
    UnknownAddressError,
    ValueParseError,
    VxiError,
    WriteDroppedError,
)

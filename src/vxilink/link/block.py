r"""IEEE 488.2 definite-length block framing.

Bulk data (waveforms, screenshots, setup files) travels as

```
#800001000<1000 bytes of data>
||\______/
||    |
||    \---- number of bytes of data
|\--------- number of digits that follow (in this case 8, with leading 0's)
\---------- always starts with #
```

Some instruments answer just `#0` when acquisition failed; that decodes to an
empty payload rather than an error.
"""

from __future__ import annotations

from loguru import logger

from vxilink.types.errors import MalformedBlockError

BLOCK_DIGITS = 8


def block_header_size(ndigits: int = BLOCK_DIGITS) -> int:
    """Bytes taken by '#', the digit count and the length digits."""
    return 2 + ndigits


def encode_block(prefix, payload: bytes, ndigits: int = BLOCK_DIGITS) -> bytes:
    """Frame `payload` as a definite-length block after command `prefix`.

    Parameters
    ----------
    prefix : str or bytes
        Command preceding the block, e.g. ":WAV:DATA " or b"".
    payload : bytes
        Raw block contents.
    ndigits : int
        Number of length digits, 1 to 9. The length is zero padded.
    """
    if not 1 <= ndigits <= 9:
        raise ValueError(f"Block digit count must be 1-9 (got {ndigits})")
    payload = bytes(payload)
    if len(payload) >= 10**ndigits:
        raise ValueError(
            f"Payload of {len(payload)} bytes does not fit {ndigits} length digits"
        )
    if isinstance(prefix, str):
        prefix = prefix.encode("ascii")
    header = ("#%d%0*d" % (ndigits, ndigits, len(payload))).encode("ascii")
    return bytes(prefix) + header + payload


def decode_block(buffer: bytes) -> bytes:
    """Extract the payload of a definite-length block.

    Bytes after the payload (typically a newline terminator) are ignored.

    Raises
    ------
    MalformedBlockError
        If `buffer` does not start with '#', the digit count or length is not
        decimal, or the payload is shorter than the header claims.
    """
    buffer = bytes(buffer)
    if not buffer.startswith(b"#"):
        logger.error("Data block does not begin with '#': {!r}", buffer[:20])
        raise MalformedBlockError("data block does not begin with '#'", buffer)
    if len(buffer) < 2 or not buffer[1:2].isdigit():
        raise MalformedBlockError("missing digit count after '#'", buffer)

    ndigits = int(buffer[1:2])
    if ndigits == 0:
        # instrument had a problem acquiring the data
        logger.warning("Instrument returned an empty '#0' data block")
        return b""

    length_field = buffer[2 : 2 + ndigits]
    if len(length_field) != ndigits or not length_field.isdigit():
        raise MalformedBlockError(
            f"expected {ndigits} length digits, got {length_field!r}", buffer
        )
    length = int(length_field)
    start = block_header_size(ndigits)
    payload = buffer[start : start + length]
    if len(payload) != length:
        raise MalformedBlockError(
            f"header announced {length} bytes but only {len(payload)} arrived",
            buffer,
        )
    return payload

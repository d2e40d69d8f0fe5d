"""Tests for definite-length block framing"""

import pytest

from vxilink.link import block_header_size, decode_block, encode_block
from vxilink.types.errors import MalformedBlockError


class TestEncode:
    def test_default_eight_digits(self):
        assert encode_block(b":WAV:DATA ", b"abc") == b":WAV:DATA #800000003abc"

    def test_text_prefix(self):
        assert encode_block(":SYST:SET ", b"\x00\x01") == b":SYST:SET #800000002\x00\x01"

    def test_no_prefix(self):
        assert encode_block(b"", b"") == b"#800000000"

    def test_fewer_digits(self):
        assert encode_block(b"", b"hello", ndigits=2) == b"#205hello"

    @pytest.mark.parametrize("ndigits", [0, 10, -1])
    def test_digit_count_out_of_range(self, ndigits):
        with pytest.raises(ValueError, match="digit count"):
            encode_block(b"", b"abc", ndigits=ndigits)

    def test_payload_too_long_for_digits(self):
        with pytest.raises(ValueError, match="does not fit"):
            encode_block(b"", b"x" * 10, ndigits=1)

    def test_header_size(self):
        assert block_header_size() == 10
        assert block_header_size(3) == 5


class TestDecode:
    def test_payload_extracted(self):
        assert decode_block(b"#800000005hello") == b"hello"

    def test_trailing_terminator_ignored(self):
        assert decode_block(b"#800000005hello\n") == b"hello"

    def test_short_header(self):
        assert decode_block(b"#15hello") == b"hello"

    def test_binary_payload(self):
        payload = bytes(range(256))
        assert decode_block(encode_block(b"", payload)) == payload

    @pytest.mark.parametrize("length", [0, 1, 9, 10, 99999, 10**6])
    def test_round_trip(self, length):
        payload = bytes(i % 256 for i in range(length))
        framed = encode_block(b":TRAC:DATA ", payload)
        assert framed.startswith(b":TRAC:DATA #8%08d" % length)
        assert decode_block(framed[len(b":TRAC:DATA ") :] + b"\n") == payload

    @pytest.mark.parametrize("reply", [b"#0", b"#0\n"])
    def test_empty_block(self, reply):
        assert decode_block(reply) == b""

    def test_zero_length(self):
        assert decode_block(b"#800000000\n") == b""

    def test_missing_hash(self):
        reply = b"800000005hello and a lot more text"
        with pytest.raises(MalformedBlockError, match="does not begin with '#'") as excinfo:
            decode_block(reply)
        assert excinfo.value.head == reply[:20]

    def test_empty_buffer(self):
        with pytest.raises(MalformedBlockError):
            decode_block(b"")

    @pytest.mark.parametrize("reply", [b"#", b"#x00000005hello"])
    def test_bad_digit_count(self, reply):
        with pytest.raises(MalformedBlockError, match="digit count"):
            decode_block(reply)

    @pytest.mark.parametrize("reply", [b"#8000005", b"#3abcdef", b"#2 5hello"])
    def test_bad_length_field(self, reply):
        with pytest.raises(MalformedBlockError, match="length digits"):
            decode_block(reply)

    def test_truncated_payload(self):
        with pytest.raises(MalformedBlockError, match="only 3 arrived"):
            decode_block(b"#800000010abc")

"""Tests for fragmented writes and terminated reads"""

import math

import pytest

from vxilink.link import ClientRegistry, SessionManager, read, write
from vxilink.transport import MockTransport
from vxilink.types.errors import (
    BufferTooSmallError,
    DeviceReadError,
    DeviceWriteError,
    ReadDroppedError,
    SessionClosedError,
    WriteDroppedError,
)
from vxilink.types.protocols import OP_FLAG_END, RX_CHR, RX_END, RX_REQCNT


def _open(**mock_kwargs):
    manager = SessionManager(registry=ClientRegistry(MockTransport.factory(**mock_kwargs)))
    handle = manager.open("mock-scope")
    return handle, handle.transport


def _fragment_shape(mock):
    return [(len(data), flags) for _, flags, data in mock.fragments]


class TestWrite:
    def test_single_fragment(self, handle, mock):
        write(handle, b"*RST")
        assert mock.fragments == [(handle.link_id, OP_FLAG_END, b"*RST")]
        assert mock.messages[handle.link_id] == [b"*RST"]

    def test_text_is_ascii_encoded(self, handle, mock):
        write(handle, ":CHAN1:SCAL 0.5")
        assert mock.messages[handle.link_id] == [b":CHAN1:SCAL 0.5"]

    def test_long_message_is_fragmented(self, handle, mock):
        payload = bytes(range(256)) * 40  # 10240 bytes
        write(handle, payload)
        assert _fragment_shape(mock) == [(4096, 0), (4096, 0), (2048, OP_FLAG_END)]
        assert mock.messages[handle.link_id] == [payload]

    def test_exact_multiple_ends_on_last_fragment(self, handle, mock):
        write(handle, b"a" * 8192)
        assert _fragment_shape(mock) == [(4096, 0), (4096, OP_FLAG_END)]

    def test_one_byte_over(self, handle, mock):
        write(handle, b"a" * 4097)
        assert _fragment_shape(mock) == [(4096, 0), (1, OP_FLAG_END)]

    def test_empty_message_sends_end(self, handle, mock):
        write(handle, b"")
        assert mock.fragments == [(handle.link_id, OP_FLAG_END, b"")]
        assert mock.messages[handle.link_id] == [b""]

    @pytest.mark.parametrize("advertised", [0, -5])
    def test_bogus_max_payload_uses_fallback(self, advertised):
        handle, mock = _open(max_recv_size=advertised)
        write(handle, b"x" * 5000)
        assert _fragment_shape(mock) == [(4096, 0), (904, OP_FLAG_END)]

    def test_partial_acceptance_is_resent(self):
        handle, mock = _open(max_recv_size=4096, accept_limit=1000)
        payload = bytes(range(250)) * 10  # 2500 bytes
        write(handle, payload)
        assert [len(data) for _, _, data in mock.fragments] == [1000, 1000, 500]
        assert mock.messages[handle.link_id] == [payload]
        sent = [call[5] for call in mock.calls_to("device_write")]
        assert sent == [payload, payload[1000:], payload[2000:]]

    @pytest.mark.parametrize("max_payload", [1, 7, 1500])
    @pytest.mark.parametrize("length", [1, 6, 7, 8, 1499, 1500, 1501, 10000])
    def test_fragment_count(self, max_payload, length):
        handle, mock = _open(max_recv_size=max_payload)
        payload = bytes(i % 251 for i in range(length))
        write(handle, payload)
        shape = _fragment_shape(mock)
        assert len(shape) == math.ceil(length / max_payload)
        assert [flags for _, flags in shape[:-1]] == [0] * (len(shape) - 1)
        assert shape[-1][1] == OP_FLAG_END
        assert all(size <= max_payload for size, _ in shape)
        assert sum(size for size, _ in shape) == length
        assert mock.messages[handle.link_id] == [payload]

    def test_timeouts_passed_through(self, handle, mock):
        write(handle, b"*CLS", timeout=1234)
        call = mock.calls_to("device_write")[0]
        assert call[1:5] == (handle.link_id, 1234, 1234, OP_FLAG_END)

    def test_dropped_write(self, handle, mock):
        mock.drop_writes()
        with pytest.raises(WriteDroppedError, match="dropped the write"):
            write(handle, b"*IDN?")

    def test_device_error_is_reported(self, handle, mock):
        mock.queue_write(error=5)
        with pytest.raises(DeviceWriteError) as excinfo:
            write(handle, b"*IDN?")
        assert excinfo.value.code == 5
        assert "Parameter error" in str(excinfo.value)

    def test_no_progress_is_an_error(self, handle, mock):
        mock.queue_write(size=0)
        with pytest.raises(DeviceWriteError) as excinfo:
            write(handle, b"*IDN?")
        assert excinfo.value.code == 17

    def test_closed_handle(self, manager, handle):
        manager.close(handle)
        with pytest.raises(SessionClosedError):
            write(handle, b"*IDN?")


class TestRead:
    def test_single_reply(self, handle, mock):
        mock.queue_read(b"+1.0E+00\n")
        assert read(handle, 100) == b"+1.0E+00\n"
        call = mock.calls_to("device_read")[0]
        assert call[1:] == (handle.link_id, 100, 2000, 2000, 0, 0)

    def test_reply_in_pieces(self, handle, mock):
        mock.queue_read(b"abc", reason=RX_REQCNT, exact=True)
        mock.queue_read(b"def", reason=0, exact=True)
        mock.queue_read(b"ghi\n", reason=RX_END, exact=True)
        assert read(handle, 100) == b"abcdefghi\n"
        sizes = [call[2] for call in mock.calls_to("device_read")]
        assert sizes == [100, 97, 94]

    def test_terminator_character_ends_read(self, handle, mock):
        mock.queue_read(b"42\n", reason=RX_CHR, exact=True)
        mock.queue_read(b"never read")
        assert read(handle, 100) == b"42\n"
        assert len(mock.calls_to("device_read")) == 1

    def test_reply_exactly_filling_capacity(self, handle, mock):
        mock.queue_read(b"12345678")
        assert read(handle, 8) == b"12345678"

    def test_buffer_too_small(self, handle, mock):
        mock.queue_read(b"x" * 20)
        with pytest.raises(BufferTooSmallError) as excinfo:
            read(handle, 8)
        assert excinfo.value.data == b"x" * 8
        assert excinfo.value.count == 8
        assert excinfo.value.capacity == 8

    def test_oversized_reply_is_discarded(self, handle, mock):
        mock.queue_read(b"ab", reason=0, exact=True)
        mock.queue_read(b"far too long\n", reason=RX_END, exact=True)
        assert read(handle, 4) == b"ab"

    def test_dropped_read(self, handle, mock):
        mock.drop_reads()
        with pytest.raises(ReadDroppedError, match="dropped the read"):
            read(handle, 100)

    def test_device_error_is_reported(self, handle, mock):
        mock.queue_read_error(11)
        with pytest.raises(DeviceReadError) as excinfo:
            read(handle, 100)
        assert excinfo.value.code == 11

    def test_idle_instrument_times_out(self, handle):
        with pytest.raises(DeviceReadError) as excinfo:
            read(handle, 100, timeout=50)
        assert excinfo.value.code == 15
        assert "I/O timeout" in str(excinfo.value)

    def test_stalled_instrument_gives_up(self, handle, mock):
        for _ in range(150):
            mock.queue_read(b"", reason=0, exact=True)
        with pytest.raises(DeviceReadError) as excinfo:
            read(handle, 100)
        assert excinfo.value.code == 17
        assert len(mock.calls_to("device_read")) == 100

    def test_discarded_replies_count_as_stalled(self, handle, mock):
        for _ in range(150):
            mock.queue_read(b"x" * 12, reason=0, exact=True)
        with pytest.raises(DeviceReadError) as excinfo:
            read(handle, 4)
        assert excinfo.value.code == 17
        assert len(mock.calls_to("device_read")) == 100

    def test_progress_resets_stall_count(self, handle, mock):
        for _ in range(3):
            for _ in range(99):
                mock.queue_read(b"", reason=0, exact=True)
            mock.queue_read(b"a", reason=0, exact=True)
        mock.queue_read(b"\n", reason=RX_END, exact=True)
        assert read(handle, 100) == b"aaa\n"

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_capacity_must_be_positive(self, handle, capacity):
        with pytest.raises(ValueError):
            read(handle, capacity)

    def test_closed_handle(self, manager, handle):
        manager.close(handle)
        with pytest.raises(SessionClosedError):
            read(handle, 100)

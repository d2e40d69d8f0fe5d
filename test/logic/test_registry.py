"""Tests for the shared-client registry"""

import pytest

from vxilink.link import ClientRegistry
from vxilink.transport import MockTransport
from vxilink.types.errors import ConnectError, UnknownAddressError


@pytest.fixture
def registry(factory):
    return ClientRegistry(factory)


def test_first_acquire_creates_transport(registry, factory):
    transport, is_new = registry.acquire("10.0.0.1")
    assert is_new
    assert isinstance(transport, MockTransport)
    assert transport.address == "10.0.0.1"
    assert factory.created == [transport]
    assert registry.link_count("10.0.0.1") == 1
    assert "10.0.0.1" in registry


def test_second_acquire_shares_transport(registry, factory):
    first, _ = registry.acquire("10.0.0.1")
    second, is_new = registry.acquire("10.0.0.1")
    assert not is_new
    assert second is first
    assert len(factory.created) == 1
    assert registry.link_count("10.0.0.1") == 2
    assert len(registry) == 1


def test_addresses_are_independent(registry):
    a, _ = registry.acquire("10.0.0.1")
    b, _ = registry.acquire("10.0.0.2")
    assert a is not b
    assert sorted(registry.addresses()) == ["10.0.0.1", "10.0.0.2"]
    assert registry.transport_for("10.0.0.2") is b


def test_release_reports_last_link(registry):
    registry.acquire("10.0.0.1")
    registry.acquire("10.0.0.1")
    assert registry.release("10.0.0.1") is False
    assert registry.link_count("10.0.0.1") == 1
    assert registry.release("10.0.0.1") is True
    assert "10.0.0.1" not in registry
    assert registry.link_count("10.0.0.1") == 0
    assert registry.transport_for("10.0.0.1") is None


def test_release_unknown_address(registry):
    with pytest.raises(UnknownAddressError, match="No record of ever opening"):
        registry.release("10.9.9.9")


def test_release_does_not_close_transport(registry):
    transport, _ = registry.acquire("10.0.0.1")
    registry.release("10.0.0.1")
    assert not transport.closed


def test_rollback_last_link_closes_transport(registry):
    transport, _ = registry.acquire("10.0.0.1")
    registry.rollback("10.0.0.1")
    assert transport.closed
    assert len(registry) == 0


def test_rollback_shared_link_keeps_transport(registry):
    transport, _ = registry.acquire("10.0.0.1")
    registry.acquire("10.0.0.1")
    registry.rollback("10.0.0.1")
    assert not transport.closed
    assert registry.link_count("10.0.0.1") == 1


def test_rollback_unknown_address_is_noop(registry):
    registry.rollback("10.9.9.9")
    assert len(registry) == 0


def test_failed_connect_leaves_no_entry():
    def unreachable(address):
        raise ConnectError(address, "no route to host")

    registry = ClientRegistry(unreachable)
    with pytest.raises(ConnectError, match="no route to host"):
        registry.acquire("10.0.0.1")
    assert "10.0.0.1" not in registry
    # a later attempt tries to connect again
    with pytest.raises(ConnectError):
        registry.acquire("10.0.0.1")


def test_iteration_yields_registrations(registry):
    registry.acquire("10.0.0.1")
    registry.acquire("10.0.0.1")
    registry.acquire("10.0.0.2")
    counts = {entry.address: entry.link_count for entry in registry}
    assert counts == {"10.0.0.1": 2, "10.0.0.2": 1}


def test_failed_release_leaves_other_entries(registry):
    transport, _ = registry.acquire("10.0.0.1")
    with pytest.raises(UnknownAddressError):
        registry.release("never-opened")
    assert registry.link_count("10.0.0.1") == 1
    assert registry.transport_for("10.0.0.1") is transport
    assert registry.release("10.0.0.1") is True


def test_rollback_close_failure_is_logged(registry):
    transport, _ = registry.acquire("10.0.0.1")
    transport.fail_close()
    registry.rollback("10.0.0.1")
    assert transport.closed
    assert len(registry) == 0

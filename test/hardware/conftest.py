import os

import pytest

from vxilink.config import LinkConfig


@pytest.fixture(scope="session")
def instrument_address():
    """Address of a real VXI-11 instrument on the LAN, from VXILINK_TEST_ADDRESS."""
    address = os.environ.get("VXILINK_TEST_ADDRESS", "")
    if not address:
        pytest.skip("VXILINK_TEST_ADDRESS not set")
    return address


@pytest.fixture(scope="session", params=["native", "visa"])
def instrument_config(request, instrument_address):
    backend = os.environ.get("VXILINK_TEST_BACKEND", "")
    if backend and backend != request.param:
        pytest.skip(f"Only testing the {backend} backend")
    return LinkConfig(address=instrument_address, backend=request.param)

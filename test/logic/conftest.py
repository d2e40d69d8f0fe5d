import pytest
from loguru import logger

import vxilink.util
from vxilink.link import ClientRegistry, SessionManager
from vxilink.transport import MockTransport
from vxilink.util import TEST_LOGLEVEL


@pytest.fixture(autouse=True, scope="module")
def client_log():
    vxilink.util.start_client_log(
        log_level=TEST_LOGLEVEL, log_to_stdout=True, log_to_file=False
    )
    yield
    vxilink.util.shutdown_client_log()


@pytest.fixture(autouse=True)
def log(request):
    logger.warning("STARTED Test '{}'".format(request.node.originalname))

    def fin():
        logger.warning("COMPLETED Test '{}' \n".format(request.node.originalname))

    request.addfinalizer(fin)


@pytest.fixture
def factory():
    """Mock transport factory, remembering every transport it made."""
    return MockTransport.factory()


@pytest.fixture
def manager(factory):
    manager = SessionManager(registry=ClientRegistry(factory))
    yield manager
    manager.close_all()


@pytest.fixture
def handle(manager):
    return manager.open("mock-scope")


@pytest.fixture
def mock(handle) -> MockTransport:
    return handle.transport

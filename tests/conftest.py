import pytest

from postsync.client import PostClient
from postsync.config import SyncConfig
from postsync.dispatcher import PostDispatcher
from postsync.store import PostStore
from tests.fake_gateway import InMemoryGateway

# Short enough to keep auto-clear tests fast
TEST_ERROR_CLEAR_DELAY = 0.05


@pytest.fixture
def config():
    return SyncConfig(error_clear_delay=TEST_ERROR_CLEAR_DELAY, page_size=10)


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def store(config):
    return PostStore(config)


@pytest.fixture
def dispatcher(gateway, store):
    return PostDispatcher(gateway, store)


@pytest.fixture
def client(gateway, config):
    return PostClient(gateway, config=config)

import pytest

from tests.fakes import FakeClock, FakeErroredBackend, RecordingBackend
from tokenstore.application.token_store import TokenStore


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def backend():
    return RecordingBackend()


@pytest.fixture()
def store(backend, clock):
    return TokenStore(backend, clock=clock)


@pytest.fixture()
def errored_store(clock):
    return TokenStore(FakeErroredBackend(), clock=clock)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    from tokenstore.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

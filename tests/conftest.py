import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("TESTING", "true")

import pytest
from fastapi.testclient import TestClient

from schoolcache.core.cache import CacheConfig, init_cache
from schoolcache.core.store import TTLStore


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class CallCounter:
    """Async compute function that counts its calls."""

    def __init__(self, ret=None, exc=None):
        self.count = 0
        self.ret = ret
        self.exc = exc

    async def __call__(self, *args, **kwargs):
        self.count += 1
        if self.exc is not None:
            raise self.exc
        return self.ret


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def store(clock):
    return TTLStore(max_entries=10, clock=clock)

@pytest.fixture
def cache_config():
    return CacheConfig(max_entries=50, sweeper_enabled=False)

@pytest.fixture
def cache(cache_config, clock):
    handle = init_cache(cache_config, clock=clock)
    yield handle
    handle.close()

@pytest.fixture
def call_counter():
    return CallCounter

@pytest.fixture(scope="function")
def app(cache_config, clock):
    import main
    return main.create_app(cache_config, clock=clock)

@pytest.fixture(scope="function")
def client(app):
    with TestClient(app) as test_client:
        yield test_client

import pathlib
import site

import pytest
from verticadb.cache import Cache
from verticadb.connection import dispose_all_pools

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear caches and pools before and after each test to ensure test isolation."""
    Cache.get_instance().clear_all()
    dispose_all_pools()
    yield
    Cache.get_instance().clear_all()
    dispose_all_pools()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.vertica',
]

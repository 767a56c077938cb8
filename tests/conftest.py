import pathlib
import site

import pytest
from sequelocity.cache import Cache
from sequelocity.configuration import clear_default_configuration_settings

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear caches and process-wide settings around each test for isolation."""
    Cache.get_instance().clear_all()
    clear_default_configuration_settings()
    yield
    Cache.get_instance().clear_all()
    clear_default_configuration_settings()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
]

"""
Общие фикстуры для тестов HandWitch
"""

import copy
import tempfile
from pathlib import Path

import pytest

from handwitch.core.loader import build_source
from handwitch.core.source import URLProcessor
from tests.fixtures.descriptions import SAMPLE_DESCRIPTIONS
from tests.fixtures.fake_transport import FakeTransport


@pytest.fixture
def temp_dir():
    """Временная директория для теста"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_descriptions():
    return copy.deepcopy(SAMPLE_DESCRIPTIONS)


@pytest.fixture
def source(sample_descriptions):
    return build_source(sample_descriptions)


@pytest.fixture
def url_processor(source):
    return URLProcessor(source, request_timeout=5)


@pytest.fixture
def greet_hand(url_processor):
    """Ручка с одним обязательным query параметром name"""
    return url_processor.get_hand("greet")


@pytest.fixture
def repos_hand(url_processor):
    """Ручка с обязательными login (URL) и page (integer query)"""
    return url_processor.get_hand("user_repos")


@pytest.fixture
def ping_hand(url_processor):
    """Ручка без параметров"""
    return url_processor.get_hand("ping")


@pytest.fixture
def transport():
    return FakeTransport()

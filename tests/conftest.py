"""
Pytest configuration for relink tests.

Configures pytest-asyncio for async test support and provides shared
fixtures for the candidate pool and the mock node library.
"""

import tempfile
from typing import Generator

import pytest

from relink.candidates import CandidatePool, CandidateStore, PoolConfig
from tests.unit.mocks import (
    MockDirectoryClient,
    MockHealthProbe,
    MockNodeManager,
    RecordingLogger,
    make_record,
)


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture
def temp_data_directory() -> Generator[str, None, None]:
    with tempfile.TemporaryDirectory() as temp_directory:
        yield temp_directory


@pytest.fixture
def pool_config(temp_data_directory: str) -> PoolConfig:
    return PoolConfig(
        directory_url="http://directory.invalid/nodes",
        fallback_directory_url=None,
        data_directory=temp_data_directory,
    )


@pytest.fixture
def three_records() -> list[dict]:
    return [
        make_record("alpha.example"),
        make_record("bravo.example"),
        make_record("charlie.example"),
    ]


@pytest.fixture
def mock_manager() -> MockNodeManager:
    return MockNodeManager()


@pytest.fixture
def mock_probe() -> MockHealthProbe:
    return MockHealthProbe()


@pytest.fixture
def pool_factory(pool_config: PoolConfig, mock_probe: MockHealthProbe):
    def create_pool(
        primary=None,
        fallback=None,
        config: PoolConfig | None = None,
    ) -> CandidatePool:
        config = config or pool_config

        return CandidatePool(
            config,
            directory=MockDirectoryClient(primary=primary, fallback=fallback),
            probe=mock_probe,
            store=CandidateStore(config.data_directory),
            logger=RecordingLogger(),
        )

    return create_pool

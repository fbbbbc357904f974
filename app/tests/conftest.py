"""
Pytest configuration and shared fixtures for client tests.
"""
import os

import pytest

from clabcraw.config import Settings
from clabcraw.domain.auth.signer import MessageSigner
from clabcraw.logging_config import setup_logging
from tests.utils import API_URL, TEST_PRIVATE_KEY, FakeClock, ScriptedServer


def pytest_configure(config):
    """Configure pytest settings."""
    # Set up logging based on LOG_LEVEL env var
    log_level = os.environ.get("LOG_LEVEL", "INFO")
    setup_logging(log_level)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def server() -> ScriptedServer:
    return ScriptedServer()


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        api_url=API_URL,
        wallet_private_key=TEST_PRIVATE_KEY,
    )


@pytest.fixture(scope="session")
def signer() -> MessageSigner:
    return MessageSigner(TEST_PRIVATE_KEY)

"""Test configuration and fixtures."""

import os

import pytest

# Set up test environment variables BEFORE importing cipherdesk modules
os.environ.setdefault("CIPHERDESK_LOG_LEVEL", "WARNING")

from cipherdesk.config import get_settings
from cipherdesk.core.key_material import KeyMaterialManager, KeyRole
from cipherdesk.core.primitives import CryptographyProvider
from cipherdesk.core.transform_engine import TransformEngine


class SpyProvider:
    """Records which primitives were called, then delegates."""

    def __init__(self):
        self.inner = CryptographyProvider()
        self.calls: list[str] = []

    def __getattr__(self, name):
        attr = getattr(self.inner, name)

        def wrapper(*args, **kwargs):
            self.calls.append(name)
            return attr(*args, **kwargs)

        return wrapper


@pytest.fixture(autouse=True)
def reset_settings():
    """Re-read settings (and env overrides) for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def key_manager():
    """Create a fresh key material manager for each test."""
    return KeyMaterialManager()


@pytest.fixture
def engine():
    """Create a fresh transform engine for each test."""
    return TransformEngine()


@pytest.fixture
def spy_provider():
    return SpyProvider()


@pytest.fixture
def spy_engine(spy_provider):
    """Engine whose primitive calls can be inspected."""
    return TransformEngine(provider=spy_provider)


@pytest.fixture(scope="session")
def rsa_key_pair():
    """2048-bit encrypt/decrypt pair, generated once per session."""
    return KeyMaterialManager().generate_asymmetric_key_pair(2048, KeyRole.ENCRYPT_DECRYPT)


@pytest.fixture(scope="session")
def rsa_signing_pair():
    """2048-bit sign/verify pair, generated once per session."""
    return KeyMaterialManager().generate_asymmetric_key_pair(2048, KeyRole.SIGN_VERIFY)


@pytest.fixture
def aes_key(key_manager):
    return key_manager.generate_symmetric_key(256)

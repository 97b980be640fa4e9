# tests/conftest.py
"""
Shared pytest configuration and fixtures for the sessionkit test suite.
"""

import logging

import pytest

from sessionkit.models import Client, Environment
from sessionkit.storage import InMemoryCredentialStore
from tests.fixtures.factories import PUBLISHABLE_KEY, environment_json, signed_in_client_json

logging.basicConfig(level=logging.INFO)


@pytest.fixture
def publishable_key():
    return PUBLISHABLE_KEY


@pytest.fixture
def store():
    """Fresh in-memory credential store"""
    return InMemoryCredentialStore()


@pytest.fixture
def client_model():
    """Client with one active session"""
    return Client.model_validate(signed_in_client_json())


@pytest.fixture
def environment_model():
    return Environment.model_validate(environment_json())


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Keep host environment variables out of configuration tests"""
    for name in ('SESSIONKIT_PUBLISHABLE_KEY', 'SESSIONKIT_PROXY_URL', 'SESSIONKIT_DEBUG'):
        monkeypatch.delenv(name, raising=False)

from __future__ import annotations

import pytest
from django.core.cache import cache
from django.test import Client


@pytest.fixture
def api_client() -> Client:
    return Client()


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def _no_provider_key(settings):
    settings.GOOGLE_MAPS_API_KEY = ""

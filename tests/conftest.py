"""
Pytest configuration for storage provider tests.

Why: settings and the provider singleton are cached per process; reset them and
strip STORAGE_PROVIDER / vendor variables so each test starts from a clean env.
"""
from __future__ import annotations

import os

import pytest

_VENDOR_PREFIXES = ("STORAGE_PROVIDER", "GCP_", "AWS_", "AZURE_", "ORACLE_", "DO_", "MINIO_")


@pytest.fixture(autouse=True)
def _clean_storage_env(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith(_VENDOR_PREFIXES):
            monkeypatch.delenv(name, raising=False)

    from conversion_storage import providers
    from conversion_storage.config import get_settings

    get_settings.cache_clear()
    monkeypatch.setattr(providers, "_PROVIDER", None)
    yield
    get_settings.cache_clear()


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point ~ at a temporary directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path

"""Test configuration shared by the whole suite."""

import os
import sys

import pytest

# Make ``gas_complaints`` importable without installing the package.
ROOT_DIR = os.path.abspath(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)


@pytest.fixture(autouse=True)
def _no_cloud_env(monkeypatch):
    """Keep a developer's Supabase or relay settings out of the tests."""
    for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "SMS_RELAY_URL", "HTTP_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

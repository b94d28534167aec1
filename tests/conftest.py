"""Pytest configuration to make the backend modules importable.

The service code imports ``models``, ``services`` and ``utils`` as top-level
packages (it runs from inside ``backend/``), so that directory goes on
``sys.path`` here.
"""

import os
import sys

import pytest

BACKEND_ROOT = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "backend")

if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from services.credentials import Credential  # noqa: E402
from fakes import FakeSleep  # noqa: E402


@pytest.fixture
def credential():
    return Credential("test-api-key-123456")


@pytest.fixture
def fake_sleep():
    return FakeSleep()

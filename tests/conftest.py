"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add the project root to the path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from form_handler import Mailer, create_app
from models import FormConfig


class FakeTransport:
    """Records every message it is asked to send; raises `error` if set."""

    def __init__(self):
        self.sent = []
        self.error = None

    async def send(self, message):
        if self.error is not None:
            raise self.error
        self.sent.append(message)


class FakeConfigs:
    """In-memory form configuration lookup that counts its calls."""

    def __init__(self, forms=None):
        self.forms = dict(forms or {})
        self.calls = []

    def __call__(self, form_id):
        self.calls.append(form_id)
        return self.forms.get(form_id)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def configs():
    return FakeConfigs({
        "test": FormConfig(**{"from": "from@test", "domain": "test", "recipients": ["to@test"]}),
    })


@pytest.fixture
def client(configs, transport):
    app = create_app(Mailer(config_getter=configs, send=transport.send))
    with TestClient(app, follow_redirects=False) as c:
        yield c

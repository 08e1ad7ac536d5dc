"""
Shared fixtures for adversarial tests.

Provides a gateway pre-loaded with one victim account, plus helpers for
building hostile request bodies.
"""

import json

import pytest

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial

VICTIM_EMAIL = "victim@example.com"
VICTIM_PASSWORD = "correct-horse-battery"


def credentials(email: str, password: str) -> bytes:
    """Login body for the given credentials."""
    return json.dumps({"email": email, "password": password}).encode()


@pytest.fixture
def victim(accounts):
    """An existing account the attacker is targeting."""
    account = accounts.create("Victim", VICTIM_EMAIL, VICTIM_PASSWORD)
    accounts.write_profile(account.id, {"display_name": "Victim"})
    return account


@pytest.fixture
def victim_password() -> str:
    return VICTIM_PASSWORD


@pytest.fixture
def credentials_body():
    return credentials

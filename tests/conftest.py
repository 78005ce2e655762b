import pytest
from fastapi.testclient import TestClient

from catalog import catalog
from database import RegistrationStore, get_store
from main import app
from payments import PaymentGateway, get_gateway

TEST_SECRET = "test-secret"


@pytest.fixture
def store(tmp_path):
    return RegistrationStore(tmp_path / "registrations.xlsx", default_prefix="TESTFEST")


@pytest.fixture
def gateway():
    return PaymentGateway("rzp_test_key", key_secret=TEST_SECRET)


@pytest.fixture
def client(store, gateway):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def solo_fields():
    """Form fields for an event without team or game id requirements."""
    return {
        "participantName": "Asha Verma",
        "email": "asha@example.com",
        "phone": "9876543210",
        "college": "Government Engineering College",
    }


@pytest.fixture
def squad_fields(solo_fields):
    event = catalog.lookup("bgmi-esports")
    members = [
        {"name": f"Player {i}", "email": f"player{i}@example.com", "phone": f"98765432{i:02d}"}
        for i in range(event.team_size)
    ]
    return {
        **solo_fields,
        "teamMembers": members,
        "gameIds": [{"playerName": "Asha Verma", "gameId": "5123456789", "characterName": "Shadow"}],
    }

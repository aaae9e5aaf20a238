import json

import pytest
from fastapi.testclient import TestClient

from invoicedesk.app.main import app
from invoicedesk.app.storage import JsonStorage, get_storage


@pytest.fixture(autouse=True)
def storage(tmp_path):
    store = JsonStorage(tmp_path)
    app.dependency_overrides[get_storage] = lambda: store
    yield store
    app.dependency_overrides.clear()


def test_settings_empty_by_default():
    client = TestClient(app)
    response = client.get("/api/settings")
    assert response.status_code == 200
    assert response.json() == {}


def test_put_creates_then_merges_single_record(tmp_path):
    client = TestClient(app)
    response = client.put("/api/settings", json={"name": "Acme Pvt Ltd", "gstin": "29ABCDE1234F1Z5"})
    assert response.status_code == 200
    assert response.json() == {"success": True}

    client.put("/api/settings", json={"stateCode": "29", "salesPhone": "+91 90000 00000"})
    data = client.get("/api/settings").json()
    assert data["name"] == "Acme Pvt Ltd"
    assert data["gstin"] == "29ABCDE1234F1Z5"
    assert data["stateCode"] == "29"
    assert data["salesPhone"] == "+91 90000 00000"
    assert data["updatedAt"]

    records = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))
    assert len(records) == 1


def test_put_ignores_client_timestamp():
    client = TestClient(app)
    client.put("/api/settings", json={"name": "Acme", "updatedAt": "1999-01-01T00:00:00.000Z"})
    assert client.get("/api/settings").json()["updatedAt"] != "1999-01-01T00:00:00.000Z"

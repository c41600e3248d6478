import logging
from http import HTTPStatus
from uuid import uuid4

from fastapi.testclient import TestClient

from modeler.main import app
from modeler.services.layer_synchronizer import LayerSynchronizer


def _create_domain(client, name: str = "Sales") -> dict:
    response = client.post("/domains", json={"name": name, "description": "Revenue data"})
    assert response.status_code == HTTPStatus.CREATED
    return response.json()


def test_health_check_is_outside_api_prefix(client):
    response = client.get("http://testserver/health")
    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"status": "ok"}


def test_system_crud(client):
    create_resp = client.post("/systems", json={"name": "Warehouse", "category": "target"})
    assert create_resp.status_code == HTTPStatus.CREATED
    system = create_resp.json()
    assert system["can_be_source"] is True
    assert system["status"] == "active"

    update_resp = client.put(f"/systems/{system['id']}", json={"description": "Reporting store"})
    assert update_resp.status_code == HTTPStatus.OK
    assert update_resp.json()["description"] == "Reporting store"
    assert update_resp.json()["name"] == "Warehouse"

    listed = client.get("/systems").json()
    assert [item["name"] for item in listed] == ["Warehouse"]

    delete_resp = client.delete(f"/systems/{system['id']}")
    assert delete_resp.status_code == HTTPStatus.NO_CONTENT
    assert client.get(f"/systems/{system['id']}").status_code == HTTPStatus.NOT_FOUND


def test_duplicate_system_name_conflicts(client):
    assert client.post("/systems", json={"name": "CRM"}).status_code == HTTPStatus.CREATED

    response = client.post("/systems", json={"name": "CRM"})

    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()["message"] == "A system with this name already exists"


def test_domain_and_area_lifecycle(client):
    domain = _create_domain(client)

    area_resp = client.post("/data-areas", json={"domain_id": domain["id"], "name": "Orders"})
    assert area_resp.status_code == HTTPStatus.CREATED
    area = area_resp.json()

    areas = client.get(f"/domains/{domain['id']}/areas").json()
    assert [item["id"] for item in areas] == [area["id"]]
    assert [item["name"] for item in client.get(f"/domains/{domain['id']}").json()["areas"]] == ["Orders"]

    blocked = client.delete(f"/domains/{domain['id']}")
    assert blocked.status_code == HTTPStatus.CONFLICT
    assert blocked.json()["details"]["area_count"] == 1

    assert client.delete(f"/data-areas/{area['id']}").status_code == HTTPStatus.NO_CONTENT
    assert client.delete(f"/domains/{domain['id']}").status_code == HTTPStatus.NO_CONTENT
    assert client.get("/domains").json() == []


def test_domain_name_is_trimmed_and_required(client):
    domain = _create_domain(client, "  Finance  ")
    assert domain["name"] == "Finance"

    response = client.post("/domains", json={"name": "   "})
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["message"] == "Name is required"


def test_area_requires_existing_domain(client):
    response = client.post("/data-areas", json={"domain_id": str(uuid4()), "name": "Orphan"})
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_duplicate_area_within_domain_conflicts(client):
    domain = _create_domain(client)
    payload = {"domain_id": domain["id"], "name": "Orders"}
    assert client.post("/data-areas", json=payload).status_code == HTTPStatus.CREATED

    assert client.post("/data-areas", json=payload).status_code == HTTPStatus.CONFLICT


def test_request_validation_errors_are_bad_requests(client):
    response = client.post("/systems", json={"description": "missing name"})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    body = response.json()
    assert body["message"] == "Request validation failed"
    assert any(detail["field"] == "name" for detail in body["details"])


def test_unknown_ids_are_not_found(client):
    missing = uuid4()
    for path in (f"/systems/{missing}", f"/domains/{missing}", f"/models/{missing}", f"/objects/{missing}"):
        response = client.get(path)
        assert response.status_code == HTTPStatus.NOT_FOUND
        assert "message" in response.json()


def test_unexpected_error_renders_generic_message_and_logs_traceback(client, monkeypatch, caplog):
    model = client.post("/models", json={"name": "Ops", "layer": "conceptual"}).json()

    def explode(self, *args, **kwargs):
        raise RuntimeError("storage offline")

    monkeypatch.setattr(LayerSynchronizer, "create_object", explode)
    lenient_client = TestClient(app, raise_server_exceptions=False)

    with caplog.at_level(logging.ERROR, logger="modeler.errors"):
        response = lenient_client.post(
            "http://testserver/api/objects", json={"modelId": model["id"], "name": "Ticket"}
        )

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json()["message"] == "Internal server error"
    record = next(record for record in caplog.records if record.name == "modeler.errors")
    assert record.getMessage() == "Unhandled error on /api/objects"
    assert record.exc_info is not None and record.exc_info[0] is RuntimeError

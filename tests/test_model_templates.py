from http import HTTPStatus
from uuid import uuid4

from modeler.config import Settings
from modeler.services.model_templates import load_template, template_slug


def test_template_slug():
    assert template_slug("Data Lake") == "data_lake"
    assert template_slug("  Data-Warehouse ") == "data_warehouse"


def test_bundled_templates_load(settings):
    template = load_template("Data Lake", settings)

    assert template is not None
    assert [item.name for item in template.objects] == ["Ingestion Batch", "Raw Landing Record"]
    assert template.objects[0].attributes[0].is_primary_key is True
    assert load_template("Data Warehouse", settings) is not None


def test_missing_or_broken_templates_are_skipped(tmp_path):
    (tmp_path / "broken.yaml").write_text("objects: [unclosed", encoding="utf-8")
    settings = Settings(database_url="sqlite://", templates_path=tmp_path)

    assert load_template("Broken", settings) is None
    assert load_template("Nowhere", settings) is None


def test_create_with_layers_applies_default_template(client):
    response = client.post("/models/create-with-layers", json={"name": "Lakehouse"})

    assert response.status_code == HTTPStatus.CREATED
    body = response.json()
    assert body["templates_added"] == 2
    assert body["message"] == "Created conceptual, logical and physical models with 2 Data Lake template objects"
    systems = client.get("/systems").json()
    assert [(system["name"], system["can_be_source"]) for system in systems] == [("Data Lake", False)]
    assert body["conceptual"]["target_system_id"] == systems[0]["id"]

    physical_objects = client.get("/objects", params={"model_id": body["physical"]["id"]}).json()
    assert [item["name"] for item in physical_objects] == ["Ingestion Batch", "Raw Landing Record"]
    batch_attributes = client.get(f"/objects/{physical_objects[0]['id']}/attributes").json()
    assert [(item["name"], item["physical_type"], item["length"]) for item in batch_attributes] == [
        ("batch_id", "INT", None),
        ("source_system", "VARCHAR(255)", 255),
        ("started_at", "TIMESTAMP", None),
        ("completed_at", "TIMESTAMP", None),
        ("record_count", "INT", None),
    ]
    landing_attributes = client.get(f"/objects/{physical_objects[1]['id']}/attributes").json()
    assert {item["name"]: item["physical_type"] for item in landing_attributes}["payload"] == "TEXT"

    conceptual_objects = client.get("/objects", params={"model_id": body["conceptual"]["id"]}).json()
    assert all(client.get(f"/objects/{item['id']}/attributes").json() == [] for item in conceptual_objects)
    assert all(item["is_new"] is False for item in conceptual_objects)

    domains = client.get("/domains").json()
    assert [(domain["name"], [area["name"] for area in domain["areas"]]) for domain in domains] == [
        ("Platform", ["Ingestion"])
    ]


def test_templates_share_lineage_across_layers(client):
    body = client.post("/models/create-with-layers", json={"name": "Lakehouse"}).json()

    lake = client.get("/object-lake", params={"search": "Ingestion Batch"}).json()
    assert lake["total"] == 1
    item = lake["items"][0]
    assert [instance["model"]["id"] for instance in item["modelInstances"]] == [
        body["conceptual"]["id"],
        body["logical"]["id"],
        body["physical"]["id"],
    ]
    assert item["stats"]["attributeCount"] == 5


def test_named_target_system_uses_its_template(client):
    body = client.post(
        "/models/create-with-layers",
        json={"name": "Reporting", "targetSystem": "Data Warehouse"},
    ).json()

    assert body["templates_added"] == 2
    assert "Data Warehouse" in body["message"]


def test_unknown_target_system_is_registered_without_template(client):
    body = client.post(
        "/models/create-with-layers",
        json={"name": "Streaming", "targetSystem": "Event Hub", "includeTemplate": True},
    ).json()

    assert body["templates_added"] == 0
    assert body["message"] == "Created conceptual, logical and physical models"
    assert [system["name"] for system in client.get("/systems").json()] == ["Event Hub"]


def test_existing_target_system_is_reused(client):
    system = client.post("/systems", json={"name": "Data Lake"}).json()

    body = client.post(
        "/models/create-with-layers", json={"name": "Lake", "targetSystemId": system["id"], "includeTemplate": False}
    ).json()

    assert body["physical"]["target_system_id"] == system["id"]
    assert len(client.get("/systems").json()) == 1


def test_unknown_target_system_id_is_rejected(client):
    response = client.post("/models/create-with-layers", json={"name": "Lake", "targetSystemId": str(uuid4())})
    assert response.status_code == HTTPStatus.BAD_REQUEST

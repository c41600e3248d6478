from http import HTTPStatus
from uuid import uuid4

import pytest


@pytest.fixture()
def lake(client) -> dict:
    models = client.post("/models/create-with-layers", json={"name": "Sales", "includeTemplate": False}).json()
    conceptual_id = models["conceptual"]["id"]
    order = client.post("/objects", json={"modelId": conceptual_id, "name": "Order"}).json()
    customer = client.post(
        "/objects", json={"modelId": conceptual_id, "name": "Customer", "description": "Buyer of goods"}
    ).json()
    logical_order = next(item for item in order["replicas"] if item["layer"] == "logical")
    client.post(
        f"/objects/{logical_order['data_object']['id']}/attributes",
        json={"name": "order_id", "modelId": models["logical"]["id"], "logicalType": "INTEGER"},
    )
    client.post(
        "/relationships",
        json={
            "modelId": conceptual_id,
            "sourceModelObjectId": order["model_object"]["id"],
            "targetModelObjectId": customer["model_object"]["id"],
            "relationshipType": "N:1",
            "propagate": False,
        },
    )
    return {"models": models, "order": order, "customer": customer}


def _items_by_name(response) -> dict:
    assert response.status_code == HTTPStatus.OK
    return {item["name"]: item for item in response.json()["items"]}


def test_lake_lists_lineage_roots_with_all_instances(client, lake):
    response = client.get("/object-lake")
    body = response.json()
    items = _items_by_name(response)

    assert body["total"] == 2
    assert body["pageSize"] == 50
    assert body["totalPages"] == 1
    assert list(items) == ["Customer", "Order"]

    order = items["Order"]
    assert order["id"] == lake["order"]["data_object"]["id"]
    assert [instance["model"]["layer"] for instance in order["modelInstances"]] == [
        "conceptual",
        "logical",
        "physical",
    ]
    assert order["stats"]["instanceCount"] == 3
    assert order["stats"]["attributeCount"] == 1
    assert order["stats"]["relationshipCount"] == 1
    assert order["stats"]["lastUpdated"] is not None

    attribute = order["attributes"][0]
    assert attribute["name"] == "order_id"
    assert attribute["logicalType"] == "INTEGER"
    assert attribute["physicalType"] == "INT"
    assert sorted(entry["layer"] for entry in attribute["metadataByModel"]) == ["logical", "physical"]

    assert order["relationships"]["global"][0]["direction"] == "outgoing"
    assert items["Customer"]["relationships"]["global"][0]["direction"] == "incoming"
    assert len(order["relationships"]["modelSpecific"]) == 1


def test_has_attributes_and_layer_filters(client, lake):
    response = client.get("/object-lake", params={"hasAttributes": "false", "layer": "conceptual"})
    items = response.json()["items"]

    assert [item["name"] for item in items] == ["Customer"]
    for item in items:
        assert item["stats"]["attributeCount"] == 0
        assert any(instance["model"]["layer"] == "conceptual" for instance in item["modelInstances"])

    with_attributes = _items_by_name(client.get("/object-lake", params={"hasAttributes": "true"}))
    assert list(with_attributes) == ["Order"]


def test_page_size_is_clamped(client, lake):
    assert client.get("/object-lake", params={"pageSize": 1}).json()["pageSize"] == 10
    assert client.get("/object-lake", params={"pageSize": 1000}).json()["pageSize"] == 200

    empty_page = client.get("/object-lake", params={"page": 3}).json()
    assert empty_page["items"] == []
    assert empty_page["total"] == 2

    assert client.get("/object-lake", params={"page": 0}).status_code == HTTPStatus.BAD_REQUEST


def test_search_matches_name_or_description(client, lake):
    assert list(_items_by_name(client.get("/object-lake", params={"search": "ORD"}))) == ["Order"]
    assert list(_items_by_name(client.get("/object-lake", params={"search": "goods"}))) == ["Customer"]


def test_system_model_and_relationship_filters(client, lake):
    models = lake["models"]
    system_id = models["conceptual"]["target_system_id"]

    assert len(client.get("/object-lake", params={"systemId": system_id}).json()["items"]) == 2
    assert client.get("/object-lake", params={"systemId": str(uuid4())}).json()["items"] == []
    assert client.get("/object-lake", params={"modelId": models["physical"]["id"]}).json()["total"] == 2
    assert client.get("/object-lake", params={"relationshipType": "N:1"}).json()["total"] == 2
    assert client.get("/object-lake", params={"relationshipType": "1:1"}).json()["total"] == 0


def test_sorting_by_stats(client, lake):
    response = client.get("/object-lake", params={"sortBy": "attributeCount", "sortOrder": "desc"})
    body = response.json()

    assert [item["name"] for item in body["items"]] == ["Order", "Customer"]
    assert body["sortBy"] == "attributeCount"
    assert body["sortOrder"] == "desc"

    fallback = client.get("/object-lake", params={"sortBy": "colour"}).json()
    assert fallback["sortBy"] == "name"


def test_hidden_instances_are_excluded_by_default(client, lake):
    hidden = lake["customer"]["model_object"]["id"]
    client.put(f"/model-objects/{hidden}", json={"isVisible": False})

    visible = _items_by_name(client.get("/object-lake"))
    assert visible["Customer"]["stats"]["instanceCount"] == 2

    everything = _items_by_name(client.get("/object-lake", params={"includeHidden": "true"}))
    assert everything["Customer"]["stats"]["instanceCount"] == 3

from http import HTTPStatus
from uuid import uuid4

import pytest


@pytest.fixture()
def sales_graph(client) -> dict:
    models = client.post("/models/create-with-layers", json={"name": "Sales", "includeTemplate": False}).json()
    conceptual_id = models["conceptual"]["id"]
    logical_id = models["logical"]["id"]

    def create(name):
        return client.post("/objects", json={"modelId": conceptual_id, "name": name}).json()

    order, customer = create("Order"), create("Customer")
    logical_order = next(item for item in order["replicas"] if item["layer"] == "logical")
    logical_customer = next(item for item in customer["replicas"] if item["layer"] == "logical")

    client.post(
        "/relationships",
        json={
            "modelId": conceptual_id,
            "sourceModelObjectId": order["model_object"]["id"],
            "targetModelObjectId": customer["model_object"]["id"],
            "relationshipType": "N:1",
        },
    )
    fk = client.post(
        f"/objects/{logical_order['data_object']['id']}/attributes",
        json={"name": "customer_id", "modelId": logical_id, "logicalType": "INTEGER"},
    ).json()
    pk = client.post(
        f"/objects/{logical_customer['data_object']['id']}/attributes",
        json={"name": "id", "modelId": logical_id, "logicalType": "INTEGER", "isPrimaryKey": True},
    ).json()
    client.post(
        "/relationships",
        json={
            "modelId": logical_id,
            "sourceModelObjectId": logical_order["model_object"]["id"],
            "targetModelObjectId": logical_customer["model_object"]["id"],
            "sourceModelAttributeId": fk["model_attribute"]["id"],
            "targetModelAttributeId": pk["model_attribute"]["id"],
            "relationshipType": "N:1",
            "propagate": False,
        },
    )
    return {
        "models": models,
        "order": order,
        "customer": customer,
        "logical_order": logical_order,
    }


def test_conceptual_canvas_only_shows_object_edges(client, sales_graph):
    conceptual_id = sales_graph["models"]["conceptual"]["id"]

    response = client.get(f"/models/{conceptual_id}/canvas")

    assert response.status_code == HTTPStatus.OK
    canvas = response.json()
    assert canvas["layer"] == "conceptual"
    assert sorted(node["name"] for node in canvas["nodes"]) == ["Customer", "Order"]
    assert len(canvas["edges"]) == 1
    edge = canvas["edges"][0]
    assert edge["sourceAttributeId"] is None and edge["targetAttributeId"] is None
    assert edge["relationshipType"] == "N:1"
    assert edge["dataObjectRelationshipId"] is not None


def test_logical_canvas_only_shows_attribute_edges(client, sales_graph):
    logical_id = sales_graph["models"]["logical"]["id"]

    canvas = client.get(f"/models/{logical_id}/canvas").json()

    assert canvas["edges"], "the attribute-level edge should be visible"
    for edge in canvas["edges"]:
        assert edge["sourceAttributeId"] is not None
        assert edge["targetAttributeId"] is not None
    order_node = next(node for node in canvas["nodes"] if node["name"] == "Order")
    assert [attribute["name"] for attribute in order_node["attributes"]] == ["customer_id"]
    assert order_node["attributes"][0]["logicalType"] == "INTEGER"


def test_nodes_default_to_standard_position(client, sales_graph):
    conceptual_id = sales_graph["models"]["conceptual"]["id"]

    canvas = client.get(f"/models/{conceptual_id}/canvas").json()

    assert {(node["position"]["x"], node["position"]["y"]) for node in canvas["nodes"]} == {(100.0, 100.0)}


def test_hidden_projection_is_omitted_unless_requested(client, sales_graph):
    logical_id = sales_graph["models"]["logical"]["id"]
    hidden_id = sales_graph["logical_order"]["model_object"]["id"]
    update = client.put(f"/model-objects/{hidden_id}", json={"isVisible": False})
    assert update.status_code == HTTPStatus.OK
    assert update.json()["is_visible"] is False

    canvas = client.get(f"/models/{logical_id}/canvas").json()
    assert hidden_id not in {node["id"] for node in canvas["nodes"]}
    assert canvas["edges"] == []

    everything = client.get(f"/models/{logical_id}/canvas", params={"includeHidden": "true"}).json()
    assert hidden_id in {node["id"] for node in everything["nodes"]}


def test_saved_positions_are_returned_per_layer(client, sales_graph):
    conceptual_id = sales_graph["models"]["conceptual"]["id"]
    order_projection = sales_graph["order"]["model_object"]["id"]

    response = client.post(
        f"/models/{conceptual_id}/canvas/positions",
        json={
            "positions": [
                {"modelObjectId": order_projection, "position": {"x": 320, "y": 48.5}},
                {"objectId": str(uuid4()), "position": {"x": 1, "y": 1}},
            ]
        },
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"layer": "conceptual", "updated": 1, "skipped": 1}
    canvas = client.get(f"/models/{conceptual_id}/canvas").json()
    order_node = next(node for node in canvas["nodes"] if node["modelObjectId"] == order_projection)
    assert order_node["position"] == {"x": 320.0, "y": 48.5}
    assert order_node["layerSpecificConfig"]["last_updated_layer"] == "conceptual"


def test_canvas_for_unknown_model_is_not_found(client):
    assert client.get(f"/models/{uuid4()}/canvas").status_code == HTTPStatus.NOT_FOUND

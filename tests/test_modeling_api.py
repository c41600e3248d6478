from http import HTTPStatus
from uuid import uuid4

import pytest

from modeler.services.layer_synchronizer import LayerSynchronizer


def _create_layered_model(client, name: str = "Sales") -> dict:
    response = client.post("/models/create-with-layers", json={"name": name, "includeTemplate": False})
    assert response.status_code == HTTPStatus.CREATED
    return response.json()


def _create_object(client, model_id: str, name: str, **extra) -> dict:
    response = client.post("/objects", json={"modelId": model_id, "name": name, **extra})
    assert response.status_code == HTTPStatus.CREATED
    return response.json()


def _add_attribute(client, object_id: str, model_id: str, name: str, **extra) -> dict:
    response = client.post(
        f"/objects/{object_id}/attributes",
        json={"name": name, "modelId": model_id, **extra},
    )
    assert response.status_code == HTTPStatus.CREATED
    return response.json()


def _replica(created: dict, layer: str) -> dict:
    return next(replica for replica in created["replicas"] if replica["layer"] == layer)


def test_order_attribute_cascades_to_physical_layer(client):
    domain = client.post("/domains", json={"name": "Commerce"}).json()
    models = _create_layered_model(client)
    logical_model_id = models["logical"]["id"]

    order = _create_object(client, models["conceptual"]["id"], "Order", domainId=domain["id"])
    assert order["skipped_layers"] == []
    logical_order = _replica(order, "logical")
    physical_order = _replica(order, "physical")
    assert logical_order["data_object"]["domain_id"] == domain["id"]

    result = _add_attribute(
        client,
        logical_order["data_object"]["id"],
        logical_model_id,
        "order_id",
        conceptualType="Number",
        logicalType="INTEGER",
    )

    assert result["warnings"] == []
    assert result["model_attribute"]["model_id"] == logical_model_id
    mirrored = result["mirrored_attribute"]
    assert mirrored["object_id"] == physical_order["data_object"]["id"]
    assert mirrored["physical_type"] == "INT"
    assert mirrored["length"] is None
    assert mirrored["origin_attribute_id"] == result["attribute"]["id"]

    physical_attributes = client.get(f"/objects/{physical_order['data_object']['id']}/attributes").json()
    assert [attribute["name"] for attribute in physical_attributes] == ["order_id"]


def test_layered_models_share_a_family(client):
    models = _create_layered_model(client, "Finance")

    assert models["logical"]["name"] == "Finance (Logical)"
    assert models["physical"]["parent_model_id"] == models["conceptual"]["id"]
    assert models["message"] == "Created conceptual, logical and physical models"

    family = client.get(f"/models/{models['physical']['id']}/family").json()
    assert family["conceptual"]["id"] == models["conceptual"]["id"]
    assert family["logical"]["id"] == models["logical"]["id"]

    listed = client.get("/models", params={"layer": "logical"}).json()
    assert [model["id"] for model in listed] == [models["logical"]["id"]]


def test_model_creation_validates_parents(client):
    conceptual = client.post("/models", json={"name": "Ops", "layer": "conceptual"})
    assert conceptual.status_code == HTTPStatus.CREATED
    conceptual_id = conceptual.json()["id"]

    orphan = client.post("/models", json={"name": "Ops (Logical)", "layer": "logical"})
    assert orphan.status_code == HTTPStatus.BAD_REQUEST

    missing_parent = client.post(
        "/models", json={"name": "Ops (Logical)", "layer": "logical", "parent_model_id": str(uuid4())}
    )
    assert missing_parent.status_code == HTTPStatus.BAD_REQUEST

    logical = client.post(
        "/models", json={"name": "Ops (Logical)", "layer": "logical", "parent_model_id": conceptual_id}
    )
    assert logical.status_code == HTTPStatus.CREATED

    duplicate = client.post(
        "/models", json={"name": "Ops (Logical 2)", "layer": "logical", "parent_model_id": conceptual_id}
    )
    assert duplicate.status_code == HTTPStatus.CONFLICT

    nested = client.post(
        "/models", json={"name": "Ops (Physical)", "layer": "physical", "parent_model_id": logical.json()["id"]}
    )
    assert nested.status_code == HTTPStatus.BAD_REQUEST

    parented_root = client.post(
        "/models", json={"name": "Ops 2", "layer": "conceptual", "parent_model_id": conceptual_id}
    )
    assert parented_root.status_code == HTTPStatus.BAD_REQUEST


def test_object_creation_requires_known_model(client):
    response = client.post("/objects", json={"modelId": str(uuid4()), "name": "Ghost"})
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_object_and_attribute_level_relationships_do_not_collide(client):
    models = _create_layered_model(client)
    conceptual_id = models["conceptual"]["id"]
    logical_id = models["logical"]["id"]
    order = _create_object(client, conceptual_id, "Order")
    customer = _create_object(client, conceptual_id, "Customer")

    conceptual_rel = client.post(
        "/relationships",
        json={
            "modelId": conceptual_id,
            "sourceModelObjectId": order["model_object"]["id"],
            "targetModelObjectId": customer["model_object"]["id"],
            "relationshipType": "N:1",
            "propagate": False,
        },
    )
    assert conceptual_rel.status_code == HTTPStatus.CREATED

    logical_order = _replica(order, "logical")
    logical_customer = _replica(customer, "logical")
    fk = _add_attribute(
        client, logical_order["data_object"]["id"], logical_id, "customer_id", logicalType="INTEGER", isForeignKey=True
    )
    pk = _add_attribute(
        client, logical_customer["data_object"]["id"], logical_id, "id", logicalType="INTEGER", isPrimaryKey=True
    )

    logical_rel = client.post(
        "/relationships",
        json={
            "modelId": logical_id,
            "sourceModelObjectId": logical_order["model_object"]["id"],
            "targetModelObjectId": logical_customer["model_object"]["id"],
            "sourceModelAttributeId": fk["model_attribute"]["id"],
            "targetModelAttributeId": pk["model_attribute"]["id"],
            "type": "N:1",
            "propagate": False,
        },
    )
    assert logical_rel.status_code == HTTPStatus.CREATED

    first, second = conceptual_rel.json(), logical_rel.json()
    assert first["global_relationship_id"] != second["global_relationship_id"]
    assert first["relationship"]["id"] != second["relationship"]["id"]
    assert second["relationship"]["relationship_level"] == "attribute"

    globals_ = client.get("/global-relationships", params={"object_id": order["data_object"]["id"]}).json()
    assert sorted(item["relationship_level"] for item in globals_) == ["attribute", "object"]
    assert client.get("/global-relationships", params={"level": "table"}).status_code == HTTPStatus.BAD_REQUEST


def test_relationship_propagates_and_removal_reports_orphans(client):
    models = _create_layered_model(client)
    conceptual_id = models["conceptual"]["id"]
    order = _create_object(client, conceptual_id, "Order")
    customer = _create_object(client, conceptual_id, "Customer")

    created = client.post(
        "/relationships",
        json={
            "modelId": conceptual_id,
            "sourceModelObjectId": order["model_object"]["id"],
            "targetModelObjectId": customer["model_object"]["id"],
            "relationshipType": "N:1",
        },
    ).json()
    assert sorted(created["synced_model_ids"]) == sorted([models["logical"]["id"], models["physical"]["id"]])
    logical_edges = client.get(f"/models/{models['logical']['id']}/relationships").json()
    assert [edge["propagated_from_id"] for edge in logical_edges] == [created["relationship"]["id"]]

    removal = client.delete(f"/relationships/{created['relationship']['id']}")
    assert removal.status_code == HTTPStatus.OK
    body = removal.json()
    assert len(body["deleted_ids"]) == 3
    assert body["orphaned_global_ids"] == [created["global_relationship_id"]]
    assert client.get(f"/models/{models['logical']['id']}/relationships").json() == []


def test_relationship_with_half_attribute_pair_is_rejected(client):
    models = _create_layered_model(client)
    conceptual_id = models["conceptual"]["id"]
    order = _create_object(client, conceptual_id, "Order")
    customer = _create_object(client, conceptual_id, "Customer")

    response = client.post(
        "/relationships",
        json={
            "modelId": conceptual_id,
            "sourceModelObjectId": order["model_object"]["id"],
            "targetModelObjectId": customer["model_object"]["id"],
            "sourceModelAttributeId": str(uuid4()),
            "relationshipType": "1:1",
        },
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_generate_next_layer_for_standalone_conceptual_model(client):
    conceptual = client.post("/models", json={"name": "HR", "layer": "conceptual"}).json()
    employee = _create_object(client, conceptual["id"], "Employee")
    assert employee["skipped_layers"] == ["logical", "physical"]
    client.post(
        f"/objects/{employee['data_object']['id']}/attributes",
        json={"name": "hired_on", "conceptualType": "Date"},
    )
    logical = client.post(
        "/models", json={"name": "HR (Logical)", "layer": "logical", "parent_model_id": conceptual["id"]}
    ).json()

    response = client.post(f"/objects/{employee['data_object']['id']}/generate-next-layer")

    assert response.status_code == HTTPStatus.CREATED
    replica = response.json()
    assert replica["layer"] == "logical"
    assert replica["model_object"]["model_id"] == logical["id"]
    assert [(attribute["name"], attribute["logical_type"]) for attribute in replica["attributes"]] == [
        ("hired_on", "DATE")
    ]

    again = client.post(f"/objects/{employee['data_object']['id']}/generate-next-layer")
    assert again.status_code == HTTPStatus.CONFLICT


def test_deleting_conceptual_object_clears_every_layer(client):
    models = _create_layered_model(client)
    order = _create_object(client, models["conceptual"]["id"], "Order")

    response = client.delete(f"/objects/{order['data_object']['id']}")

    assert response.status_code == HTTPStatus.NO_CONTENT
    for layer in ("conceptual", "logical", "physical"):
        assert client.get(f"/models/{models[layer]['id']}/objects").json() == []
    assert client.get("/objects").json() == []


def test_deleting_conceptual_model_removes_family(client):
    models = _create_layered_model(client)
    _create_object(client, models["conceptual"]["id"], "Order")

    response = client.delete(f"/models/{models['conceptual']['id']}")

    assert response.status_code == HTTPStatus.NO_CONTENT
    assert client.get("/models").json() == []
    assert client.get("/objects").json() == []


def test_attach_object_twice_conflicts(client):
    models = _create_layered_model(client)
    draft_model = client.post("/models", json={"name": "Scratch", "layer": "conceptual"}).json()
    order = _create_object(client, models["conceptual"]["id"], "Order")

    first = client.post(f"/models/{draft_model['id']}/objects", json={"objectId": order["data_object"]["id"]})
    assert first.status_code == HTTPStatus.CREATED
    second = client.post(f"/models/{draft_model['id']}/objects", json={"objectId": order["data_object"]["id"]})
    assert second.status_code == HTTPStatus.CONFLICT


def _declare(client, model_id: str, source: dict, target: dict, relationship_type: str = "N:1") -> dict:
    response = client.post(
        "/relationships",
        json={
            "modelId": model_id,
            "sourceModelObjectId": source["model_object"]["id"],
            "targetModelObjectId": target["model_object"]["id"],
            "relationshipType": relationship_type,
        },
    )
    assert response.status_code == HTTPStatus.CREATED
    return response.json()


def test_retargeting_relationship_moves_edge_and_mirrors_to_new_global(client):
    models = _create_layered_model(client)
    conceptual_id = models["conceptual"]["id"]
    order = _create_object(client, conceptual_id, "Order")
    customer = _create_object(client, conceptual_id, "Customer")
    product = _create_object(client, conceptual_id, "Product")
    created = _declare(client, conceptual_id, order, customer)

    response = client.put(
        f"/relationships/{created['relationship']['id']}",
        json={"targetModelObjectId": product["model_object"]["id"]},
    )
    assert response.status_code == HTTPStatus.OK
    body = response.json()
    assert body["global_relationship_id"] != created["global_relationship_id"]
    assert body["relationship"]["target_model_object_id"] == product["model_object"]["id"]

    logical_edges = client.get(f"/models/{models['logical']['id']}/relationships").json()
    assert len(logical_edges) == 1
    assert logical_edges[0]["target_model_object_id"] == _replica(product, "logical")["model_object"]["id"]
    assert logical_edges[0]["global_relationship_id"] == body["global_relationship_id"]


def test_updating_relationship_onto_existing_edge_conflicts(client):
    models = _create_layered_model(client)
    conceptual_id = models["conceptual"]["id"]
    order = _create_object(client, conceptual_id, "Order")
    customer = _create_object(client, conceptual_id, "Customer")
    product = _create_object(client, conceptual_id, "Product")
    _declare(client, conceptual_id, order, customer)
    second = _declare(client, conceptual_id, order, product)

    response = client.put(
        f"/relationships/{second['relationship']['id']}",
        json={"targetModelObjectId": customer["model_object"]["id"]},
    )
    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()["message"] == "An identical relationship already exists in this model"
    assert len(client.get("/global-relationships").json()) == 2


def test_failed_layer_replication_rolls_back_whole_object_creation(client, monkeypatch):
    models = _create_layered_model(client)
    original = LayerSynchronizer.replicate_object

    def replicate_or_fail(self, source, target_model, **kwargs):
        if target_model.layer == "physical":
            raise RuntimeError("physical store unavailable")
        return original(self, source, target_model, **kwargs)

    monkeypatch.setattr(LayerSynchronizer, "replicate_object", replicate_or_fail)

    with pytest.raises(RuntimeError):
        client.post("/objects", json={"modelId": models["conceptual"]["id"], "name": "Order"})

    assert client.get("/objects").json() == []
    for layer in ("conceptual", "logical", "physical"):
        assert client.get(f"/models/{models[layer]['id']}/objects").json() == []

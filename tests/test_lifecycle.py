from http import HTTPStatus


def _create_model(client) -> dict:
    response = client.post("/models", json={"name": "Sales", "layer": "conceptual"})
    assert response.status_code == HTTPStatus.CREATED
    return response.json()


def test_phases_are_seeded_once_in_order(client):
    first = client.get("/lifecycle/phases").json()
    second = client.get("/lifecycle/phases").json()

    assert [phase["name"] for phase in first] == ["ideate", "design", "build", "validate", "deploy", "monitor"]
    assert [phase["sequence"] for phase in first] == [1, 2, 3, 4, 5, 6]
    assert [phase["id"] for phase in second] == [phase["id"] for phase in first]


def test_assign_update_and_approve_phase(client):
    model = _create_model(client)

    created = client.post(f"/models/{model['id']}/lifecycle", json={"phase": "Design", "owner": "data-team"})
    assert created.status_code == HTTPStatus.CREATED
    assignment = created.json()
    assert assignment["phase"]["name"] == "design"
    assert assignment["status"] == "not_started"

    early = client.post(f"/lifecycle-assignments/{assignment['id']}/approve", json={"approved_by": "lead"})
    assert early.status_code == HTTPStatus.BAD_REQUEST
    assert early.json()["details"]["status"] == "not_started"

    updated = client.patch(f"/lifecycle-assignments/{assignment['id']}", json={"status": "completed"})
    assert updated.status_code == HTTPStatus.OK
    assert updated.json()["status"] == "completed"
    assert updated.json()["owner"] == "data-team"

    approved = client.post(f"/lifecycle-assignments/{assignment['id']}/approve", json={"approved_by": " lead "})
    assert approved.status_code == HTTPStatus.OK
    assert approved.json()["approved_by"] == "lead"
    assert approved.json()["approved_at"] is not None

    listed = client.get(f"/models/{model['id']}/lifecycle").json()
    assert [item["id"] for item in listed] == [assignment["id"]]


def test_duplicate_and_unknown_phases_are_rejected(client):
    model = _create_model(client)
    assert client.post(f"/models/{model['id']}/lifecycle", json={"phase": "build"}).status_code == HTTPStatus.CREATED

    duplicate = client.post(f"/models/{model['id']}/lifecycle", json={"phase": "build"})
    assert duplicate.status_code == HTTPStatus.CONFLICT

    unknown = client.post(f"/models/{model['id']}/lifecycle", json={"phase": "retire"})
    assert unknown.status_code == HTTPStatus.BAD_REQUEST

    bad_status = client.post(f"/models/{model['id']}/lifecycle", json={"phase": "deploy", "status": "done"})
    assert bad_status.status_code == HTTPStatus.BAD_REQUEST


def test_deleting_model_removes_lifecycle_assignments(client):
    model = _create_model(client)
    client.post(f"/models/{model['id']}/lifecycle", json={"phase": "ideate"})

    assert client.delete(f"/models/{model['id']}").status_code == HTTPStatus.NO_CONTENT
    assert client.get(f"/models/{model['id']}/lifecycle").status_code == HTTPStatus.NOT_FOUND

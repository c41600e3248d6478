import uuid

import pytest

from modeler.errors import CycleOrMissingRoot, FamilyIntegrityError
from modeler.models import DataModel
from modeler.services.model_family import build_family, find_root, resolve_model_family


def _model(layer: str, parent: DataModel | None = None, name: str | None = None) -> DataModel:
    return DataModel(
        id=uuid.uuid4(),
        name=name or f"{layer} model",
        layer=layer,
        parent_model_id=parent.id if parent else None,
    )


def test_family_resolves_from_any_member():
    conceptual = _model("conceptual")
    logical = _model("logical", conceptual)
    physical = _model("physical", conceptual)
    models = {model.id: model for model in (conceptual, logical, physical)}

    for member in models.values():
        root = find_root(member, models)
        assert root.id == conceptual.id

    family = build_family(conceptual, models.values())
    assert family.logical is logical
    assert family.physical is physical
    assert [model.id for model in family.siblings_of(logical)] == [conceptual.id, physical.id]


def test_family_allows_missing_layers():
    conceptual = _model("conceptual")
    family = build_family(conceptual, [conceptual])

    assert family.logical is None
    assert family.physical is None
    assert family.members() == [conceptual]


def test_chained_parents_resolve_to_conceptual_root():
    conceptual = _model("conceptual")
    logical = _model("logical", conceptual)
    physical = _model("physical", logical)
    models = {model.id: model for model in (conceptual, logical, physical)}

    assert find_root(physical, models) is conceptual
    assert build_family(conceptual, models.values()).physical is physical


def test_missing_parent_raises():
    conceptual = _model("conceptual")
    orphan = _model("logical", conceptual)

    with pytest.raises(CycleOrMissingRoot):
        find_root(orphan, {orphan.id: orphan})


def test_cycle_raises():
    first = _model("logical")
    second = _model("physical", first)
    first.parent_model_id = second.id

    with pytest.raises(CycleOrMissingRoot):
        find_root(first, {first.id: first, second.id: second})


def test_non_conceptual_root_raises():
    logical = _model("logical")

    with pytest.raises(CycleOrMissingRoot):
        find_root(logical, {logical.id: logical})


def test_duplicate_layer_raises():
    conceptual = _model("conceptual")
    first = _model("logical", conceptual)
    second = _model("logical", conceptual)

    with pytest.raises(FamilyIntegrityError):
        build_family(conceptual, [conceptual, first, second])


def test_resolve_model_family_reads_session(db_session):
    conceptual = DataModel(name="Sales", layer="conceptual")
    db_session.add(conceptual)
    db_session.flush()
    logical = DataModel(name="Sales (Logical)", layer="logical", parent_model_id=conceptual.id)
    db_session.add(logical)
    db_session.flush()

    family = resolve_model_family(db_session, logical)

    assert family.root_id == conceptual.id
    assert family.logical.id == logical.id
    assert family.contains(conceptual.id)
    assert family.physical is None

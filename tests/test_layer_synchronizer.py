import pytest

from modeler.errors import ConflictError, ValidationError
from modeler.models import Attribute, DataModel, DataModelObject, DataObject
from modeler.services.layer_synchronizer import LayerSynchronizer, normalize_name


def _create_family(db_session, name: str = "Sales", *, physical: bool = True):
    conceptual = DataModel(name=name, layer="conceptual")
    db_session.add(conceptual)
    db_session.flush()
    logical = DataModel(name=f"{name} (Logical)", layer="logical", parent_model_id=conceptual.id)
    db_session.add(logical)
    physical_model = None
    if physical:
        physical_model = DataModel(name=f"{name} (Physical)", layer="physical", parent_model_id=conceptual.id)
        db_session.add(physical_model)
    db_session.flush()
    return conceptual, logical, physical_model


def test_normalize_name():
    assert normalize_name("Order Line") == normalize_name("order_line")
    assert normalize_name(None) == ""


def test_conceptual_object_is_replicated_to_sibling_layers(db_session, settings):
    conceptual, logical, physical = _create_family(db_session)
    synchronizer = LayerSynchronizer(db_session, settings)

    result = synchronizer.create_object(conceptual, {"name": "  Order  ", "object_type": "entity"})

    assert result.data_object.name == "Order"
    assert result.skipped_layers == []
    assert [replica.layer for replica in result.replicas] == ["logical", "physical"]
    for replica in result.replicas:
        assert replica.data_object.origin_object_id == result.data_object.id
        assert replica.data_object.lineage_root_id == result.data_object.id
        assert replica.model_object.layer_specific_config["origin_object_id"] == str(result.data_object.id)

    assert db_session.query(DataModelObject).count() == 3
    assert db_session.query(DataObject).filter(DataObject.origin_object_id.is_(None)).count() == 1


def test_missing_layer_is_skipped(db_session, settings):
    conceptual, _, _ = _create_family(db_session, physical=False)
    synchronizer = LayerSynchronizer(db_session, settings)

    result = synchronizer.create_object(conceptual, {"name": "Customer"})

    assert [replica.layer for replica in result.replicas] == ["logical"]
    assert result.skipped_layers == ["physical"]


def test_create_object_requires_name(db_session, settings):
    conceptual, _, _ = _create_family(db_session)

    with pytest.raises(ValidationError):
        LayerSynchronizer(db_session, settings).create_object(conceptual, {"name": "   "})


def test_replicating_twice_conflicts(db_session, settings):
    conceptual, logical, _ = _create_family(db_session)
    synchronizer = LayerSynchronizer(db_session, settings)
    result = synchronizer.create_object(conceptual, {"name": "Invoice"})

    with pytest.raises(ConflictError):
        synchronizer.replicate_object(result.data_object, logical)


def test_logical_attribute_cascades_to_physical(db_session, settings):
    conceptual, logical, physical = _create_family(db_session)
    synchronizer = LayerSynchronizer(db_session, settings)
    created = synchronizer.create_object(conceptual, {"name": "Order"})
    logical_replica, physical_replica = created.replicas

    result = synchronizer.create_attribute(
        logical_replica.data_object,
        {"name": "order_id", "logical_type": "INTEGER", "is_primary_key": True},
        model_object=logical_replica.model_object,
    )

    assert result.warnings == []
    mirror = result.mirrored_attribute
    assert mirror is not None
    assert mirror.object_id == physical_replica.data_object.id
    assert mirror.physical_type == "INT"
    assert mirror.length is None
    assert mirror.is_primary_key is True
    assert mirror.origin_attribute_id == result.attribute.id
    assert result.mirrored_model_attribute.model_object_id == physical_replica.model_object.id


def test_logical_attribute_defaults_varchar_length(db_session, settings):
    conceptual, _, _ = _create_family(db_session)
    synchronizer = LayerSynchronizer(db_session, settings)
    logical_replica = synchronizer.create_object(conceptual, {"name": "Customer"}).replicas[0]

    result = synchronizer.create_attribute(
        logical_replica.data_object,
        {"name": "email", "conceptual_type": "Email"},
        model_object=logical_replica.model_object,
    )

    assert result.attribute.logical_type == "VARCHAR"
    assert result.mirrored_attribute.physical_type == "VARCHAR(255)"
    assert result.mirrored_attribute.length == 255


def test_attribute_update_refreshes_mirror(db_session, settings):
    conceptual, _, _ = _create_family(db_session)
    synchronizer = LayerSynchronizer(db_session, settings)
    logical_replica = synchronizer.create_object(conceptual, {"name": "Payment"}).replicas[0]
    created = synchronizer.create_attribute(
        logical_replica.data_object,
        {"name": "amount", "logical_type": "INTEGER"},
        model_object=logical_replica.model_object,
    )

    updated = synchronizer.update_attribute(created.attribute, {"logical_type": "DECIMAL"})

    assert updated.mirrored_attribute.id == created.mirrored_attribute.id
    assert updated.mirrored_attribute.physical_type == "DECIMAL(10,2)"
    assert (updated.mirrored_attribute.precision, updated.mirrored_attribute.scale) == (10, 2)
    assert db_session.query(Attribute).filter(Attribute.origin_attribute_id == created.attribute.id).count() == 1


def test_cascade_without_physical_projection_warns(db_session, settings):
    conceptual, logical, physical = _create_family(db_session)
    synchronizer = LayerSynchronizer(db_session, settings)
    data_object = DataObject(name="Standalone", model_id=logical.id)
    db_session.add(data_object)
    db_session.flush()
    model_object = synchronizer.attach_object(logical, data_object)

    result = synchronizer.create_attribute(data_object, {"name": "code"}, model_object=model_object)

    assert result.mirrored_attribute is None
    assert len(result.warnings) == 1


def test_root_update_pushes_name_to_replicas(db_session, settings):
    conceptual, _, _ = _create_family(db_session)
    synchronizer = LayerSynchronizer(db_session, settings)
    created = synchronizer.create_object(conceptual, {"name": "Client"})

    updated = synchronizer.update_object(created.data_object, {"name": "Customer"})

    assert len(updated) == 2
    assert {replica.name for replica in updated} == {"Customer"}


def test_generate_next_layer_derives_types(db_session, settings):
    conceptual = DataModel(name="Inventory", layer="conceptual")
    db_session.add(conceptual)
    db_session.flush()
    synchronizer = LayerSynchronizer(db_session, settings)
    created = synchronizer.create_object(conceptual, {"name": "Item"})
    synchronizer.create_attribute(created.data_object, {"name": "quantity", "conceptual_type": "Number"})
    logical = DataModel(name="Inventory (Logical)", layer="logical", parent_model_id=conceptual.id)
    db_session.add(logical)
    db_session.flush()
    db_session.expire(created.data_object)

    replica = LayerSynchronizer(db_session, settings).generate_next_layer(created.data_object)

    assert replica.layer == "logical"
    assert replica.model.id == logical.id
    assert [attribute.logical_type for attribute in replica.attributes] == ["INTEGER"]
    assert replica.attributes[0].origin_attribute_id is not None


def test_physical_objects_have_no_next_layer(db_session, settings):
    conceptual, _, _ = _create_family(db_session)
    synchronizer = LayerSynchronizer(db_session, settings)
    physical_replica = synchronizer.create_object(conceptual, {"name": "Ledger"}).replicas[1]

    with pytest.raises(ValidationError):
        synchronizer.generate_next_layer(physical_replica.data_object)

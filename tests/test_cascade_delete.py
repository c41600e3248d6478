from modeler.models import (
    Attribute,
    DataModel,
    DataModelAttribute,
    DataModelObject,
    DataModelObjectRelationship,
    DataObject,
    DataObjectRelationship,
)
from modeler.services.cascade_delete import CascadeDeleter
from modeler.services.layer_synchronizer import LayerSynchronizer
from modeler.services.relationship_sync import RelationshipSynchronizer


def _seed(db_session, settings):
    conceptual = DataModel(name="Billing", layer="conceptual")
    db_session.add(conceptual)
    db_session.flush()
    logical = DataModel(name="Billing (Logical)", layer="logical", parent_model_id=conceptual.id)
    physical = DataModel(name="Billing (Physical)", layer="physical", parent_model_id=conceptual.id)
    db_session.add_all([logical, physical])
    db_session.flush()

    layers = LayerSynchronizer(db_session, settings)
    invoice = layers.create_object(conceptual, {"name": "Invoice"})
    account = layers.create_object(conceptual, {"name": "Account"})
    logical_invoice = invoice.replicas[0]
    amount = layers.create_attribute(
        logical_invoice.data_object,
        {"name": "amount", "logical_type": "DECIMAL"},
        model_object=logical_invoice.model_object,
    )
    RelationshipSynchronizer(db_session, settings, layers).declare(
        conceptual.id, invoice.model_object.id, account.model_object.id, "N:1"
    )
    return conceptual, logical, physical, invoice, account, amount


def test_deleting_conceptual_object_removes_all_layers(db_session, settings):
    _, _, _, invoice, _, _ = _seed(db_session, settings)

    summary = CascadeDeleter(db_session).delete_object(invoice.data_object)

    assert summary.objects == 3
    assert summary.relationships == 3
    assert summary.global_relationships == 1
    assert summary.attributes == 2
    assert db_session.query(DataObject).filter(DataObject.name == "Invoice").count() == 0
    assert db_session.query(DataModelObjectRelationship).count() == 0
    assert db_session.query(DataObjectRelationship).count() == 0
    assert db_session.query(DataObject).filter(DataObject.name == "Account").count() == 3


def test_deleting_logical_object_only_removes_downstream(db_session, settings):
    conceptual, _, physical, invoice, _, _ = _seed(db_session, settings)
    logical_object_id = invoice.replicas[0].data_object.id
    physical_object_id = invoice.replicas[1].data_object.id

    summary = CascadeDeleter(db_session).delete_object(invoice.replicas[0].data_object)

    assert summary.objects == 2
    assert db_session.get(DataObject, logical_object_id) is None
    assert db_session.get(DataObject, physical_object_id) is None
    assert db_session.get(DataObject, invoice.data_object.id) is not None
    remaining_edges = db_session.query(DataModelObjectRelationship).all()
    assert [edge.model_id for edge in remaining_edges] == [conceptual.id]


def test_deleting_object_without_cascade_keeps_replicas(db_session, settings):
    _, _, _, invoice, _, _ = _seed(db_session, settings)
    replica_id = invoice.replicas[0].data_object.id

    CascadeDeleter(db_session).delete_object(invoice.data_object, cascade_layers=False)

    replica = db_session.get(DataObject, replica_id)
    assert replica is not None
    assert replica.origin_object_id is None


def test_deleting_logical_attribute_removes_physical_mirror(db_session, settings):
    _, _, _, _, _, amount = _seed(db_session, settings)
    mirror_id = amount.mirrored_attribute.id

    summary = CascadeDeleter(db_session).delete_attribute(amount.attribute)

    assert summary.attributes == 2
    assert summary.model_attributes == 2
    assert db_session.get(Attribute, mirror_id) is None
    assert db_session.query(DataModelAttribute).count() == 0


def test_deleting_models_removes_their_content(db_session, settings):
    conceptual, logical, physical, _, _, _ = _seed(db_session, settings)

    summary = CascadeDeleter(db_session).delete_models([conceptual.id, logical.id, physical.id])

    assert summary.models == 3
    assert summary.objects == 6
    assert db_session.query(DataModelObject).count() == 0
    assert db_session.query(DataModel).count() == 0

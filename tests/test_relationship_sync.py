import pytest

from modeler.errors import CanonicalResolutionError, ConflictError, ValidationError
from modeler.models import DataModel, DataModelObjectRelationship, DataObjectRelationship
from modeler.services.layer_synchronizer import LayerSynchronizer
from modeler.services.relationship_sync import RelationshipSynchronizer


@pytest.fixture()
def family(db_session, settings):
    conceptual = DataModel(name="Sales", layer="conceptual")
    db_session.add(conceptual)
    db_session.flush()
    logical = DataModel(name="Sales (Logical)", layer="logical", parent_model_id=conceptual.id)
    physical = DataModel(name="Sales (Physical)", layer="physical", parent_model_id=conceptual.id)
    db_session.add_all([logical, physical])
    db_session.flush()

    layers = LayerSynchronizer(db_session, settings)
    order = layers.create_object(conceptual, {"name": "Order"})
    customer = layers.create_object(conceptual, {"name": "Customer"})
    return {
        "models": (conceptual, logical, physical),
        "layers": layers,
        "order": order,
        "customer": customer,
    }


def test_conceptual_relationship_is_mirrored(db_session, settings, family):
    conceptual, logical, physical = family["models"]
    synchronizer = RelationshipSynchronizer(db_session, settings, family["layers"])

    declaration = synchronizer.declare(
        conceptual.id,
        family["order"].model_object.id,
        family["customer"].model_object.id,
        "N:1",
    )

    global_relationship = declaration.global_relationship
    assert global_relationship.relationship_level == "object"
    assert global_relationship.source_object_id == family["order"].data_object.id
    assert global_relationship.relationship_key.endswith("|object|null|null")
    assert {edge.model_id for edge in declaration.synced} == {logical.id, physical.id}
    for edge in declaration.synced:
        assert edge.propagated_from_id == declaration.model_relationship.id
        assert edge.global_relationship_id == global_relationship.id
        assert edge.relationship_type == "N:1"


def test_redeclaring_in_sibling_reuses_global(db_session, settings, family):
    conceptual, logical, _ = family["models"]
    synchronizer = RelationshipSynchronizer(db_session, settings, family["layers"])
    first = synchronizer.declare(
        conceptual.id,
        family["order"].model_object.id,
        family["customer"].model_object.id,
        "N:1",
        propagate=False,
    )
    order_logical = family["order"].replicas[0].model_object
    customer_logical = family["customer"].replicas[0].model_object

    second = synchronizer.declare(logical.id, order_logical.id, customer_logical.id, "1:N", propagate=False)

    assert second.global_relationship.id == first.global_relationship.id
    assert second.global_relationship.relationship_type == "1:N"
    assert db_session.query(DataObjectRelationship).count() == 1


def test_attribute_level_relationship_has_distinct_global(db_session, settings, family):
    _, logical, _ = family["models"]
    layers = family["layers"]
    order_replica = family["order"].replicas[0]
    customer_replica = family["customer"].replicas[0]
    order_fk = layers.create_attribute(
        order_replica.data_object,
        {"name": "customer_id", "logical_type": "INTEGER", "is_foreign_key": True},
        model_object=order_replica.model_object,
    )
    customer_pk = layers.create_attribute(
        customer_replica.data_object,
        {"name": "customer_id", "logical_type": "INTEGER", "is_primary_key": True},
        model_object=customer_replica.model_object,
    )
    synchronizer = RelationshipSynchronizer(db_session, settings, layers)

    object_level = synchronizer.declare(
        logical.id, order_replica.model_object.id, customer_replica.model_object.id, "N:1", propagate=False
    )
    attribute_level = synchronizer.declare(
        logical.id,
        order_replica.model_object.id,
        customer_replica.model_object.id,
        "N:1",
        source_model_attribute_id=order_fk.model_attribute.id,
        target_model_attribute_id=customer_pk.model_attribute.id,
    )

    assert attribute_level.global_relationship.id != object_level.global_relationship.id
    assert attribute_level.global_relationship.relationship_level == "attribute"
    assert attribute_level.global_relationship.source_attribute_id == order_fk.attribute.id
    # Only the physical layer carries the mirrored attributes.
    assert [edge.model_id for edge in attribute_level.synced] == [family["models"][2].id]
    assert attribute_level.synced[0].source_model_attribute_id == order_fk.mirrored_model_attribute.id


def test_half_specified_attribute_pair_is_rejected(db_session, settings, family):
    conceptual, _, _ = family["models"]
    synchronizer = RelationshipSynchronizer(db_session, settings, family["layers"])

    with pytest.raises(ValidationError):
        synchronizer.declare(
            conceptual.id,
            family["order"].model_object.id,
            family["customer"].model_object.id,
            "N:1",
            source_model_attribute_id=family["order"].model_object.id,
        )


def test_unknown_relationship_type_is_rejected(db_session, settings, family):
    conceptual, _, _ = family["models"]
    synchronizer = RelationshipSynchronizer(db_session, settings, family["layers"])

    with pytest.raises(ValidationError):
        synchronizer.declare(
            conceptual.id, family["order"].model_object.id, family["customer"].model_object.id, "many"
        )


def test_endpoint_from_other_model_is_rejected(db_session, settings, family):
    conceptual, _, _ = family["models"]
    synchronizer = RelationshipSynchronizer(db_session, settings, family["layers"])
    logical_order = family["order"].replicas[0].model_object

    with pytest.raises(CanonicalResolutionError):
        synchronizer.declare(conceptual.id, logical_order.id, family["customer"].model_object.id, "1:1")


def test_delete_removes_mirrors_and_keeps_orphan_by_default(db_session, settings, family):
    conceptual, _, _ = family["models"]
    synchronizer = RelationshipSynchronizer(db_session, settings, family["layers"])
    declaration = synchronizer.declare(
        conceptual.id, family["order"].model_object.id, family["customer"].model_object.id, "N:1"
    )
    global_id = declaration.global_relationship.id

    removal = synchronizer.delete(declaration.model_relationship)

    assert len(removal.deleted_ids) == 3
    assert removal.orphaned_global_ids == [global_id]
    assert removal.pruned_global_ids == []
    assert db_session.query(DataModelObjectRelationship).count() == 0
    assert db_session.query(DataObjectRelationship).count() == 1


def test_delete_prunes_orphaned_global_when_requested(db_session, settings, family):
    conceptual, _, _ = family["models"]
    synchronizer = RelationshipSynchronizer(db_session, settings, family["layers"])
    declaration = synchronizer.declare(
        conceptual.id, family["order"].model_object.id, family["customer"].model_object.id, "N:1"
    )
    global_id = declaration.global_relationship.id

    removal = synchronizer.delete(declaration.model_relationship, prune_orphans=True)

    assert removal.pruned_global_ids == [global_id]
    assert db_session.query(DataObjectRelationship).count() == 0


def test_update_endpoint_repoints_global_and_rebuilds_mirrors(db_session, settings, family):
    conceptual, logical, physical = family["models"]
    layers = family["layers"]
    product = layers.create_object(conceptual, {"name": "Product"})
    synchronizer = RelationshipSynchronizer(db_session, settings, layers)
    declaration = synchronizer.declare(
        conceptual.id, family["order"].model_object.id, family["customer"].model_object.id, "N:1"
    )
    original_global_id = declaration.global_relationship.id

    updated = synchronizer.update(
        declaration.model_relationship, {"target_model_object_id": product.model_object.id}
    )

    assert updated.global_relationship.id != original_global_id
    assert updated.global_relationship.target_object_id == product.data_object.id
    assert updated.model_relationship.global_relationship_id == updated.global_relationship.id
    assert {edge.model_id for edge in updated.synced} == {logical.id, physical.id}
    product_projections = {replica.model_object.id for replica in product.replicas}
    for edge in updated.synced:
        assert edge.propagated_from_id == declaration.model_relationship.id
        assert edge.target_model_object_id in product_projections
        assert edge.global_relationship_id == updated.global_relationship.id
    assert db_session.query(DataModelObjectRelationship).count() == 3


def test_update_type_only_keeps_global_and_retypes_mirrors(db_session, settings, family):
    conceptual, _, _ = family["models"]
    synchronizer = RelationshipSynchronizer(db_session, settings, family["layers"])
    declaration = synchronizer.declare(
        conceptual.id, family["order"].model_object.id, family["customer"].model_object.id, "N:1"
    )
    global_id = declaration.global_relationship.id

    updated = synchronizer.update(declaration.model_relationship, {"relationship_type": "1:1"})

    assert updated.global_relationship.id == global_id
    assert updated.global_relationship.relationship_type == "1:1"
    assert updated.model_relationship.relationship_type == "1:1"
    assert [edge.relationship_type for edge in updated.synced] == ["1:1", "1:1"]
    assert db_session.query(DataObjectRelationship).count() == 1


def test_update_onto_existing_edge_conflicts_without_touching_globals(db_session, settings, family):
    conceptual, _, _ = family["models"]
    layers = family["layers"]
    product = layers.create_object(conceptual, {"name": "Product"})
    synchronizer = RelationshipSynchronizer(db_session, settings, layers)
    order_id = family["order"].model_object.id
    synchronizer.declare(conceptual.id, order_id, family["customer"].model_object.id, "N:1", propagate=False)
    second = synchronizer.declare(conceptual.id, order_id, product.model_object.id, "N:1", propagate=False)

    with pytest.raises(ConflictError):
        synchronizer.update(
            second.model_relationship,
            {"target_model_object_id": family["customer"].model_object.id, "relationship_type": "1:1"},
        )

    assert db_session.query(DataObjectRelationship).count() == 2
    assert {row.relationship_type for row in db_session.query(DataObjectRelationship)} == {"N:1"}

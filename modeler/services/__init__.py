from modeler.services.canvas_builder import CanvasBuilder
from modeler.services.cascade_delete import CascadeDeleter, DeletionSummary
from modeler.services.layer_synchronizer import LayerSynchronizer
from modeler.services.model_family import ModelFamily, resolve_model_family
from modeler.services.model_templates import LayeredModelBuilder, load_template
from modeler.services.object_lake import ObjectLakeQuery, ObjectLakeService
from modeler.services.relationship_sync import RelationshipSynchronizer

__all__ = [
    "CanvasBuilder",
    "CascadeDeleter",
    "DeletionSummary",
    "LayerSynchronizer",
    "LayeredModelBuilder",
    "ModelFamily",
    "ObjectLakeQuery",
    "ObjectLakeService",
    "RelationshipSynchronizer",
    "load_template",
    "resolve_model_family",
]

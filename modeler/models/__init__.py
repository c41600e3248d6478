from modeler.models.entities import (
    Attribute,
    DataArea,
    DataDomain,
    DataModel,
    DataModelAttribute,
    DataModelObject,
    DataModelObjectRelationship,
    DataObject,
    DataObjectRelationship,
    System,
    TimestampMixin,
)
from modeler.models.governance import (
    BusinessCapability,
    CapabilityDataAreaMapping,
    CapabilityDomainMapping,
    CapabilityModelMapping,
    CapabilitySystemMapping,
    LifecyclePhase,
    ModelLifecycleAssignment,
)

__all__ = [
    "Attribute",
    "BusinessCapability",
    "CapabilityDataAreaMapping",
    "CapabilityDomainMapping",
    "CapabilityModelMapping",
    "CapabilitySystemMapping",
    "DataArea",
    "DataDomain",
    "DataModel",
    "DataModelAttribute",
    "DataModelObject",
    "DataModelObjectRelationship",
    "DataObject",
    "DataObjectRelationship",
    "LifecyclePhase",
    "ModelLifecycleAssignment",
    "System",
    "TimestampMixin",
]

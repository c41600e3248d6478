from modeler.schemas.canvas import (
    CanvasAttribute,
    CanvasEdge,
    CanvasNode,
    CanvasPositionUpdate,
    CanvasPositionsRequest,
    CanvasPositionsResult,
    CanvasResponse,
    CanvasSchema,
)
from modeler.schemas.entities import (
    AttachObjectRequest,
    AttributeCascadeRead,
    AttributeCreate,
    AttributeFields,
    AttributeRead,
    AttributeUpdate,
    CamelRequest,
    CreateWithLayersRequest,
    CreateWithLayersResponse,
    DataAreaBase,
    DataAreaCreate,
    DataAreaRead,
    DataAreaUpdate,
    DataDomainBase,
    DataDomainCreate,
    DataDomainRead,
    DataDomainUpdate,
    DataModelBase,
    DataModelCreate,
    DataModelRead,
    DataModelUpdate,
    DataObjectCreate,
    DataObjectFields,
    DataObjectRead,
    DataObjectUpdate,
    DraftObjectCreate,
    GenerateNextLayerRequest,
    GlobalRelationshipRead,
    LayerReplicaRead,
    ModelAttributeCreate,
    ModelAttributeRead,
    ModelAttributeUpdate,
    ModelFamilyRead,
    ModelObjectConfig,
    ModelObjectRead,
    ModelObjectUpdate,
    ModelRelationshipRead,
    ObjectCreateResponse,
    Position,
    RelationshipCreate,
    RelationshipDeclarationRead,
    RelationshipRemovalRead,
    RelationshipUpdate,
    SystemBase,
    SystemCreate,
    SystemRead,
    SystemUpdate,
    TimestampSchema,
    ModelLayer,
    RelationshipType,
)
from modeler.schemas.governance import (
    BusinessCapabilityBase,
    BusinessCapabilityCreate,
    BusinessCapabilityNode,
    BusinessCapabilityRead,
    BusinessCapabilityUpdate,
    CapabilityDataAreaMappingRead,
    CapabilityDomainMappingRead,
    CapabilityMappingCreate,
    CapabilityMappingRead,
    CapabilityMappingsRead,
    CapabilityModelMappingRead,
    CapabilitySystemMappingRead,
    LifecycleApprovalRequest,
    LifecycleAssignmentCreate,
    LifecycleAssignmentRead,
    LifecycleAssignmentUpdate,
    LifecyclePhaseRead,
)
from modeler.schemas.object_lake import (
    LakeAttribute,
    LakeAttributeOverride,
    LakeGlobalRelationship,
    LakeModelInstance,
    LakeModelRef,
    LakeModelRelationship,
    LakeReference,
    LakeRelationships,
    LakeStats,
    ObjectLakeItem,
    ObjectLakePage,
)

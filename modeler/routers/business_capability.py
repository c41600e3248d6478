import logging
from typing import Dict, List, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from modeler.database import get_db, unit_of_work
from modeler.errors import ConflictError, ValidationError
from modeler.models import (
    BusinessCapability,
    CapabilityDataAreaMapping,
    CapabilityDomainMapping,
    CapabilityModelMapping,
    CapabilitySystemMapping,
    DataArea,
    DataDomain,
    DataModel,
    System,
)
from modeler.schemas import (
    BusinessCapabilityCreate,
    BusinessCapabilityNode,
    BusinessCapabilityRead,
    BusinessCapabilityUpdate,
    CapabilityDataAreaMappingRead,
    CapabilityDomainMappingRead,
    CapabilityMappingCreate,
    CapabilityMappingsRead,
    CapabilityModelMappingRead,
    CapabilitySystemMappingRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Business Capabilities"])

CapabilityMappingResponse = Union[
    CapabilityDomainMappingRead,
    CapabilityDataAreaMappingRead,
    CapabilitySystemMappingRead,
    CapabilityModelMappingRead,
]

# kind -> (mapping model, target model, target column, read schema, target label)
MAPPING_KINDS = {
    "domains": (CapabilityDomainMapping, DataDomain, "domain_id", CapabilityDomainMappingRead, "Domain"),
    "data-areas": (CapabilityDataAreaMapping, DataArea, "data_area_id", CapabilityDataAreaMappingRead, "Data area"),
    "systems": (CapabilitySystemMapping, System, "system_id", CapabilitySystemMappingRead, "System"),
    "models": (CapabilityModelMapping, DataModel, "model_id", CapabilityModelMappingRead, "Model"),
}


def _get_capability_or_404(capability_id: UUID, db: Session) -> BusinessCapability:
    capability = db.get(BusinessCapability, capability_id)
    if not capability:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business capability not found")
    return capability


def _mapping_kind(kind: str):
    if kind not in MAPPING_KINDS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown mapping kind '{kind}'")
    return MAPPING_KINDS[kind]


def _ensure_unique_code(code: str, db: Session, exclude_id: Optional[UUID] = None) -> None:
    query = db.query(BusinessCapability).filter(BusinessCapability.code == code)
    if exclude_id is not None:
        query = query.filter(BusinessCapability.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("A capability with this code already exists", {"code": code})


def _ensure_parent(capability_id: Optional[UUID], parent_id: Optional[UUID], db: Session) -> None:
    if parent_id is None:
        return
    parents: Dict[UUID, Optional[UUID]] = {
        row.id: row.parent_id for row in db.query(BusinessCapability.id, BusinessCapability.parent_id).all()
    }
    if parent_id not in parents:
        raise ValidationError("Parent capability not found", {"parent_id": str(parent_id)})
    seen = set()
    cursor: Optional[UUID] = parent_id
    while cursor is not None and cursor not in seen:
        if cursor == capability_id:
            raise ValidationError(
                "A capability cannot be its own ancestor",
                {"capability_id": str(capability_id), "parent_id": str(parent_id)},
            )
        seen.add(cursor)
        cursor = parents.get(cursor)


@router.get("/capabilities", response_model=List[BusinessCapabilityRead])
def list_capabilities(db: Session = Depends(get_db)) -> List[BusinessCapabilityRead]:
    return db.query(BusinessCapability).order_by(BusinessCapability.sort_order, BusinessCapability.name).all()


@router.get("/capabilities/tree", response_model=List[BusinessCapabilityNode])
def capability_tree(db: Session = Depends(get_db)) -> List[BusinessCapabilityNode]:
    capabilities = db.query(BusinessCapability).order_by(BusinessCapability.sort_order, BusinessCapability.name).all()
    nodes = {capability.id: BusinessCapabilityNode.model_validate(capability) for capability in capabilities}
    roots: List[BusinessCapabilityNode] = []
    for capability in capabilities:
        node = nodes[capability.id]
        parent = nodes.get(capability.parent_id) if capability.parent_id else None
        if parent is None:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


@router.post("/capabilities", response_model=BusinessCapabilityRead, status_code=status.HTTP_201_CREATED)
def create_capability(payload: BusinessCapabilityCreate, db: Session = Depends(get_db)) -> BusinessCapabilityRead:
    data = payload.model_dump()
    data["code"] = data["code"].strip()
    _ensure_unique_code(data["code"], db)
    _ensure_parent(None, payload.parent_id, db)

    capability = BusinessCapability(**data)
    with unit_of_work(db, "A capability with this code already exists"):
        db.add(capability)
    db.refresh(capability)
    return capability


@router.get("/capabilities/{capability_id}", response_model=BusinessCapabilityRead)
def get_capability(capability_id: UUID, db: Session = Depends(get_db)) -> BusinessCapabilityRead:
    return _get_capability_or_404(capability_id, db)


@router.put("/capabilities/{capability_id}", response_model=BusinessCapabilityRead)
def update_capability(
    capability_id: UUID, payload: BusinessCapabilityUpdate, db: Session = Depends(get_db)
) -> BusinessCapabilityRead:
    capability = _get_capability_or_404(capability_id, db)
    update_data = payload.model_dump(exclude_unset=True)
    if update_data.get("code") is not None:
        update_data["code"] = update_data["code"].strip()
        _ensure_unique_code(update_data["code"], db, exclude_id=capability.id)
    if "parent_id" in update_data:
        _ensure_parent(capability.id, update_data["parent_id"], db)

    with unit_of_work(db, "A capability with this code already exists"):
        for field, value in update_data.items():
            setattr(capability, field, value)
    db.refresh(capability)
    return capability


@router.delete("/capabilities/{capability_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_capability(capability_id: UUID, db: Session = Depends(get_db)) -> None:
    capability = _get_capability_or_404(capability_id, db)
    with unit_of_work(db):
        db.query(BusinessCapability).filter(BusinessCapability.parent_id == capability.id).update(
            {BusinessCapability.parent_id: None}, synchronize_session=False
        )
        for mapping_cls, *_ in MAPPING_KINDS.values():
            db.query(mapping_cls).filter(mapping_cls.capability_id == capability.id).delete(
                synchronize_session=False
            )
        db.delete(capability)
    db.expire_all()


@router.get("/capabilities/{capability_id}/mappings", response_model=CapabilityMappingsRead)
def get_capability_mappings(capability_id: UUID, db: Session = Depends(get_db)) -> CapabilityMappingsRead:
    capability = _get_capability_or_404(capability_id, db)

    def rows(kind: str):
        mapping_cls = MAPPING_KINDS[kind][0]
        return (
            db.query(mapping_cls)
            .filter(mapping_cls.capability_id == capability.id)
            .order_by(mapping_cls.created_at)
            .all()
        )

    return CapabilityMappingsRead(
        capability=BusinessCapabilityRead.model_validate(capability),
        domains=[CapabilityDomainMappingRead.model_validate(row) for row in rows("domains")],
        data_areas=[CapabilityDataAreaMappingRead.model_validate(row) for row in rows("data-areas")],
        systems=[CapabilitySystemMappingRead.model_validate(row) for row in rows("systems")],
        models=[CapabilityModelMappingRead.model_validate(row) for row in rows("models")],
    )


@router.post(
    "/capabilities/{capability_id}/{kind}/{target_id}",
    response_model=CapabilityMappingResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_capability_mapping(
    capability_id: UUID,
    kind: str,
    target_id: UUID,
    payload: Optional[CapabilityMappingCreate] = Body(default=None),
    db: Session = Depends(get_db),
) -> CapabilityMappingResponse:
    capability = _get_capability_or_404(capability_id, db)
    mapping_cls, target_cls, column, read_schema, label = _mapping_kind(kind)
    if db.get(target_cls, target_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")

    existing = (
        db.query(mapping_cls)
        .filter(mapping_cls.capability_id == capability.id, getattr(mapping_cls, column) == target_id)
        .first()
    )
    if existing is not None:
        raise ConflictError(
            f"Capability is already mapped to this {label.lower()}",
            {"mapping_id": str(existing.id)},
        )

    data = (payload or CapabilityMappingCreate()).model_dump()
    system_role = data.pop("system_role")
    if mapping_cls is CapabilitySystemMapping:
        data["system_role"] = system_role
    mapping = mapping_cls(capability_id=capability.id, **{column: target_id}, **data)
    with unit_of_work(db, f"Capability is already mapped to this {label.lower()}"):
        db.add(mapping)
    db.refresh(mapping)
    return read_schema.model_validate(mapping)


@router.delete("/capability-mappings/{kind}/{mapping_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_capability_mapping(kind: str, mapping_id: UUID, db: Session = Depends(get_db)) -> None:
    mapping_cls = _mapping_kind(kind)[0]
    mapping = db.get(mapping_cls, mapping_id)
    if mapping is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Capability mapping not found")
    with unit_of_work(db):
        db.delete(mapping)

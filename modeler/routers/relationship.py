import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from modeler.constants.modeling import RELATIONSHIP_LEVELS
from modeler.database import get_db, unit_of_work
from modeler.models import DataModel, DataModelObjectRelationship, DataObjectRelationship
from modeler.schemas import (
    GlobalRelationshipRead,
    ModelRelationshipRead,
    RelationshipCreate,
    RelationshipDeclarationRead,
    RelationshipRemovalRead,
    RelationshipUpdate,
)
from modeler.services import RelationshipSynchronizer
from modeler.services.relationship_sync import RelationshipDeclaration

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Relationships"])


def _get_relationship_or_404(relationship_id: UUID, db: Session) -> DataModelObjectRelationship:
    relationship = db.get(DataModelObjectRelationship, relationship_id)
    if not relationship:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Relationship not found")
    return relationship


def _declaration_read(declaration: RelationshipDeclaration) -> RelationshipDeclarationRead:
    synced = [ModelRelationshipRead.model_validate(edge) for edge in declaration.synced]
    return RelationshipDeclarationRead(
        relationship=ModelRelationshipRead.model_validate(declaration.model_relationship),
        global_relationship_id=declaration.global_relationship.id if declaration.global_relationship else None,
        synced=synced,
        synced_model_ids=[edge.model_id for edge in synced],
    )


@router.get("/models/{model_id}/relationships", response_model=List[ModelRelationshipRead])
def list_model_relationships(model_id: UUID, db: Session = Depends(get_db)) -> List[ModelRelationshipRead]:
    if db.get(DataModel, model_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model not found")
    return (
        db.query(DataModelObjectRelationship)
        .filter(DataModelObjectRelationship.model_id == model_id)
        .order_by(DataModelObjectRelationship.created_at)
        .all()
    )


@router.get("/global-relationships", response_model=List[GlobalRelationshipRead])
def list_global_relationships(
    object_id: Optional[UUID] = Query(default=None),
    level: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
) -> List[GlobalRelationshipRead]:
    if level is not None and level not in RELATIONSHIP_LEVELS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown relationship level '{level}'")
    query = db.query(DataObjectRelationship)
    if object_id is not None:
        query = query.filter(
            or_(
                DataObjectRelationship.source_object_id == object_id,
                DataObjectRelationship.target_object_id == object_id,
            )
        )
    if level is not None:
        query = query.filter(DataObjectRelationship.relationship_level == level)
    return query.order_by(DataObjectRelationship.created_at).all()


@router.post("/relationships", response_model=RelationshipDeclarationRead, status_code=status.HTTP_201_CREATED)
def create_relationship(payload: RelationshipCreate, db: Session = Depends(get_db)) -> RelationshipDeclarationRead:
    extra = payload.model_dump(
        exclude={
            "model_id",
            "source_model_object_id",
            "target_model_object_id",
            "relationship_type",
            "source_model_attribute_id",
            "target_model_attribute_id",
            "propagate",
        }
    )
    with unit_of_work(db, "Relationship conflicts with an existing relationship"):
        declaration = RelationshipSynchronizer(db).declare(
            payload.model_id,
            payload.source_model_object_id,
            payload.target_model_object_id,
            payload.relationship_type,
            source_model_attribute_id=payload.source_model_attribute_id,
            target_model_attribute_id=payload.target_model_attribute_id,
            propagate=payload.propagate,
            **extra,
        )
    logger.info(
        "Declared relationship %s (global %s, %d mirrors)",
        declaration.model_relationship.id,
        declaration.global_relationship.id if declaration.global_relationship else None,
        len(declaration.synced),
    )
    return _declaration_read(declaration)


@router.get("/relationships/{relationship_id}", response_model=ModelRelationshipRead)
def get_relationship(relationship_id: UUID, db: Session = Depends(get_db)) -> ModelRelationshipRead:
    return _get_relationship_or_404(relationship_id, db)


@router.put("/relationships/{relationship_id}", response_model=RelationshipDeclarationRead)
def update_relationship(
    relationship_id: UUID, payload: RelationshipUpdate, db: Session = Depends(get_db)
) -> RelationshipDeclarationRead:
    relationship = _get_relationship_or_404(relationship_id, db)
    changes = payload.model_dump(exclude_unset=True, exclude={"propagate"})
    with unit_of_work(db, "Relationship conflicts with an existing relationship"):
        declaration = RelationshipSynchronizer(db).update(relationship, changes, propagate=payload.propagate)
    return _declaration_read(declaration)


@router.delete("/relationships/{relationship_id}", response_model=RelationshipRemovalRead)
def delete_relationship(
    relationship_id: UUID,
    prune_orphans: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> RelationshipRemovalRead:
    relationship = _get_relationship_or_404(relationship_id, db)
    with unit_of_work(db):
        removal = RelationshipSynchronizer(db).delete(relationship, prune_orphans=prune_orphans)
    return RelationshipRemovalRead.model_validate(removal)

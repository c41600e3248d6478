import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from modeler.constants.modeling import LOGICAL, PHYSICAL
from modeler.database import get_db, unit_of_work
from modeler.errors import ValidationError
from modeler.models import Attribute, DataModelAttribute, DataModelObject, DataObject
from modeler.schemas import (
    AttributeCascadeRead,
    AttributeCreate,
    AttributeRead,
    AttributeUpdate,
    ModelAttributeCreate,
    ModelAttributeRead,
    ModelAttributeUpdate,
)
from modeler.services import CascadeDeleter, LayerSynchronizer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Attributes"])

ENHANCE_LAYER = Query(..., pattern=f"^({LOGICAL}|{PHYSICAL})$")


def _get_object_or_404(object_id: UUID, db: Session) -> DataObject:
    data_object = db.get(DataObject, object_id)
    if not data_object:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Data object not found")
    return data_object


def _get_attribute_or_404(attribute_id: UUID, db: Session) -> Attribute:
    attribute = db.get(Attribute, attribute_id)
    if not attribute:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attribute not found")
    return attribute


def _get_model_attribute_or_404(model_attribute_id: UUID, db: Session) -> DataModelAttribute:
    model_attribute = db.get(DataModelAttribute, model_attribute_id)
    if not model_attribute:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model attribute not found")
    return model_attribute


@router.get("/objects/{object_id}/attributes", response_model=List[AttributeRead])
def list_object_attributes(object_id: UUID, db: Session = Depends(get_db)) -> List[AttributeRead]:
    return _get_object_or_404(object_id, db).attributes


@router.post(
    "/objects/{object_id}/attributes",
    response_model=AttributeCascadeRead,
    status_code=status.HTTP_201_CREATED,
)
def create_attribute(object_id: UUID, payload: AttributeCreate, db: Session = Depends(get_db)) -> AttributeCascadeRead:
    data_object = _get_object_or_404(object_id, db)

    with unit_of_work(db):
        model_object = None
        if payload.model_id is not None:
            model_object = (
                db.query(DataModelObject)
                .filter(DataModelObject.model_id == payload.model_id, DataModelObject.object_id == data_object.id)
                .first()
            )
            if model_object is None:
                raise ValidationError(
                    "Object is not part of the selected model",
                    {"model_id": str(payload.model_id), "object_id": str(data_object.id)},
                )
        result = LayerSynchronizer(db).create_attribute(
            data_object, payload.model_dump(exclude={"model_id"}), model_object=model_object
        )
    return AttributeCascadeRead.model_validate(result)


@router.post("/objects/{object_id}/attributes/enhance", response_model=List[AttributeRead])
def enhance_object_attributes(
    object_id: UUID,
    target_layer: str = ENHANCE_LAYER,
    db: Session = Depends(get_db),
) -> List[AttributeRead]:
    data_object = _get_object_or_404(object_id, db)
    with unit_of_work(db):
        synchronizer = LayerSynchronizer(db)
        for attribute in data_object.attributes:
            synchronizer.enhance_attribute(attribute, target_layer)
    return _get_object_or_404(object_id, db).attributes


@router.get("/attributes/{attribute_id}", response_model=AttributeRead)
def get_attribute(attribute_id: UUID, db: Session = Depends(get_db)) -> AttributeRead:
    return _get_attribute_or_404(attribute_id, db)


@router.put("/attributes/{attribute_id}", response_model=AttributeCascadeRead)
def update_attribute(
    attribute_id: UUID, payload: AttributeUpdate, db: Session = Depends(get_db)
) -> AttributeCascadeRead:
    attribute = _get_attribute_or_404(attribute_id, db)
    with unit_of_work(db):
        result = LayerSynchronizer(db).update_attribute(attribute, payload.model_dump(exclude_unset=True))
    return AttributeCascadeRead.model_validate(result)


@router.delete("/attributes/{attribute_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attribute(
    attribute_id: UUID,
    cascade_layers: bool = Query(default=True),
    db: Session = Depends(get_db),
) -> None:
    attribute = _get_attribute_or_404(attribute_id, db)
    with unit_of_work(db):
        summary = CascadeDeleter(db).delete_attribute(attribute, cascade_layers=cascade_layers)
    logger.info("Deleted attribute %s: %s", attribute_id, summary)


@router.post("/attributes/{attribute_id}/enhance", response_model=AttributeRead)
def enhance_attribute(
    attribute_id: UUID,
    target_layer: str = ENHANCE_LAYER,
    db: Session = Depends(get_db),
) -> AttributeRead:
    attribute = _get_attribute_or_404(attribute_id, db)
    with unit_of_work(db):
        LayerSynchronizer(db).enhance_attribute(attribute, target_layer)
    db.refresh(attribute)
    return attribute


@router.post(
    "/model-objects/{model_object_id}/attributes",
    response_model=ModelAttributeRead,
    status_code=status.HTTP_201_CREATED,
)
def create_model_attribute(
    model_object_id: UUID, payload: ModelAttributeCreate, db: Session = Depends(get_db)
) -> ModelAttributeRead:
    model_object = db.get(DataModelObject, model_object_id)
    if model_object is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model object not found")
    with unit_of_work(db):
        model_attribute = LayerSynchronizer(db).create_projection_attribute(
            model_object, payload.model_dump(exclude_none=True)
        )
    db.refresh(model_attribute)
    return model_attribute


@router.put("/model-attributes/{model_attribute_id}", response_model=ModelAttributeRead)
def update_model_attribute(
    model_attribute_id: UUID, payload: ModelAttributeUpdate, db: Session = Depends(get_db)
) -> ModelAttributeRead:
    model_attribute = _get_model_attribute_or_404(model_attribute_id, db)
    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"] is not None and not update_data["name"].strip():
        raise ValidationError("Attribute name is required", [{"field": "name", "message": "Field required"}])
    with unit_of_work(db):
        for field, value in update_data.items():
            setattr(model_attribute, field, value)
    db.refresh(model_attribute)
    return model_attribute


@router.delete("/model-attributes/{model_attribute_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_model_attribute(model_attribute_id: UUID, db: Session = Depends(get_db)) -> None:
    model_attribute = _get_model_attribute_or_404(model_attribute_id, db)
    with unit_of_work(db):
        CascadeDeleter(db).delete_model_attributes([model_attribute.id])

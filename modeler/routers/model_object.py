import copy
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from modeler.database import get_db, unit_of_work
from modeler.models import DataModel, DataModelObject, DataObject
from modeler.routers.data_object import config_dict
from modeler.schemas import AttachObjectRequest, DraftObjectCreate, ModelObjectRead, ModelObjectUpdate
from modeler.services import CascadeDeleter, LayerSynchronizer
from modeler.services.projection_builder import set_layer_position

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Model Objects"])


def _get_model_or_404(model_id: UUID, db: Session) -> DataModel:
    model = db.get(DataModel, model_id)
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model not found")
    return model


def _get_model_object_or_404(model_object_id: UUID, db: Session) -> DataModelObject:
    model_object = db.get(DataModelObject, model_object_id)
    if not model_object:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model object not found")
    return model_object


@router.get("/models/{model_id}/objects", response_model=List[ModelObjectRead])
def list_model_objects(model_id: UUID, db: Session = Depends(get_db)) -> List[ModelObjectRead]:
    _get_model_or_404(model_id, db)
    return (
        db.query(DataModelObject)
        .filter(DataModelObject.model_id == model_id)
        .order_by(DataModelObject.created_at)
        .all()
    )


@router.post(
    "/models/{model_id}/objects",
    response_model=ModelObjectRead,
    status_code=status.HTTP_201_CREATED,
)
def attach_object(model_id: UUID, payload: AttachObjectRequest, db: Session = Depends(get_db)) -> ModelObjectRead:
    model = _get_model_or_404(model_id, db)
    data_object = db.get(DataObject, payload.object_id)
    if data_object is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Data object not found")

    with unit_of_work(db, "Object is already attached to this model"):
        model_object = LayerSynchronizer(db).attach_object(model, data_object, config_dict(payload.config))
    db.refresh(model_object)
    return model_object


@router.post(
    "/models/{model_id}/objects/draft",
    response_model=ModelObjectRead,
    status_code=status.HTTP_201_CREATED,
)
def create_draft_object(model_id: UUID, payload: DraftObjectCreate, db: Session = Depends(get_db)) -> ModelObjectRead:
    model = _get_model_or_404(model_id, db)
    with unit_of_work(db):
        model_object = LayerSynchronizer(db).create_draft_object(
            model, payload.model_dump(exclude={"config"}), config_dict(payload.config)
        )
    db.refresh(model_object)
    return model_object


@router.get("/model-objects/{model_object_id}", response_model=ModelObjectRead)
def get_model_object(model_object_id: UUID, db: Session = Depends(get_db)) -> ModelObjectRead:
    return _get_model_object_or_404(model_object_id, db)


@router.put("/model-objects/{model_object_id}", response_model=ModelObjectRead)
def update_model_object(
    model_object_id: UUID, payload: ModelObjectUpdate, db: Session = Depends(get_db)
) -> ModelObjectRead:
    model_object = _get_model_object_or_404(model_object_id, db)
    update_data = payload.model_dump(exclude_unset=True)

    with unit_of_work(db):
        synchronizer = LayerSynchronizer(db)
        synchronizer.validate_references(
            {
                "domain_id": update_data.get("domain_id"),
                "data_area_id": update_data.get("data_area_id"),
                "target_system_id": update_data.get("target_system_id"),
            }
        )
        position = update_data.pop("position", None)
        layer_config = update_data.pop("layer_specific_config", None)
        if layer_config is not None:
            merged = copy.deepcopy(model_object.layer_specific_config or {})
            merged.update(layer_config)
            model_object.layer_specific_config = merged
        if position is not None:
            set_layer_position(model_object, model_object.model.layer, position)
        for field, value in update_data.items():
            setattr(model_object, field, value)
    db.refresh(model_object)
    return model_object


@router.delete("/model-objects/{model_object_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_model_object(model_object_id: UUID, db: Session = Depends(get_db)) -> None:
    model_object = _get_model_object_or_404(model_object_id, db)
    with unit_of_work(db):
        summary = CascadeDeleter(db).delete_model_objects([model_object.id])
    logger.info("Removed model object %s: %s", model_object_id, summary)

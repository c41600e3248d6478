import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from modeler.database import get_db, unit_of_work
from modeler.errors import NotFoundError
from modeler.models import DataModel, DataModelObject, DataObject
from modeler.schemas import (
    DataObjectCreate,
    DataObjectRead,
    DataObjectUpdate,
    GenerateNextLayerRequest,
    LayerReplicaRead,
    ModelObjectConfig,
    ObjectCreateResponse,
)
from modeler.services import CascadeDeleter, LayerSynchronizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/objects", tags=["Data Objects"])


def _get_object_or_404(object_id: UUID, db: Session) -> DataObject:
    data_object = db.get(DataObject, object_id)
    if not data_object:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Data object not found")
    return data_object


def config_dict(config: Optional[ModelObjectConfig]) -> Optional[Dict[str, Any]]:
    if config is None:
        return None
    return config.model_dump(exclude_none=True)


@router.get("", response_model=List[DataObjectRead])
def list_objects(
    model_id: Optional[UUID] = Query(default=None),
    domain_id: Optional[UUID] = Query(default=None),
    data_area_id: Optional[UUID] = Query(default=None),
    system_id: Optional[UUID] = Query(default=None),
    db: Session = Depends(get_db),
) -> List[DataObjectRead]:
    query = db.query(DataObject)
    if model_id is not None:
        projected = db.query(DataModelObject.object_id).filter(DataModelObject.model_id == model_id)
        query = query.filter(or_(DataObject.model_id == model_id, DataObject.id.in_(projected)))
    if domain_id is not None:
        query = query.filter(DataObject.domain_id == domain_id)
    if data_area_id is not None:
        query = query.filter(DataObject.data_area_id == data_area_id)
    if system_id is not None:
        query = query.filter(or_(DataObject.source_system_id == system_id, DataObject.target_system_id == system_id))
    return query.order_by(DataObject.name).all()


@router.post("", response_model=ObjectCreateResponse, status_code=status.HTTP_201_CREATED)
def create_object(payload: DataObjectCreate, db: Session = Depends(get_db)) -> ObjectCreateResponse:
    values = payload.model_dump(exclude={"model_id", "config", "layer_configs", "cascade"})
    layer_configs = {layer: config_dict(config) for layer, config in (payload.layer_configs or {}).items()}

    with unit_of_work(db, "Object conflicts with an existing projection"):
        model = db.get(DataModel, payload.model_id)
        if model is None:
            raise NotFoundError("Model not found", {"model_id": str(payload.model_id)}, from_body=True)
        result = LayerSynchronizer(db).create_object(
            model,
            values,
            config=config_dict(payload.config),
            layer_configs=layer_configs,
            cascade=payload.cascade,
        )
    logger.info(
        "Created object %s in model %s (%d replicas, skipped %s)",
        result.data_object.id,
        payload.model_id,
        len(result.replicas),
        result.skipped_layers,
    )
    return ObjectCreateResponse.model_validate(result)


@router.get("/{object_id}", response_model=DataObjectRead)
def get_object(object_id: UUID, db: Session = Depends(get_db)) -> DataObjectRead:
    return _get_object_or_404(object_id, db)


@router.put("/{object_id}", response_model=DataObjectRead)
def update_object(object_id: UUID, payload: DataObjectUpdate, db: Session = Depends(get_db)) -> DataObjectRead:
    data_object = _get_object_or_404(object_id, db)
    with unit_of_work(db):
        LayerSynchronizer(db).update_object(data_object, payload.model_dump(exclude_unset=True))
    db.refresh(data_object)
    return data_object


@router.delete("/{object_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_object(
    object_id: UUID,
    cascade_layers: bool = Query(default=True),
    db: Session = Depends(get_db),
) -> None:
    data_object = _get_object_or_404(object_id, db)
    with unit_of_work(db):
        summary = CascadeDeleter(db).delete_object(data_object, cascade_layers=cascade_layers)
    logger.info("Deleted object %s: %s", object_id, summary)


@router.post(
    "/{object_id}/generate-next-layer",
    response_model=LayerReplicaRead,
    status_code=status.HTTP_201_CREATED,
)
def generate_next_layer(
    object_id: UUID,
    payload: Optional[GenerateNextLayerRequest] = None,
    db: Session = Depends(get_db),
) -> LayerReplicaRead:
    data_object = _get_object_or_404(object_id, db)
    payload = payload or GenerateNextLayerRequest()

    with unit_of_work(db):
        target_model = None
        if payload.target_model_id is not None:
            target_model = db.get(DataModel, payload.target_model_id)
            if target_model is None:
                raise NotFoundError(
                    "Target model not found", {"target_model_id": str(payload.target_model_id)}, from_body=True
                )
        replica = LayerSynchronizer(db).generate_next_layer(
            data_object,
            target_model=target_model,
            config=config_dict(payload.config),
            name_override=payload.name_override,
        )
    return LayerReplicaRead.model_validate(replica)

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from modeler.constants.modeling import CONCEPTUAL
from modeler.database import get_db, unit_of_work
from modeler.errors import ConflictError, NotFoundError, ValidationError
from modeler.models import DataModel
from modeler.schemas import (
    CreateWithLayersRequest,
    CreateWithLayersResponse,
    DataModelCreate,
    DataModelRead,
    DataModelUpdate,
    ModelFamilyRead,
    ModelLayer,
)
from modeler.services import CascadeDeleter, LayeredModelBuilder, LayerSynchronizer, resolve_model_family

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/models", tags=["Data Models"])


def _get_model_or_404(model_id: UUID, db: Session) -> DataModel:
    model = db.get(DataModel, model_id)
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model not found")
    return model


def _family_read(model: DataModel, db: Session) -> ModelFamilyRead:
    family = resolve_model_family(db, model)
    return ModelFamilyRead(
        conceptual=DataModelRead.model_validate(family.conceptual),
        logical=DataModelRead.model_validate(family.logical) if family.logical else None,
        physical=DataModelRead.model_validate(family.physical) if family.physical else None,
    )


@router.get("", response_model=List[DataModelRead])
def list_models(
    layer: Optional[ModelLayer] = Query(default=None),
    db: Session = Depends(get_db),
) -> List[DataModelRead]:
    query = db.query(DataModel)
    if layer is not None:
        query = query.filter(DataModel.layer == layer)
    return query.order_by(DataModel.name).all()


@router.post("", response_model=DataModelRead, status_code=status.HTTP_201_CREATED)
def create_model(payload: DataModelCreate, db: Session = Depends(get_db)) -> DataModelRead:
    data = payload.model_dump()
    data["name"] = data["name"].strip()
    if not data["name"]:
        raise ValidationError("Model name is required", [{"field": "name", "message": "Field required"}])

    with unit_of_work(db):
        LayerSynchronizer(db).validate_references(
            {
                "domain_id": data["domain_id"],
                "data_area_id": data["data_area_id"],
                "target_system_id": data["target_system_id"],
            }
        )
        if payload.layer == CONCEPTUAL:
            if payload.parent_model_id is not None:
                raise ValidationError(
                    "Conceptual models cannot have a parent model",
                    [{"field": "parent_model_id"}],
                )
        else:
            if payload.parent_model_id is None:
                raise ValidationError(
                    f"A {payload.layer} model requires a conceptual parent model",
                    [{"field": "parent_model_id", "message": "Field required"}],
                )
            parent = db.get(DataModel, payload.parent_model_id)
            if parent is None:
                raise NotFoundError(
                    "Parent model not found", {"parent_model_id": str(payload.parent_model_id)}, from_body=True
                )
            if parent.layer != CONCEPTUAL:
                raise ValidationError(
                    "Parent model must be a conceptual model",
                    {"parent_model_id": str(parent.id), "layer": parent.layer},
                )
            family = resolve_model_family(db, parent)
            existing = family.for_layer(payload.layer)
            if existing is not None:
                raise ConflictError(
                    f"Model family already has a {payload.layer} model",
                    {"family_root_id": str(family.root_id), "model_id": str(existing.id)},
                )

        model = DataModel(**data)
        db.add(model)
    db.refresh(model)
    logger.info("Created %s model %s", model.layer, model.id)
    return model


@router.post("/create-with-layers", response_model=CreateWithLayersResponse, status_code=status.HTTP_201_CREATED)
def create_model_with_layers(payload: CreateWithLayersRequest, db: Session = Depends(get_db)) -> CreateWithLayersResponse:
    with unit_of_work(db):
        result = LayeredModelBuilder(db).create(payload)
    return CreateWithLayersResponse(
        conceptual=DataModelRead.model_validate(result.conceptual),
        logical=DataModelRead.model_validate(result.logical),
        physical=DataModelRead.model_validate(result.physical),
        templates_added=result.templates_added,
        message=result.message,
    )


@router.get("/{model_id}", response_model=DataModelRead)
def get_model(model_id: UUID, db: Session = Depends(get_db)) -> DataModelRead:
    return _get_model_or_404(model_id, db)


@router.get("/{model_id}/family", response_model=ModelFamilyRead)
def get_model_family(model_id: UUID, db: Session = Depends(get_db)) -> ModelFamilyRead:
    return _family_read(_get_model_or_404(model_id, db), db)


@router.put("/{model_id}", response_model=DataModelRead)
def update_model(model_id: UUID, payload: DataModelUpdate, db: Session = Depends(get_db)) -> DataModelRead:
    model = _get_model_or_404(model_id, db)

    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data:
        update_data["name"] = (update_data["name"] or "").strip()
        if not update_data["name"]:
            raise ValidationError("Model name is required", [{"field": "name", "message": "Field required"}])
    with unit_of_work(db):
        check = {
            "domain_id": update_data.get("domain_id", model.domain_id),
            "data_area_id": update_data.get("data_area_id", model.data_area_id),
            "target_system_id": update_data.get("target_system_id"),
        }
        LayerSynchronizer(db).validate_references(check)
        if "data_area_id" in update_data:
            update_data["domain_id"] = check["domain_id"]
        for field, value in update_data.items():
            setattr(model, field, value)
    db.refresh(model)
    return model


@router.delete("/{model_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_model(model_id: UUID, db: Session = Depends(get_db)) -> None:
    model = _get_model_or_404(model_id, db)
    model_ids = {model.id}
    if model.layer == CONCEPTUAL:
        model_ids.update(
            row[0] for row in db.query(DataModel.id).filter(DataModel.parent_model_id == model.id).all()
        )
    with unit_of_work(db):
        summary = CascadeDeleter(db).delete_models(model_ids)
    logger.info("Deleted model %s: %s", model_id, summary)

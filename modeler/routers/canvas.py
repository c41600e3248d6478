from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from modeler.database import get_db, unit_of_work
from modeler.models import DataModel
from modeler.schemas import CanvasPositionsRequest, CanvasPositionsResult, CanvasResponse, ModelLayer
from modeler.services import CanvasBuilder

router = APIRouter(prefix="/models/{model_id}/canvas", tags=["Canvas"])


def _get_model_or_404(model_id: UUID, db: Session) -> DataModel:
    model = db.get(DataModel, model_id)
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model not found")
    return model


@router.get("", response_model=CanvasResponse)
def get_canvas(
    model_id: UUID,
    layer: Optional[ModelLayer] = Query(default=None),
    include_hidden: bool = Query(default=False, alias="includeHidden"),
    db: Session = Depends(get_db),
) -> CanvasResponse:
    model = _get_model_or_404(model_id, db)
    return CanvasBuilder(db).build(model, layer, include_hidden=include_hidden)


@router.post("/positions", response_model=CanvasPositionsResult)
def save_canvas_positions(
    model_id: UUID, payload: CanvasPositionsRequest, db: Session = Depends(get_db)
) -> CanvasPositionsResult:
    model = _get_model_or_404(model_id, db)
    with unit_of_work(db):
        result = CanvasBuilder(db).save_positions(model, payload)
    return result

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from modeler.database import get_db, unit_of_work
from modeler.models import DataModel, LifecyclePhase, ModelLifecycleAssignment
from modeler.schemas import (
    LifecycleApprovalRequest,
    LifecycleAssignmentCreate,
    LifecycleAssignmentRead,
    LifecycleAssignmentUpdate,
    LifecyclePhaseRead,
)
from modeler.services.lifecycle import approve_assignment, assign_phase, ensure_phases

router = APIRouter(tags=["Lifecycle"])


def _get_model_or_404(model_id: UUID, db: Session) -> DataModel:
    model = db.get(DataModel, model_id)
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model not found")
    return model


def _get_assignment_or_404(assignment_id: UUID, db: Session) -> ModelLifecycleAssignment:
    assignment = db.get(ModelLifecycleAssignment, assignment_id)
    if not assignment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lifecycle assignment not found")
    return assignment


@router.get("/lifecycle/phases", response_model=List[LifecyclePhaseRead])
def list_phases(db: Session = Depends(get_db)) -> List[LifecyclePhaseRead]:
    with unit_of_work(db):
        ensure_phases(db)
    return db.query(LifecyclePhase).order_by(LifecyclePhase.sequence).all()


@router.get("/models/{model_id}/lifecycle", response_model=List[LifecycleAssignmentRead])
def list_model_lifecycle(model_id: UUID, db: Session = Depends(get_db)) -> List[LifecycleAssignmentRead]:
    _get_model_or_404(model_id, db)
    return (
        db.query(ModelLifecycleAssignment)
        .join(LifecyclePhase, LifecyclePhase.id == ModelLifecycleAssignment.phase_id)
        .filter(ModelLifecycleAssignment.model_id == model_id)
        .order_by(LifecyclePhase.sequence)
        .all()
    )


@router.post(
    "/models/{model_id}/lifecycle",
    response_model=LifecycleAssignmentRead,
    status_code=status.HTTP_201_CREATED,
)
def create_model_lifecycle(
    model_id: UUID, payload: LifecycleAssignmentCreate, db: Session = Depends(get_db)
) -> LifecycleAssignmentRead:
    model = _get_model_or_404(model_id, db)
    with unit_of_work(db, "Model already has this lifecycle phase"):
        assignment = assign_phase(
            db, model, payload.phase, status=payload.status, owner=payload.owner, notes=payload.notes
        )
    db.refresh(assignment)
    return assignment


@router.patch("/lifecycle-assignments/{assignment_id}", response_model=LifecycleAssignmentRead)
def update_lifecycle_assignment(
    assignment_id: UUID, payload: LifecycleAssignmentUpdate, db: Session = Depends(get_db)
) -> LifecycleAssignmentRead:
    assignment = _get_assignment_or_404(assignment_id, db)
    with unit_of_work(db):
        for field, value in payload.model_dump(exclude_unset=True).items():
            if field == "status" and value is None:
                continue
            setattr(assignment, field, value)
    db.refresh(assignment)
    return assignment


@router.post("/lifecycle-assignments/{assignment_id}/approve", response_model=LifecycleAssignmentRead)
def approve_lifecycle_assignment(
    assignment_id: UUID, payload: LifecycleApprovalRequest, db: Session = Depends(get_db)
) -> LifecycleAssignmentRead:
    assignment = _get_assignment_or_404(assignment_id, db)
    with unit_of_work(db):
        approve_assignment(db, assignment, payload.approved_by)
    db.refresh(assignment)
    return assignment

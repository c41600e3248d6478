from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from modeler.database import get_db, unit_of_work
from modeler.models import System
from modeler.schemas import SystemCreate, SystemRead, SystemUpdate

router = APIRouter(prefix="/systems", tags=["Systems"])


def _get_system_or_404(system_id: UUID, db: Session) -> System:
    system = db.get(System, system_id)
    if not system:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="System not found")
    return system


@router.post("", response_model=SystemRead, status_code=status.HTTP_201_CREATED)
def create_system(payload: SystemCreate, db: Session = Depends(get_db)) -> SystemRead:
    system = System(**payload.model_dump())
    with unit_of_work(db, "A system with this name already exists"):
        db.add(system)
    db.refresh(system)
    return system


@router.get("", response_model=List[SystemRead])
def list_systems(db: Session = Depends(get_db)) -> List[SystemRead]:
    return db.query(System).order_by(System.name).all()


@router.get("/{system_id}", response_model=SystemRead)
def get_system(system_id: UUID, db: Session = Depends(get_db)) -> SystemRead:
    return _get_system_or_404(system_id, db)


@router.put("/{system_id}", response_model=SystemRead)
def update_system(system_id: UUID, payload: SystemUpdate, db: Session = Depends(get_db)) -> SystemRead:
    system = _get_system_or_404(system_id, db)

    with unit_of_work(db, "A system with this name already exists"):
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(system, field, value)
    db.refresh(system)
    return system


@router.delete("/{system_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_system(system_id: UUID, db: Session = Depends(get_db)) -> None:
    system = _get_system_or_404(system_id, db)
    with unit_of_work(db, "System is still referenced"):
        db.delete(system)

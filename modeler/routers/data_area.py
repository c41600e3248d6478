from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from modeler.database import get_db, unit_of_work
from modeler.models import DataArea, DataDomain
from modeler.schemas import DataAreaCreate, DataAreaRead, DataAreaUpdate

router = APIRouter(prefix="/data-areas", tags=["Data Areas"])


def _get_area_or_404(area_id: UUID, db: Session) -> DataArea:
    area = db.get(DataArea, area_id)
    if not area:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Data area not found")
    return area


def _ensure_domain(domain_id: UUID, db: Session) -> None:
    if db.get(DataDomain, domain_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Domain not found")


@router.post("", response_model=DataAreaRead, status_code=status.HTTP_201_CREATED)
def create_area(payload: DataAreaCreate, db: Session = Depends(get_db)) -> DataAreaRead:
    _ensure_domain(payload.domain_id, db)
    area = DataArea(**payload.model_dump())
    with unit_of_work(db, "This domain already has a data area with that name"):
        db.add(area)
    db.refresh(area)
    return area


@router.get("", response_model=List[DataAreaRead])
def list_areas(
    domain_id: Optional[UUID] = Query(default=None),
    db: Session = Depends(get_db),
) -> List[DataAreaRead]:
    query = db.query(DataArea)
    if domain_id is not None:
        query = query.filter(DataArea.domain_id == domain_id)
    return query.order_by(DataArea.name).all()


@router.get("/{area_id}", response_model=DataAreaRead)
def get_area(area_id: UUID, db: Session = Depends(get_db)) -> DataAreaRead:
    return _get_area_or_404(area_id, db)


@router.put("/{area_id}", response_model=DataAreaRead)
def update_area(area_id: UUID, payload: DataAreaUpdate, db: Session = Depends(get_db)) -> DataAreaRead:
    area = _get_area_or_404(area_id, db)

    update_data = payload.model_dump(exclude_unset=True)
    if update_data.get("domain_id") is not None:
        _ensure_domain(update_data["domain_id"], db)
    with unit_of_work(db, "This domain already has a data area with that name"):
        for field, value in update_data.items():
            setattr(area, field, value)
    db.refresh(area)
    return area


@router.delete("/{area_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_area(area_id: UUID, db: Session = Depends(get_db)) -> None:
    area = _get_area_or_404(area_id, db)
    with unit_of_work(db, "Data area is still referenced"):
        db.delete(area)

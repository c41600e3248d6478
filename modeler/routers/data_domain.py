from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from modeler.database import get_db, unit_of_work
from modeler.errors import ConflictError
from modeler.models import DataArea, DataDomain
from modeler.schemas import DataAreaRead, DataDomainCreate, DataDomainRead, DataDomainUpdate

router = APIRouter(prefix="/domains", tags=["Data Domains"])


def _get_domain_or_404(domain_id: UUID, db: Session) -> DataDomain:
    domain = db.get(DataDomain, domain_id)
    if not domain:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Domain not found")
    return domain


@router.post("", response_model=DataDomainRead, status_code=status.HTTP_201_CREATED)
def create_domain(payload: DataDomainCreate, db: Session = Depends(get_db)) -> DataDomainRead:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required")
    domain = DataDomain(**{**payload.model_dump(), "name": name})
    with unit_of_work(db, "A domain with this name already exists"):
        db.add(domain)
    db.refresh(domain)
    return domain


@router.get("", response_model=List[DataDomainRead])
def list_domains(db: Session = Depends(get_db)) -> List[DataDomainRead]:
    return db.query(DataDomain).order_by(DataDomain.name).all()


@router.get("/{domain_id}", response_model=DataDomainRead)
def get_domain(domain_id: UUID, db: Session = Depends(get_db)) -> DataDomainRead:
    return _get_domain_or_404(domain_id, db)


@router.get("/{domain_id}/areas", response_model=List[DataAreaRead])
def list_domain_areas(domain_id: UUID, db: Session = Depends(get_db)) -> List[DataAreaRead]:
    _get_domain_or_404(domain_id, db)
    return db.query(DataArea).filter(DataArea.domain_id == domain_id).order_by(DataArea.name).all()


@router.put("/{domain_id}", response_model=DataDomainRead)
def update_domain(domain_id: UUID, payload: DataDomainUpdate, db: Session = Depends(get_db)) -> DataDomainRead:
    domain = _get_domain_or_404(domain_id, db)

    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data:
        update_data["name"] = (update_data["name"] or "").strip()
        if not update_data["name"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required")
    with unit_of_work(db, "A domain with this name already exists"):
        for field, value in update_data.items():
            setattr(domain, field, value)
    db.refresh(domain)
    return domain


@router.delete("/{domain_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_domain(domain_id: UUID, db: Session = Depends(get_db)) -> None:
    domain = _get_domain_or_404(domain_id, db)
    area_count = db.query(DataArea).filter(DataArea.domain_id == domain_id).count()
    if area_count:
        raise ConflictError(
            "Domain still has data areas; delete them first",
            {"domain_id": str(domain_id), "area_count": area_count},
        )
    with unit_of_work(db, "Domain is still referenced"):
        db.delete(domain)

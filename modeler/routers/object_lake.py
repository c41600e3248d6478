from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from modeler.database import get_db
from modeler.schemas import ModelLayer, ObjectLakePage
from modeler.services import ObjectLakeQuery, ObjectLakeService

router = APIRouter(prefix="/object-lake", tags=["Object Lake"])


@router.get("", response_model=ObjectLakePage)
def list_object_lake(
    search: Optional[str] = Query(default=None),
    domain_id: Optional[UUID] = Query(default=None, alias="domainId"),
    data_area_id: Optional[UUID] = Query(default=None, alias="dataAreaId"),
    system_id: Optional[UUID] = Query(default=None, alias="systemId"),
    model_id: Optional[UUID] = Query(default=None, alias="modelId"),
    layer: Optional[ModelLayer] = Query(default=None),
    object_type: Optional[str] = Query(default=None, alias="objectType"),
    has_attributes: Optional[bool] = Query(default=None, alias="hasAttributes"),
    relationship_type: Optional[str] = Query(default=None, alias="relationshipType"),
    include_hidden: bool = Query(default=False, alias="includeHidden"),
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, alias="pageSize"),
    sort_by: str = Query(default="name", alias="sortBy"),
    sort_order: str = Query(default="asc", alias="sortOrder", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
) -> ObjectLakePage:
    query = ObjectLakeQuery(
        search=search,
        domain_id=domain_id,
        data_area_id=data_area_id,
        system_id=system_id,
        model_id=model_id,
        layer=layer,
        object_type=object_type,
        has_attributes=has_attributes,
        relationship_type=relationship_type,
        include_hidden=include_hidden,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ObjectLakeService(db).list(query)

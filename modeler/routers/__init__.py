from fastapi import APIRouter

from modeler.routers import (
    attribute,
    business_capability,
    canvas,
    data_area,
    data_domain,
    data_model,
    data_object,
    lifecycle,
    model_object,
    object_lake,
    relationship,
    system,
)

api_router = APIRouter()
api_router.include_router(system.router)
api_router.include_router(data_domain.router)
api_router.include_router(data_area.router)
api_router.include_router(data_model.router)
api_router.include_router(data_object.router)
api_router.include_router(model_object.router)
api_router.include_router(attribute.router)
api_router.include_router(relationship.router)
api_router.include_router(canvas.router)
api_router.include_router(object_lake.router)
api_router.include_router(business_capability.router)
api_router.include_router(lifecycle.router)

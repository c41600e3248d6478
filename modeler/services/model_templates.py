"""Target-system templates and the create-with-layers workflow."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from sqlalchemy import func
from sqlalchemy.orm import Session

from modeler.config import Settings, get_settings
from modeler.constants.modeling import CONCEPTUAL, LOGICAL, PHYSICAL
from modeler.errors import NotFoundError, ValidationError
from modeler.models import DataArea, DataDomain, DataModel, System
from modeler.schemas.entities import CreateWithLayersRequest
from modeler.services.layer_synchronizer import LayerSynchronizer
from modeler.services.type_mapper import map_conceptual_to_logical

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class TemplateAttribute:
    name: str
    conceptual_type: Optional[str] = None
    logical_type: Optional[str] = None
    description: Optional[str] = None
    length: Optional[int] = None
    nullable: bool = True
    is_primary_key: bool = False
    is_foreign_key: bool = False


@dataclass(frozen=True)
class TemplateObject:
    name: str
    description: Optional[str] = None
    object_type: Optional[str] = None
    domain: Optional[str] = None
    data_area: Optional[str] = None
    attributes: List[TemplateAttribute] = field(default_factory=list)


@dataclass(frozen=True)
class ModelTemplate:
    name: str
    description: Optional[str] = None
    default_domains: List[Dict[str, Any]] = field(default_factory=list)
    default_data_areas: List[Dict[str, Any]] = field(default_factory=list)
    objects: List[TemplateObject] = field(default_factory=list)


@dataclass
class LayeredModels:
    conceptual: DataModel
    logical: DataModel
    physical: DataModel
    templates_added: int = 0
    message: str = ""


def template_slug(system_name: str) -> str:
    return _SLUG_RE.sub("_", system_name.strip().lower()).strip("_")


def _parse_template(payload: Dict[str, Any], fallback_name: str) -> ModelTemplate:
    objects: List[TemplateObject] = []
    for raw_object in payload.get("objects") or []:
        attributes = [
            TemplateAttribute(
                name=raw_attribute["name"],
                conceptual_type=raw_attribute.get("conceptual_type"),
                logical_type=raw_attribute.get("logical_type"),
                description=raw_attribute.get("description"),
                length=raw_attribute.get("length"),
                nullable=bool(raw_attribute.get("nullable", True)),
                is_primary_key=bool(raw_attribute.get("is_primary_key", False)),
                is_foreign_key=bool(raw_attribute.get("is_foreign_key", False)),
            )
            for raw_attribute in raw_object.get("attributes") or []
        ]
        objects.append(
            TemplateObject(
                name=raw_object["name"],
                description=raw_object.get("description"),
                object_type=raw_object.get("object_type"),
                domain=raw_object.get("domain"),
                data_area=raw_object.get("data_area"),
                attributes=attributes,
            )
        )
    return ModelTemplate(
        name=payload.get("name") or fallback_name,
        description=payload.get("description"),
        default_domains=list(payload.get("default_domains") or []),
        default_data_areas=list(payload.get("default_data_areas") or []),
        objects=objects,
    )


def load_template(system_name: str, settings: Optional[Settings] = None) -> Optional[ModelTemplate]:
    """Load the template for ``system_name`` from the templates directory, if one exists."""
    settings = settings or get_settings()
    template_path: Path = settings.resolved_templates_path / f"{template_slug(system_name)}.yaml"
    if not template_path.exists():
        logger.info("No model template for target system '%s' at %s", system_name, template_path)
        return None
    try:
        payload = yaml.safe_load(template_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        logger.warning("Failed to parse model template %s: %s", template_path, exc)
        return None
    return _parse_template(payload, system_name)


class LayeredModelBuilder:
    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.synchronizer = LayerSynchronizer(db, self.settings)

    def resolve_target_system(self, request: CreateWithLayersRequest) -> System:
        if request.target_system_id is not None:
            system = self.db.get(System, request.target_system_id)
            if system is None:
                raise NotFoundError(
                    "Target system not found", {"id": str(request.target_system_id)}, from_body=True
                )
            return system

        name = (request.target_system or self.settings.default_target_system).strip()
        system = self.db.query(System).filter(func.lower(System.name) == name.lower()).first()
        if system is None:
            logger.info("Registering target system '%s' for layered model creation", name)
            system = System(name=name, category="target", can_be_source=False, can_be_target=True)
            self.db.add(system)
            self.db.flush()
        return system

    def create(self, request: CreateWithLayersRequest) -> LayeredModels:
        name = request.name.strip()
        if not name:
            raise ValidationError("Model name is required", [{"field": "name", "message": "Field required"}])
        system = self.resolve_target_system(request)
        classification = self.synchronizer.validate_references(
            {"domain_id": request.domain_id, "data_area_id": request.data_area_id}
        )

        def layer_model(layer: str, parent: Optional[DataModel]) -> DataModel:
            model = DataModel(
                name=f"{name} ({layer.capitalize()})" if parent is not None else name,
                description=request.description,
                layer=layer,
                parent_model_id=parent.id if parent is not None else None,
                target_system_id=system.id,
                domain_id=classification["domain_id"],
                data_area_id=classification["data_area_id"],
            )
            self.db.add(model)
            self.db.flush()
            return model

        conceptual = layer_model(CONCEPTUAL, None)
        logical = layer_model(LOGICAL, conceptual)
        physical = layer_model(PHYSICAL, conceptual)
        result = LayeredModels(conceptual=conceptual, logical=logical, physical=physical)

        template = load_template(system.name, self.settings) if request.include_template else None
        if template is not None:
            result.templates_added = self.apply_template(template, result)
        if result.templates_added:
            result.message = (
                f"Created conceptual, logical and physical models with {result.templates_added} "
                f"{template.name} template objects"
            )
        else:
            result.message = "Created conceptual, logical and physical models"
        logger.info("Created layered models for '%s' (root %s)", name, conceptual.id)
        return result

    def apply_template(self, template: ModelTemplate, models: LayeredModels) -> int:
        domains: Dict[str, DataDomain] = {}
        for raw_domain in template.default_domains:
            domain = self._domain(raw_domain["name"], raw_domain.get("description"))
            domains[domain.name.lower()] = domain
        areas: Dict[str, DataArea] = {}
        for raw_area in template.default_data_areas:
            domain = domains.get((raw_area.get("domain") or "").lower())
            if domain is None:
                logger.warning("Template area '%s' names an unknown domain; skipping", raw_area.get("name"))
                continue
            area = self._area(domain, raw_area["name"], raw_area.get("description"))
            areas[area.name.lower()] = area

        added = 0
        for template_object in template.objects:
            domain = domains.get((template_object.domain or "").lower())
            area = areas.get((template_object.data_area or "").lower())
            created = self.synchronizer.create_object(
                models.conceptual,
                {
                    "name": template_object.name,
                    "description": template_object.description,
                    "object_type": template_object.object_type,
                    "domain_id": domain.id if domain is not None else None,
                    "data_area_id": area.id if area is not None else None,
                    "is_new": False,
                },
                cascade=False,
            )
            logical_inputs = [
                {
                    "name": attribute.name,
                    "description": attribute.description,
                    "conceptual_type": attribute.conceptual_type,
                    "logical_type": attribute.logical_type or map_conceptual_to_logical(attribute.conceptual_type),
                    "length": attribute.length,
                    "nullable": attribute.nullable,
                    "is_primary_key": attribute.is_primary_key,
                    "is_foreign_key": attribute.is_foreign_key,
                    "order_index": index,
                }
                for index, attribute in enumerate(template_object.attributes)
            ]
            logical_replica = self.synchronizer.replicate_object(
                created.data_object,
                models.logical,
                origin_model=models.conceptual,
                attributes=logical_inputs,
            )
            physical_inputs = [
                self.synchronizer.next_layer_attribute(attribute, PHYSICAL)
                for attribute in logical_replica.attributes
            ]
            self.synchronizer.replicate_object(
                logical_replica.data_object,
                models.physical,
                origin_model=models.logical,
                attributes=physical_inputs,
            )
            added += 1
        return added

    def _domain(self, name: str, description: Optional[str]) -> DataDomain:
        domain = self.db.query(DataDomain).filter(func.lower(DataDomain.name) == name.lower()).first()
        if domain is None:
            domain = DataDomain(name=name, description=description)
            self.db.add(domain)
            self.db.flush()
        return domain

    def _area(self, domain: DataDomain, name: str, description: Optional[str]) -> DataArea:
        area = (
            self.db.query(DataArea)
            .filter(DataArea.domain_id == domain.id, func.lower(DataArea.name) == name.lower())
            .first()
        )
        if area is None:
            area = DataArea(domain_id=domain.id, name=name, description=description)
            self.db.add(area)
            self.db.flush()
        return area

"""Propagate object and attribute mutations across the layers of a model family.

The synchronizer stages every write on the caller's session and never commits, so a mutation
and its cascade land in one transaction when the caller commits.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from modeler.config import Settings, get_settings
from modeler.constants.modeling import CONCEPTUAL, LOGICAL, NEXT_LAYER, PHYSICAL
from modeler.errors import ConflictError, MissingProjectionTarget, NotFoundError, ValidationError
from modeler.models import (
    Attribute,
    DataArea,
    DataDomain,
    DataModel,
    DataModelAttribute,
    DataModelObject,
    DataObject,
    System,
)
from modeler.services import projection_builder
from modeler.services.model_family import ModelFamily, resolve_model_family
from modeler.services.type_mapper import (
    default_length,
    default_precision_scale,
    map_conceptual_to_logical,
    map_logical_to_physical,
)

logger = logging.getLogger(__name__)

OBJECT_FIELDS = (
    "name",
    "description",
    "object_type",
    "domain_id",
    "data_area_id",
    "source_system_id",
    "target_system_id",
    "position",
    "properties",
    "is_new",
)
PROPAGATED_OBJECT_FIELDS = ("name", "description", "object_type", "domain_id", "data_area_id", "source_system_id")
ATTRIBUTE_FIELDS = (
    "name",
    "description",
    "conceptual_type",
    "logical_type",
    "physical_type",
    "data_type",
    "length",
    "precision",
    "scale",
    "nullable",
    "is_primary_key",
    "is_foreign_key",
    "order_index",
)
MIRRORED_ATTRIBUTE_FIELDS = (
    "name",
    "description",
    "conceptual_type",
    "logical_type",
    "nullable",
    "is_primary_key",
    "is_foreign_key",
    "order_index",
)

_NAME_NORMALIZE_RE = re.compile(r"[^a-z0-9]+")


def normalize_name(value: Optional[str]) -> str:
    return _NAME_NORMALIZE_RE.sub("", (value or "").lower())


@dataclass
class LayerReplica:
    layer: str
    model: DataModel
    data_object: DataObject
    model_object: DataModelObject
    attributes: List[Attribute] = field(default_factory=list)


@dataclass
class ObjectCreationResult:
    data_object: DataObject
    model_object: DataModelObject
    replicas: List[LayerReplica] = field(default_factory=list)
    skipped_layers: List[str] = field(default_factory=list)


@dataclass
class AttributeCascadeResult:
    attribute: Attribute
    model_attribute: Optional[DataModelAttribute] = None
    mirrored_attribute: Optional[Attribute] = None
    mirrored_model_attribute: Optional[DataModelAttribute] = None
    warnings: List[str] = field(default_factory=list)


class LayerSynchronizer:
    """Apply object/attribute mutations to one layer and cascade them to sibling layers."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self._families: Dict[UUID, ModelFamily] = {}

    # ------------------------------------------------------------------
    # Shared lookups

    def family_for(self, model: DataModel) -> ModelFamily:
        family = self._families.get(model.id)
        if family is None:
            family = resolve_model_family(self.db, model)
            for member in family.members():
                self._families[member.id] = family
        return family

    def _require(self, model_cls, entity_id: Optional[UUID], label: str) -> Any:
        if entity_id is None:
            return None
        entity = self.db.get(model_cls, entity_id)
        if entity is None:
            raise NotFoundError(f"{label} not found", {"id": str(entity_id)}, from_body=True)
        return entity

    def validate_references(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Check domain/area/system references and align the area with its domain."""
        self._require(DataDomain, values.get("domain_id"), "Domain")
        area = self._require(DataArea, values.get("data_area_id"), "Data area")
        if area is not None:
            if values.get("domain_id") is None:
                values["domain_id"] = area.domain_id
            elif area.domain_id != values["domain_id"]:
                raise ValidationError(
                    "Data area does not belong to the selected domain",
                    {"field": "data_area_id", "domain_id": str(values["domain_id"])},
                )
        self._require(System, values.get("source_system_id"), "Source system")
        self._require(System, values.get("target_system_id"), "Target system")
        return values

    def find_counterpart(self, model: DataModel, data_object: DataObject) -> Optional[DataModelObject]:
        """Return the projection in ``model`` that shares ``data_object``'s lineage."""
        root_id = data_object.lineage_root_id
        return (
            self.db.query(DataModelObject)
            .join(DataObject, DataObject.id == DataModelObject.object_id)
            .filter(
                DataModelObject.model_id == model.id,
                or_(DataObject.id == root_id, DataObject.origin_object_id == root_id),
            )
            .order_by(DataModelObject.created_at)
            .first()
        )

    def _locate_counterpart(self, model: DataModel, data_object: DataObject) -> Optional[DataModelObject]:
        counterpart = self.find_counterpart(model, data_object)
        if counterpart is not None or not self.settings.legacy_name_matching:
            return counterpart

        wanted = normalize_name(data_object.name)
        for candidate in self.db.query(DataModelObject).filter(DataModelObject.model_id == model.id).all():
            if candidate.object is None:
                continue
            if normalize_name(projection_builder.resolve_object_view(candidate)["name"]) == wanted:
                logger.warning(
                    "Matched object '%s' to model %s by name; no lineage link exists",
                    data_object.name,
                    model.id,
                )
                return candidate
        return None

    def _locate_attribute_counterpart(self, target_object: DataObject, attribute: Attribute) -> Optional[Attribute]:
        root_id = attribute.lineage_root_id
        candidates = self.db.query(Attribute).filter(Attribute.object_id == target_object.id).all()
        for candidate in candidates:
            if candidate.id == root_id or candidate.origin_attribute_id == root_id:
                return candidate
        if not self.settings.legacy_name_matching:
            return None
        wanted = normalize_name(attribute.name)
        for candidate in candidates:
            if normalize_name(candidate.name) == wanted:
                logger.warning(
                    "Matched attribute '%s' on object %s by name; no lineage link exists",
                    attribute.name,
                    target_object.id,
                )
                return candidate
        return None

    def _home_projection(self, data_object: DataObject) -> Optional[DataModelObject]:
        query = self.db.query(DataModelObject).filter(DataModelObject.object_id == data_object.id)
        if data_object.model_id is not None:
            home = query.filter(DataModelObject.model_id == data_object.model_id).first()
            if home is not None:
                return home
        return query.order_by(DataModelObject.created_at).first()

    # ------------------------------------------------------------------
    # Objects

    def create_object(
        self,
        model: DataModel,
        values: Mapping[str, Any],
        *,
        config: Optional[Mapping[str, Any]] = None,
        layer_configs: Optional[Mapping[str, Mapping[str, Any]]] = None,
        cascade: bool = True,
    ) -> ObjectCreationResult:
        payload = {key: value for key, value in values.items() if key in OBJECT_FIELDS}
        if not (payload.get("name") or "").strip():
            raise ValidationError("Object name is required", [{"field": "name", "message": "Field required"}])
        payload["name"] = payload["name"].strip()
        self.validate_references(payload)
        layer_configs = layer_configs or {}

        if payload.get("target_system_id") is None:
            payload["target_system_id"] = model.target_system_id
        data_object = DataObject(model_id=model.id, **payload)
        self.db.add(data_object)
        self.db.flush()

        model_object = projection_builder.build_model_object(
            model,
            data_object,
            projection_builder.merge_layer_config(config, layer_configs.get(model.layer)),
        )
        self.db.add(model_object)
        self.db.flush()

        result = ObjectCreationResult(data_object=data_object, model_object=model_object)
        if not cascade or model.layer != CONCEPTUAL:
            return result

        family = self.family_for(model)
        for layer in (LOGICAL, PHYSICAL):
            sibling = family.for_layer(layer)
            if sibling is None:
                logger.info("Model family %s has no %s layer; skipping projection", family.root_id, layer)
                result.skipped_layers.append(layer)
                continue
            try:
                replica = self.replicate_object(
                    data_object,
                    sibling,
                    config=projection_builder.merge_layer_config(config, layer_configs.get(layer)),
                    origin_model=model,
                )
            except (ConflictError, NotFoundError, ValidationError) as exc:
                logger.warning("Skipping %s projection of object %s: %s", layer, data_object.id, exc.message)
                result.skipped_layers.append(layer)
                continue
            result.replicas.append(replica)
        return result

    def replicate_object(
        self,
        source: DataObject,
        target_model: DataModel,
        *,
        config: Optional[Mapping[str, Any]] = None,
        origin_model: Optional[DataModel] = None,
        attributes: Iterable[Mapping[str, Any]] = (),
        name_override: Optional[str] = None,
    ) -> LayerReplica:
        """Create a canonical copy of ``source`` owned by ``target_model`` plus its projection."""
        if self.find_counterpart(target_model, source) is not None:
            raise ConflictError(
                f"Model '{target_model.name}' already contains a projection of '{source.name}'",
                {"model_id": str(target_model.id), "object_id": str(source.id)},
            )
        config = dict(config or {})
        root_id = source.lineage_root_id
        markers = {"origin_object_id": str(root_id)}
        if origin_model is not None:
            markers["origin_model_id"] = str(origin_model.id)

        target_system_id = config.get("target_system_id") or target_model.target_system_id or source.target_system_id
        clone = DataObject(
            name=name_override or source.name,
            description=source.description,
            object_type=source.object_type,
            domain_id=source.domain_id,
            data_area_id=source.data_area_id,
            source_system_id=source.source_system_id,
            target_system_id=target_system_id,
            model_id=target_model.id,
            origin_object_id=root_id,
            is_new=source.is_new,
            position=config.get("position") or source.position,
            properties={**(source.properties or {}), **markers},
        )
        self.db.add(clone)
        self.db.flush()

        model_object = projection_builder.build_model_object(
            target_model, clone, config, origin=source, origin_model=origin_model
        )
        self.db.add(model_object)
        self.db.flush()

        replica = LayerReplica(
            layer=target_model.layer, model=target_model, data_object=clone, model_object=model_object
        )
        for index, attribute_values in enumerate(attributes):
            values = {key: value for key, value in attribute_values.items() if key in ATTRIBUTE_FIELDS}
            values.setdefault("order_index", index)
            attribute = Attribute(
                object_id=clone.id,
                origin_attribute_id=attribute_values.get("origin_attribute_id"),
                **values,
            )
            self.db.add(attribute)
            self.db.flush()
            self.db.add(projection_builder.build_model_attribute(model_object, attribute))
            replica.attributes.append(attribute)
        self.db.flush()
        return replica

    def update_object(self, data_object: DataObject, changes: Mapping[str, Any]) -> List[DataObject]:
        """Apply canonical changes; a lineage root pushes classification changes to its replicas."""
        payload = {key: value for key, value in changes.items() if key in OBJECT_FIELDS}
        if "name" in payload and not (payload["name"] or "").strip():
            raise ValidationError("Object name is required", [{"field": "name", "message": "Field required"}])
        check = {
            "domain_id": payload.get("domain_id", data_object.domain_id),
            "data_area_id": payload.get("data_area_id", data_object.data_area_id),
            "source_system_id": payload.get("source_system_id"),
            "target_system_id": payload.get("target_system_id"),
        }
        self.validate_references(check)
        if "data_area_id" in payload or "domain_id" in payload:
            payload["domain_id"] = check["domain_id"]

        for key, value in payload.items():
            setattr(data_object, key, value)

        updated: List[DataObject] = []
        pushed = {key: value for key, value in payload.items() if key in PROPAGATED_OBJECT_FIELDS}
        if data_object.origin_object_id is None and pushed:
            replicas = self.db.query(DataObject).filter(DataObject.origin_object_id == data_object.id).all()
            for replica in replicas:
                for key, value in pushed.items():
                    setattr(replica, key, value)
                updated.append(replica)
        self.db.flush()
        return updated

    def generate_next_layer(
        self,
        data_object: DataObject,
        *,
        target_model: Optional[DataModel] = None,
        config: Optional[Mapping[str, Any]] = None,
        name_override: Optional[str] = None,
    ) -> LayerReplica:
        if data_object.model is None:
            raise ValidationError("Object is not owned by a layer model", {"object_id": str(data_object.id)})
        layer = data_object.model.layer
        if layer == PHYSICAL:
            raise ValidationError("Physical objects have no next layer", {"object_id": str(data_object.id)})
        next_layer = NEXT_LAYER[layer]

        family = self.family_for(data_object.model)
        if target_model is None:
            target_model = family.for_layer(next_layer)
            if target_model is None:
                raise NotFoundError(
                    f"Model family has no {next_layer} model",
                    {"family_root_id": str(family.root_id)},
                    from_body=True,
                )
        if target_model.layer != next_layer:
            raise ValidationError(
                f"Target model must be a {next_layer} model",
                {"target_model_id": str(target_model.id), "layer": target_model.layer},
            )
        if not family.contains(target_model.id):
            raise ValidationError(
                "Target model belongs to a different model family",
                {"target_model_id": str(target_model.id)},
            )

        attribute_inputs = [self.next_layer_attribute(attribute, next_layer) for attribute in data_object.attributes]
        return self.replicate_object(
            data_object,
            target_model,
            config=config,
            origin_model=data_object.model,
            attributes=attribute_inputs,
            name_override=name_override,
        )

    def next_layer_attribute(self, attribute: Attribute, next_layer: str) -> Dict[str, Any]:
        values = {key: getattr(attribute, key) for key in ATTRIBUTE_FIELDS}
        values["origin_attribute_id"] = attribute.lineage_root_id
        if not values.get("logical_type"):
            values["logical_type"] = map_conceptual_to_logical(values.get("conceptual_type"))
        if next_layer == PHYSICAL:
            values.update(self._physical_derivation(attribute.logical_type or values["logical_type"], attribute))
        return values

    def attach_object(
        self, model: DataModel, data_object: DataObject, config: Optional[Mapping[str, Any]] = None
    ) -> DataModelObject:
        existing = (
            self.db.query(DataModelObject)
            .filter(DataModelObject.model_id == model.id, DataModelObject.object_id == data_object.id)
            .first()
        )
        if existing is not None:
            raise ConflictError(
                "Object is already attached to this model",
                {"model_id": str(model.id), "object_id": str(data_object.id), "model_object_id": str(existing.id)},
            )
        model_object = projection_builder.build_model_object(model, data_object, config)
        self.db.add(model_object)
        self.db.flush()
        for attribute in data_object.attributes:
            self.db.add(projection_builder.build_model_attribute(model_object, attribute))
        self.db.flush()
        return model_object

    def create_draft_object(
        self, model: DataModel, values: Mapping[str, Any], config: Optional[Mapping[str, Any]] = None
    ) -> DataModelObject:
        """Create a projection with no canonical object; it owns its name and classification."""
        payload = dict(values)
        if not (payload.get("name") or "").strip():
            raise ValidationError("Object name is required", [{"field": "name", "message": "Field required"}])
        self.validate_references(payload)
        model_object = projection_builder.build_model_object(model, None, config)
        model_object.name = payload["name"].strip()
        model_object.description = payload.get("description")
        model_object.object_type = payload.get("object_type")
        model_object.domain_id = payload.get("domain_id")
        model_object.data_area_id = payload.get("data_area_id")
        self.db.add(model_object)
        self.db.flush()
        return model_object

    # ------------------------------------------------------------------
    # Attributes

    def create_attribute(
        self,
        data_object: DataObject,
        values: Mapping[str, Any],
        *,
        model_object: Optional[DataModelObject] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> AttributeCascadeResult:
        payload = {key: value for key, value in values.items() if key in ATTRIBUTE_FIELDS}
        if not (payload.get("name") or "").strip():
            raise ValidationError("Attribute name is required", [{"field": "name", "message": "Field required"}])
        payload["name"] = payload["name"].strip()

        if model_object is None:
            model_object = self._home_projection(data_object)
        elif model_object.object_id != data_object.id:
            raise ValidationError(
                "Model object does not project this object",
                {"model_object_id": str(model_object.id), "object_id": str(data_object.id)},
            )

        layer = model_object.model.layer if model_object is not None else None
        if layer in (LOGICAL, PHYSICAL) and not payload.get("logical_type") and payload.get("conceptual_type"):
            payload["logical_type"] = map_conceptual_to_logical(payload["conceptual_type"])
        if layer == PHYSICAL and not payload.get("physical_type") and payload.get("logical_type"):
            payload.update(
                {
                    key: value
                    for key, value in self._physical_derivation(payload["logical_type"], None).items()
                    if payload.get(key) is None
                }
            )
        if payload.get("order_index") is None:
            payload["order_index"] = (
                self.db.query(func.count(Attribute.id)).filter(Attribute.object_id == data_object.id).scalar() or 0
            )

        attribute = Attribute(object_id=data_object.id, **payload)
        self.db.add(attribute)
        self.db.flush()

        result = AttributeCascadeResult(attribute=attribute)
        if model_object is not None:
            result.model_attribute = projection_builder.build_model_attribute(model_object, attribute, overrides)
            self.db.add(result.model_attribute)
            self.db.flush()

        if layer == LOGICAL:
            self._cascade_to_physical(attribute, model_object.model, result)
        return result

    def update_attribute(self, attribute: Attribute, changes: Mapping[str, Any]) -> AttributeCascadeResult:
        payload = {key: value for key, value in changes.items() if key in ATTRIBUTE_FIELDS}
        if "name" in payload and not (payload["name"] or "").strip():
            raise ValidationError("Attribute name is required", [{"field": "name", "message": "Field required"}])
        for key, value in payload.items():
            setattr(attribute, key, value)
        self.db.flush()

        result = AttributeCascadeResult(attribute=attribute)
        owner_model = attribute.object.model if attribute.object is not None else None
        cascading = set(payload) & (set(MIRRORED_ATTRIBUTE_FIELDS) | {"length", "precision", "scale"})
        if owner_model is not None and owner_model.layer == LOGICAL and cascading:
            self._cascade_to_physical(attribute, owner_model, result)
        return result

    def create_projection_attribute(
        self, model_object: DataModelObject, values: Mapping[str, Any]
    ) -> DataModelAttribute:
        """Create a layer-local attribute with no canonical row behind it."""
        if not (values.get("name") or "").strip():
            raise ValidationError("Attribute name is required", [{"field": "name", "message": "Field required"}])
        overrides = dict(values)
        overrides["name"] = overrides["name"].strip()
        if overrides.get("order_index") is None:
            overrides["order_index"] = len(model_object.attributes)
        model_attribute = projection_builder.build_model_attribute(model_object, None, overrides)
        self.db.add(model_attribute)
        self.db.flush()
        return model_attribute

    def enhance_attribute(self, attribute: Attribute, target_layer: str) -> Attribute:
        if target_layer == LOGICAL:
            if not attribute.logical_type:
                attribute.logical_type = map_conceptual_to_logical(attribute.conceptual_type)
        elif target_layer == PHYSICAL:
            if not attribute.logical_type:
                attribute.logical_type = map_conceptual_to_logical(attribute.conceptual_type)
            for key, value in self._physical_derivation(attribute.logical_type, attribute).items():
                if key == "physical_type" or getattr(attribute, key) is None:
                    setattr(attribute, key, value)
        else:
            raise ValidationError("Attributes can only be enhanced to the logical or physical layer")
        self.db.flush()
        return attribute

    # ------------------------------------------------------------------
    # Cascade internals

    def _physical_derivation(self, logical_type: Optional[str], attribute: Optional[Attribute]) -> Dict[str, Any]:
        length = attribute.length if attribute is not None and attribute.length is not None else default_length(logical_type)
        precision = attribute.precision if attribute is not None else None
        scale = attribute.scale if attribute is not None else None
        if precision is None and scale is None:
            defaults: Optional[Tuple[int, int]] = default_precision_scale(logical_type)
            if defaults is not None:
                precision, scale = defaults
        return {
            "physical_type": map_logical_to_physical(logical_type),
            "length": length,
            "precision": precision,
            "scale": scale,
        }

    def _cascade_to_physical(
        self, attribute: Attribute, source_model: DataModel, result: AttributeCascadeResult
    ) -> None:
        try:
            mirror, mirror_projection = self._mirror_to_physical(attribute, source_model)
        except MissingProjectionTarget as exc:
            logger.warning("Attribute cascade skipped for %s: %s %s", attribute.id, exc.message, exc.details)
            result.warnings.append(exc.message)
            return
        result.mirrored_attribute = mirror
        result.mirrored_model_attribute = mirror_projection

    def _mirror_to_physical(
        self, attribute: Attribute, source_model: DataModel
    ) -> Tuple[Optional[Attribute], Optional[DataModelAttribute]]:
        family = self.family_for(source_model)
        physical_model = family.physical
        if physical_model is None:
            logger.info("Model family %s has no physical layer; attribute cascade not needed", family.root_id)
            return None, None

        source_object = attribute.object
        target_projection = self._locate_counterpart(physical_model, source_object)
        if target_projection is None or target_projection.object is None:
            raise MissingProjectionTarget(
                f"No physical-layer object matches '{source_object.name}'",
                {"object_id": str(source_object.id), "physical_model_id": str(physical_model.id)},
            )
        target_object = target_projection.object

        values = {key: getattr(attribute, key) for key in MIRRORED_ATTRIBUTE_FIELDS}
        values.update(self._physical_derivation(attribute.logical_type, attribute))

        mirror = self._locate_attribute_counterpart(target_object, attribute)
        if mirror is None:
            mirror = Attribute(
                object_id=target_object.id,
                origin_attribute_id=attribute.lineage_root_id,
                **values,
            )
            self.db.add(mirror)
            self.db.flush()
        else:
            for key, value in values.items():
                setattr(mirror, key, value)
            if mirror.origin_attribute_id is None and mirror.id != attribute.lineage_root_id:
                mirror.origin_attribute_id = attribute.lineage_root_id

        mirror_projection = (
            self.db.query(DataModelAttribute)
            .filter(
                DataModelAttribute.model_object_id == target_projection.id,
                DataModelAttribute.attribute_id == mirror.id,
            )
            .first()
        )
        if mirror_projection is None:
            mirror_projection = projection_builder.build_model_attribute(target_projection, mirror)
            self.db.add(mirror_projection)
        self.db.flush()
        logger.info("Mirrored attribute %s to physical attribute %s", attribute.id, mirror.id)
        return mirror, mirror_projection


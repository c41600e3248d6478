"""Materialize per-layer projections of canonical objects and attributes.

Projection rows only carry what differs per layer. Reads go through ``resolve_object_view`` and
``resolve_attribute_view``, which fall back to the canonical row for anything the projection
leaves unset and treat a projection without a canonical row as authoritative.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, Optional

from modeler.constants.modeling import DEFAULT_NODE_POSITION
from modeler.models import Attribute, DataModel, DataModelAttribute, DataModelObject, DataObject

CONFIG_KEYS = ("position", "target_system_id", "metadata", "is_visible", "layer_specific_config")
ATTRIBUTE_OVERRIDE_FIELDS = (
    "name",
    "conceptual_type",
    "logical_type",
    "physical_type",
    "length",
    "precision",
    "scale",
    "nullable",
    "is_primary_key",
    "is_foreign_key",
    "order_index",
)


def merge_layer_config(
    base: Optional[Mapping[str, Any]], override: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    merged = {key: value for key, value in (base or {}).items() if key in CONFIG_KEYS}
    for key, value in (override or {}).items():
        if key in CONFIG_KEYS:
            merged[key] = value
    return merged


def _origin_markers(origin: Optional[DataObject], origin_model: Optional[DataModel]) -> Dict[str, str]:
    markers: Dict[str, str] = {}
    if origin is not None:
        markers["origin_object_id"] = str(origin.id)
    if origin_model is not None:
        markers["origin_model_id"] = str(origin_model.id)
    return markers


def build_model_object(
    model: DataModel,
    data_object: Optional[DataObject],
    config: Optional[Mapping[str, Any]] = None,
    *,
    origin: Optional[DataObject] = None,
    origin_model: Optional[DataModel] = None,
) -> DataModelObject:
    config = config or {}
    markers = _origin_markers(origin, origin_model)
    layer_config = dict(config.get("layer_specific_config") or {})
    layer_config.setdefault("layer", model.layer)
    layer_config.update(markers)

    properties = dict(config.get("metadata") or {})
    properties.update(markers)

    position = config.get("position")
    if position is None and data_object is not None:
        position = data_object.position

    target_system_id = config.get("target_system_id")
    if target_system_id is None and data_object is not None:
        target_system_id = data_object.target_system_id
    if target_system_id is None:
        target_system_id = model.target_system_id

    return DataModelObject(
        model_id=model.id,
        object_id=data_object.id if data_object is not None else None,
        target_system_id=target_system_id,
        position=copy.deepcopy(position),
        is_visible=config.get("is_visible", True) is not False,
        layer_specific_config=layer_config,
        properties=properties or None,
    )


def build_model_attribute(
    model_object: DataModelObject,
    attribute: Optional[Attribute],
    overrides: Optional[Mapping[str, Any]] = None,
) -> DataModelAttribute:
    values = {
        field: value
        for field, value in (overrides or {}).items()
        if field in ATTRIBUTE_OVERRIDE_FIELDS and value is not None
    }
    return DataModelAttribute(
        model_id=model_object.model_id,
        model_object_id=model_object.id,
        attribute_id=attribute.id if attribute is not None else None,
        layer_specific_config=dict((overrides or {}).get("layer_specific_config") or {}) or None,
        **values,
    )


def _pick(override: Any, canonical: Any) -> Any:
    return override if override is not None else canonical


def resolve_object_view(model_object: DataModelObject) -> Dict[str, Any]:
    data_object = model_object.object
    if data_object is None:
        return {
            "name": model_object.name or "Untitled object",
            "description": model_object.description,
            "object_type": model_object.object_type,
            "domain_id": model_object.domain_id,
            "data_area_id": model_object.data_area_id,
            "source_system_id": None,
            "target_system_id": model_object.target_system_id,
        }
    return {
        "name": _pick(model_object.name, data_object.name),
        "description": _pick(model_object.description, data_object.description),
        "object_type": _pick(model_object.object_type, data_object.object_type),
        "domain_id": _pick(model_object.domain_id, data_object.domain_id),
        "data_area_id": _pick(model_object.data_area_id, data_object.data_area_id),
        "source_system_id": data_object.source_system_id,
        "target_system_id": _pick(model_object.target_system_id, data_object.target_system_id),
    }


def resolve_attribute_view(model_attribute: DataModelAttribute) -> Dict[str, Any]:
    attribute = model_attribute.attribute
    view: Dict[str, Any] = {}
    for field in ATTRIBUTE_OVERRIDE_FIELDS:
        canonical = getattr(attribute, field) if attribute is not None else None
        view[field] = _pick(getattr(model_attribute, field), canonical)
    view["description"] = attribute.description if attribute is not None else None
    view["name"] = view["name"] or "Untitled attribute"
    view["nullable"] = True if view["nullable"] is None else view["nullable"]
    view["is_primary_key"] = bool(view["is_primary_key"])
    view["is_foreign_key"] = bool(view["is_foreign_key"])
    view["order_index"] = view["order_index"] or 0
    return view


def layer_position(model_object: DataModelObject, layer: str) -> Dict[str, float]:
    layer_config = model_object.layer_specific_config or {}
    stored = (layer_config.get("layers") or {}).get(layer, {}).get("position")
    if stored:
        return stored
    if model_object.position:
        return model_object.position
    data_object = model_object.object
    if data_object is not None and data_object.position:
        return data_object.position
    return dict(DEFAULT_NODE_POSITION)


def set_layer_position(model_object: DataModelObject, layer: str, position: Mapping[str, float]) -> None:
    # JSON columns are not mutation-tracked; always assign a fresh dict.
    layer_config = copy.deepcopy(model_object.layer_specific_config or {})
    layers = layer_config.setdefault("layers", {})
    layers.setdefault(layer, {})["position"] = dict(position)
    layer_config["last_updated_layer"] = layer
    model_object.layer_specific_config = layer_config
    model_object.position = dict(position)

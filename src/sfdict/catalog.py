"""
Schema catalog: typed access to describe, listMetadata and readMetadata.

Raw JSON / SOAP payloads are mapped into ``sfdict.models`` here, and
transport failures are turned into the ``sfdict.exceptions`` taxonomy.
No caching: every call goes to the org.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Set

import requests

from .exceptions import CatalogUnavailable, ObjectDescribeFailed, RowCountFailed
from .filters import is_custom_object, managed_object_map, namespace_of
from .models import (
    ChildRelationship,
    CustomFieldInfo,
    CustomObjectInfo,
    CustomObjectMetadata,
    FieldDescriptor,
    FieldMetadata,
    ObjectDescriptor,
    PicklistValue,
    ReferenceKind,
    ValidationRule,
)

_logger = logging.getLogger(__name__)


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _reference_kind(f: Dict[str, Any]) -> ReferenceKind:
    if f.get("type") != "reference" or not f.get("referenceTo"):
        return ReferenceKind.NONE
    # Only master-detail fields carry a relationshipOrder (0 or 1)
    if f.get("relationshipOrder") is not None:
        return ReferenceKind.MASTER_DETAIL
    return ReferenceKind.LOOKUP


def parse_field(f: Dict[str, Any]) -> FieldDescriptor:
    return FieldDescriptor(
        name=f.get("name") or "",
        is_custom=bool(f.get("custom")),
        reference_kind=_reference_kind(f),
        reference_targets=tuple(str(t) for t in (f.get("referenceTo") or [])),
        label=f.get("label"),
        type=f.get("type") or "string",
        length=_int_or_none(f.get("length")),
        precision=_int_or_none(f.get("precision")),
        scale=_int_or_none(f.get("scale")),
        nillable=bool(f.get("nillable", True)),
        updateable=bool(f.get("updateable")),
        unique=bool(f.get("unique")),
        external_id=bool(f.get("externalId")),
        formula=f.get("calculatedFormula"),
        help_text=f.get("inlineHelpText"),
        picklist_values=tuple(
            PicklistValue(
                value=str(p.get("value")),
                label=p.get("label"),
                active=bool(p.get("active", True)),
            )
            for p in (f.get("picklistValues") or [])
        ),
    )


def parse_describe(api_name: str, desc: Dict[str, Any]) -> ObjectDescriptor:
    """Map a /describe payload onto an ObjectDescriptor."""
    name = desc.get("name") or api_name
    kids = tuple(
        ChildRelationship(
            child_object_name=cr.get("childSObject") or "",
            cascade_delete=bool(cr.get("cascadeDelete")),
            field=cr.get("field"),
            relationship_name=cr.get("relationshipName"),
        )
        for cr in (desc.get("childRelationships") or [])
        if cr.get("childSObject")
    )
    return ObjectDescriptor(
        name=name,
        is_custom=bool(desc.get("custom", is_custom_object(name))),
        namespace_prefix=namespace_of(name) if is_custom_object(name) else None,
        label=desc.get("label"),
        fields=tuple(parse_field(f) for f in (desc.get("fields") or [])),
        child_relationships=kids,
    )


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() == "true"


def parse_custom_object_metadata(record: Dict[str, Any]) -> CustomObjectMetadata:
    """Map a readMetadata ``CustomObject`` record onto CustomObjectMetadata."""
    fields = tuple(
        FieldMetadata(
            name=f["fullName"],
            description=f.get("description"),
            security_classification=f.get("securityClassification"),
            master_detail=f.get("type") == "MasterDetail",
        )
        for f in record.get("fields") or []
        if f.get("fullName")
    )
    rules = tuple(
        ValidationRule(
            name=v["fullName"],
            active=_flag(v.get("active"), default=True),
            description=v.get("description"),
            error_display_field=v.get("errorDisplayField"),
            error_message=v.get("errorMessage"),
            condition_formula=v.get("errorConditionFormula"),
        )
        for v in record.get("validationRules") or []
        if v.get("fullName")
    )
    return CustomObjectMetadata(name=record["fullName"], fields=fields, validation_rules=rules)


def merge_metadata(
    desc: ObjectDescriptor, meta: Optional[CustomObjectMetadata]
) -> ObjectDescriptor:
    """Overlay field descriptions, classifications and validation rules on a describe."""
    if meta is None:
        return desc
    by_name = {f.name: f for f in meta.fields}
    fields = []
    for f in desc.fields:
        m = by_name.get(f.name)
        if m is None:
            fields.append(f)
            continue
        kind = f.reference_kind
        if m.master_detail and f.reference_targets:
            kind = ReferenceKind.MASTER_DETAIL
        fields.append(
            replace(
                f,
                description=m.description or f.description,
                security_classification=m.security_classification or f.security_classification,
                reference_kind=kind,
            )
        )
    return replace(desc, fields=tuple(fields), validation_rules=meta.validation_rules)


class SchemaCatalog:
    """Thin, typed accessor over a connected ``SalesforceAPI``."""

    def __init__(self, api) -> None:
        self.api = api

    def list_custom_objects(self) -> List[CustomObjectInfo]:
        rows = self._list_metadata("CustomObject")
        return [
            CustomObjectInfo(name=r["fullName"], namespace_prefix=r.get("namespacePrefix"))
            for r in rows
            if r.get("fullName")
        ]

    def list_custom_fields(self) -> List[CustomFieldInfo]:
        rows = self._list_metadata("CustomField")
        return [
            CustomFieldInfo(
                name=r["fullName"],
                file_path=r.get("fileName") or "",
                namespace_prefix=r.get("namespacePrefix"),
            )
            for r in rows
            if r.get("fullName")
        ]

    def list_managed_objects(self) -> Set[str]:
        return set(managed_object_map(self.list_custom_objects()))

    def read_custom_objects(self, names: Iterable[str]) -> Dict[str, CustomObjectMetadata]:
        """readMetadata(CustomObject) for every name; unknown names are left out."""
        names = list(names)
        if not names:
            return {}
        try:
            records = self.api.read_metadata("CustomObject", names)
        except requests.RequestException as e:
            raise CatalogUnavailable("readMetadata(CustomObject)", str(e)) from e
        result = {}
        for r in records:
            meta = parse_custom_object_metadata(r)
            result[meta.name] = meta
        _logger.debug("readMetadata(CustomObject): %d of %d objects", len(result), len(names))
        return result

    def describe_object(self, name: str) -> ObjectDescriptor:
        _logger.debug("describe %s", name)
        try:
            raw = self.api.describe_object(name)
        except requests.RequestException as e:
            raise ObjectDescribeFailed(name, str(e)) from e
        return parse_describe(name, raw)

    def count_rows(self, name: str) -> int:
        try:
            return self.api.count_rows(name)
        except (requests.RequestException, ValueError) as e:
            raise RowCountFailed(name, str(e)) from e

    def _list_metadata(self, metadata_type: str) -> List[Dict[str, Optional[str]]]:
        try:
            rows = self.api.list_metadata(metadata_type)
        except requests.RequestException as e:
            raise CatalogUnavailable(f"listMetadata({metadata_type})", str(e)) from e
        _logger.debug("listMetadata(%s): %d entries", metadata_type, len(rows))
        return rows

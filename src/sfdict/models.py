"""
Typed shapes for schema metadata.

Raw describe / listMetadata payloads are mapped into these at the catalog
boundary (see ``sfdict.catalog``); the crawler and resolvers only ever see
these dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

CUSTOM_SUFFIX = "__c"


class ReferenceKind(str, Enum):
    NONE = "None"
    LOOKUP = "Lookup"
    MASTER_DETAIL = "MasterDetail"


@dataclass(frozen=True)
class PicklistValue:
    value: str
    label: Optional[str] = None
    active: bool = True


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    is_custom: bool = False
    reference_kind: ReferenceKind = ReferenceKind.NONE
    reference_targets: Tuple[str, ...] = ()

    # Presentation attributes, consumed by the renderers only
    label: Optional[str] = None
    type: str = "string"
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    nillable: bool = True
    updateable: bool = False
    unique: bool = False
    external_id: bool = False
    formula: Optional[str] = None
    help_text: Optional[str] = None
    description: Optional[str] = None
    security_classification: Optional[str] = None
    picklist_values: Tuple[PicklistValue, ...] = ()

    @property
    def is_reference(self) -> bool:
        return self.reference_kind is not ReferenceKind.NONE

    @property
    def primary_target(self) -> Optional[str]:
        return self.reference_targets[0] if self.reference_targets else None


@dataclass(frozen=True)
class ChildRelationship:
    child_object_name: str
    cascade_delete: bool = False
    field: Optional[str] = None
    relationship_name: Optional[str] = None


@dataclass(frozen=True)
class ValidationRule:
    name: str
    active: bool = True
    description: Optional[str] = None
    error_display_field: Optional[str] = None
    error_message: Optional[str] = None
    condition_formula: Optional[str] = None


@dataclass(frozen=True)
class ObjectDescriptor:
    name: str
    is_custom: bool = False
    namespace_prefix: Optional[str] = None
    label: Optional[str] = None
    fields: Tuple[FieldDescriptor, ...] = ()
    child_relationships: Tuple[ChildRelationship, ...] = ()
    validation_rules: Tuple[ValidationRule, ...] = ()

    @property
    def is_managed(self) -> bool:
        return bool(self.namespace_prefix)


@dataclass(frozen=True)
class CustomObjectInfo:
    """One ``CustomObject`` entry from listMetadata."""

    name: str
    namespace_prefix: Optional[str] = None


@dataclass(frozen=True)
class CustomFieldInfo:
    """One ``CustomField`` entry from listMetadata.

    ``name`` is the full name (``Contact.Foo__c``) and ``file_path`` the
    containing file (``objects/Contact.object``).
    """

    name: str
    file_path: str
    namespace_prefix: Optional[str] = None


@dataclass(frozen=True)
class FieldMetadata:
    """Field attributes only the Metadata API knows about."""

    name: str
    description: Optional[str] = None
    security_classification: Optional[str] = None
    master_detail: bool = False


@dataclass(frozen=True)
class CustomObjectMetadata:
    """One ``CustomObject`` record from readMetadata."""

    name: str
    fields: Tuple[FieldMetadata, ...] = ()
    validation_rules: Tuple[ValidationRule, ...] = ()


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    profile_id: str
    assigned_permission_set_ids: Tuple[str, ...] = ()


@dataclass
class PermissionContext:
    profile_id: str
    profile_permission_set_id: str
    assigned_permission_set_ids: list[str] = field(default_factory=list)

    def authority_set(self) -> list[str]:
        """Profile's implicit permission set first, then assigned sets, deduplicated."""
        ids = [self.profile_permission_set_id, *self.assigned_permission_set_ids]
        return list(dict.fromkeys(i for i in ids if i))

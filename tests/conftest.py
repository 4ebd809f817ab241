import threading

import pytest

from sfdict.exceptions import ObjectDescribeFailed, RowCountFailed, UserNotFound
from sfdict.models import (
    ChildRelationship,
    CustomFieldInfo,
    CustomObjectInfo,
    FieldDescriptor,
    ObjectDescriptor,
    ReferenceKind,
    UserRecord,
)


def build_object(name, *, lookups=(), master_details=(), std_lookups=(), children=(), fields=()):
    """ObjectDescriptor with custom lookups/master-details and child relationships."""
    descs = list(fields)
    for target in lookups:
        descs.append(
            FieldDescriptor(
                name=f"{target.replace('__c', '')}_Ref__c",
                is_custom=True,
                reference_kind=ReferenceKind.LOOKUP,
                reference_targets=(target,),
                type="reference",
            )
        )
    for target in master_details:
        descs.append(
            FieldDescriptor(
                name=f"{target.replace('__c', '')}_Master__c",
                is_custom=True,
                reference_kind=ReferenceKind.MASTER_DETAIL,
                reference_targets=(target,),
                type="reference",
            )
        )
    for target in std_lookups:
        # standard (non-custom) reference field, e.g. OwnerId
        descs.append(
            FieldDescriptor(
                name=f"{target}Id",
                is_custom=False,
                reference_kind=ReferenceKind.LOOKUP,
                reference_targets=(target,),
                type="reference",
            )
        )
    return ObjectDescriptor(
        name=name,
        is_custom=name.endswith("__c"),
        fields=tuple(descs),
        child_relationships=tuple(ChildRelationship(child_object_name=c) for c in children),
    )


class FakeCatalog:
    """In-memory SchemaCatalog stand-in that records every describe call."""

    def __init__(
        self, objects=(), custom_objects=(), custom_fields=(), counts=None, metadata=None
    ):
        self.objects = {o.name: o for o in objects}
        self.custom_objects = [
            o if isinstance(o, CustomObjectInfo) else CustomObjectInfo(*o) for o in custom_objects
        ]
        self.custom_fields = [
            f if isinstance(f, CustomFieldInfo) else CustomFieldInfo(*f) for f in custom_fields
        ]
        self.counts = counts or {}
        self.metadata = {m.name: m for m in (metadata or ())}
        self.listed = []
        self.read = []
        self.described = []
        self.counted = []
        self._lock = threading.Lock()

    def list_custom_objects(self):
        self.listed.append("CustomObject")
        return list(self.custom_objects)

    def list_custom_fields(self):
        self.listed.append("CustomField")
        return list(self.custom_fields)

    def read_custom_objects(self, names):
        names = list(names)
        self.read.append(names)
        return {n: self.metadata[n] for n in names if n in self.metadata}

    def list_managed_objects(self):
        return {o.name for o in self.list_custom_objects() if o.namespace_prefix}

    def describe_object(self, name):
        with self._lock:
            self.described.append(name)
        if name not in self.objects:
            raise ObjectDescribeFailed(name, "NOT_FOUND")
        return self.objects[name]

    def count_rows(self, name):
        with self._lock:
            self.counted.append(name)
        if name not in self.counts:
            raise RowCountFailed(name, "INVALID_TYPE")
        return self.counts[name]


class FakeDirectory:
    """Identity service stand-in: users, profile permission sets and grants per set."""

    def __init__(self, users=None, profile_sets=None, grants=None):
        self.users = users or {}
        self.profile_sets = profile_sets or {}
        self.grants = grants or {}
        self.queried_ids = []

    def find_user_by_username(self, username):
        if username not in self.users:
            raise UserNotFound(username)
        return self.users[username]

    def find_implicit_permission_set_for_profile(self, profile_id):
        return self.profile_sets[profile_id]

    def query_object_read_permissions(self, permission_set_ids):
        ids = list(permission_set_ids)
        self.queried_ids.append(ids)
        readable = set()
        for i in ids:
            readable |= set(self.grants.get(i, ()))
        return readable


@pytest.fixture
def make_object():
    return build_object


@pytest.fixture
def make_catalog():
    return FakeCatalog


@pytest.fixture
def make_directory():
    return FakeDirectory


@pytest.fixture
def user_record():
    return UserRecord

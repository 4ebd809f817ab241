"""
Identity / permission lookups backed by SOQL.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Set

import requests

from .exceptions import CatalogUnavailable, SchemaResolutionError, UserNotFound
from .models import UserRecord

_logger = logging.getLogger(__name__)

# Keeps the IN (...) clause well under the GET query-string limit
_IDS_PER_QUERY = 200


def soql_quote(value: str) -> str:
    """Quote a value as a SOQL string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


class PermissionDirectory:
    def __init__(self, api) -> None:
        self.api = api

    def find_user_by_username(self, username: str) -> UserRecord:
        soql = (
            "SELECT Id, ProfileId, "
            "(SELECT PermissionSetId FROM PermissionSetAssignments) "
            f"FROM User WHERE Username = {soql_quote(username)}"
        )
        records = self._records(soql, "user lookup")
        if len(records) != 1:
            raise UserNotFound(username, len(records))

        user = records[0]
        assignments = (user.get("PermissionSetAssignments") or {}).get("records") or []
        return UserRecord(
            user_id=user.get("Id") or "",
            profile_id=user.get("ProfileId") or "",
            assigned_permission_set_ids=tuple(
                a["PermissionSetId"] for a in assignments if a.get("PermissionSetId")
            ),
        )

    def find_implicit_permission_set_for_profile(self, profile_id: str) -> str:
        soql = f"SELECT Id FROM PermissionSet WHERE ProfileId = {soql_quote(profile_id)}"
        records = self._records(soql, "profile permission set lookup")
        if not records:
            raise SchemaResolutionError(f"No permission set is owned by profile {profile_id!r}")
        return records[0]["Id"]

    def query_object_read_permissions(self, permission_set_ids: Iterable[str]) -> Set[str]:
        ids = list(dict.fromkeys(permission_set_ids))
        readable: Set[str] = set()
        for chunk in _chunks(ids, _IDS_PER_QUERY):
            in_clause = ", ".join(soql_quote(i) for i in chunk)
            soql = (
                "SELECT SobjectType FROM ObjectPermissions "
                f"WHERE ParentId IN ({in_clause}) AND PermissionsRead = true"
            )
            readable.update(
                r["SobjectType"] for r in self._records(soql, "object permissions")
                if r.get("SobjectType")
            )
        _logger.debug("%d permission sets grant read on %d objects", len(ids), len(readable))
        return readable

    def _records(self, soql: str, operation: str) -> List[dict]:
        try:
            return list(self.api.query_all_iter(soql))
        except requests.RequestException as e:
            raise CatalogUnavailable(operation, str(e)) from e

from __future__ import annotations

import logging
from typing import AbstractSet, Collection, Mapping, Optional, Set

from .filters import (
    filter_managed,
    is_custom_object,
    managed_object_map,
    standard_objects_with_custom_fields,
)
from .models import PermissionContext

_logger = logging.getLogger(__name__)


class PermissionResolver:
    """Objects a user can read through their profile and permission sets."""

    def __init__(self, catalog, directory) -> None:
        self.catalog = catalog
        self.directory = directory

    def permission_context(self, username: str) -> PermissionContext:
        user = self.directory.find_user_by_username(username)
        # Profile object permissions only show up through the profile's own permission set
        profile_ps = self.directory.find_implicit_permission_set_for_profile(user.profile_id)
        return PermissionContext(
            profile_id=user.profile_id,
            profile_permission_set_id=profile_ps,
            assigned_permission_set_ids=list(user.assigned_permission_set_ids),
        )

    def resolve_readable_objects(
        self,
        username: str,
        *,
        include_managed: bool = False,
        exclude_managed_prefixes: Optional[Collection[str]] = None,
        managed: Optional[Mapping[str, str]] = None,
        standard_with_custom_fields: Optional[AbstractSet[str]] = None,
    ) -> Set[str]:
        """Custom and standard-with-custom-fields objects the user can read.

        ``managed`` (name -> namespace prefix) and ``standard_with_custom_fields``
        are listed from the catalog unless already supplied.
        """
        ctx = self.permission_context(username)
        authority = ctx.authority_set()
        _logger.info(
            "Resolving read access for %s across %d permission sets", username, len(authority)
        )

        readable = self.directory.query_object_read_permissions(authority)
        if standard_with_custom_fields is None:
            standard_with_custom_fields = standard_objects_with_custom_fields(
                self.catalog.list_custom_fields()
            )
        relevant = {
            o for o in readable if is_custom_object(o) or o in standard_with_custom_fields
        }
        _logger.debug(
            "%d readable objects, %d custom or standard-with-custom-fields",
            len(readable),
            len(relevant),
        )

        if managed is None:
            managed = managed_object_map(self.catalog.list_custom_objects())
        return filter_managed(relevant, managed, include_managed, exclude_managed_prefixes)

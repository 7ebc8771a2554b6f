"""
In-Memory Storage Implementation

Keeps groups in a dict. Used by the tests and for local runs without
Google credentials. Groups are deep-copied on the way in and out so
callers can never mutate stored state behind the storage's back.
"""

from typing import Optional

from splitledger.models.ledger import Group
from splitledger.services.storage.interface import (
    DuplicateError,
    GroupStorageInterface,
    NotFoundError,
)


class InMemoryGroupStorage(GroupStorageInterface):
    """Dict-backed group storage."""

    def __init__(self):
        self._groups: dict[str, Group] = {}

    async def save_group(self, group: Group) -> bool:
        if group.id in self._groups:
            raise DuplicateError(f"Group already exists: {group.id}")
        self._groups[group.id] = group.model_copy(deep=True)
        return True

    async def get_group(self, group_id: str) -> Optional[Group]:
        group = self._groups.get(group_id)
        return group.model_copy(deep=True) if group else None

    async def update_group(self, group: Group) -> bool:
        if group.id not in self._groups:
            raise NotFoundError(f"Group not found: {group.id}")
        self._groups[group.id] = group.model_copy(deep=True)
        return True

    async def delete_group(self, group_id: str) -> bool:
        return self._groups.pop(group_id, None) is not None

    async def list_groups(
        self,
        created_by: Optional[str] = None,
        member_email: Optional[str] = None,
    ) -> list[Group]:
        groups = []
        for group in self._groups.values():
            if created_by and group.created_by != created_by:
                continue
            if member_email and member_email.lower() not in (
                email.lower() for email in group.member_emails
            ):
                continue
            groups.append(group.model_copy(deep=True))

        groups.sort(key=lambda g: g.created_at, reverse=True)
        return groups

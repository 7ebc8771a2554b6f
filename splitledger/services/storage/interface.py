"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the balance engine free of network concerns
2. Use in-memory storage for testing
3. Swap Google Sheets for a document database later
4. Leave refresh timing and retries to the backend

A group is stored as one document: its members and transactions travel
with it, so every read hands the engine a consistent snapshot.
Concurrent writers are resolved by the backend (last writer wins).
"""

from abc import ABC, abstractmethod
from typing import Optional

from splitledger.models.ledger import Group


class GroupStorageInterface(ABC):
    """
    Abstract interface for group storage operations.

    Any storage implementation (Google Sheets, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_group(self, group: Group) -> bool:
        """
        Save a new group.

        Args:
            group: The group to save

        Returns:
            True if saved successfully

        Raises:
            DuplicateError: If a group with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_group(self, group_id: str) -> Optional[Group]:
        """
        Retrieve a group, including its members and transactions.

        Args:
            group_id: The group's unique identifier

        Returns:
            The group if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_group(self, group: Group) -> bool:
        """
        Replace a stored group with this version.

        Args:
            group: The group with updated fields

        Returns:
            True if updated successfully

        Raises:
            NotFoundError: If the group doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_group(self, group_id: str) -> bool:
        """
        Delete a group by ID.

        Args:
            group_id: The group's unique identifier

        Returns:
            True if deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def list_groups(
        self,
        created_by: Optional[str] = None,
        member_email: Optional[str] = None,
    ) -> list[Group]:
        """
        List groups with optional filters.

        Args:
            created_by: Only groups created by this account
            member_email: Only groups with a member using this email

        Returns:
            Matching groups, newest first
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass

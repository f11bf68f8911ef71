"""Shared exceptions for service layer operations."""
from uuid import UUID


class EntityNotFoundError(Exception):
    """
    Raised when an entity does not exist or is not visible to the user.

    Rows owned by another user are reported the same way as missing rows so
    that ids cannot be probed across accounts.
    """

    def __init__(self, entity_name: str, entity_id: UUID) -> None:
        self.entity_name = entity_name
        self.entity_id = entity_id
        super().__init__(f"{entity_name} '{entity_id}' not found")


class FolderNotFoundError(EntityNotFoundError):
    """Raised when a bookmark references a folder the user does not own."""

    def __init__(self, folder_id: UUID) -> None:
        super().__init__("Folder", folder_id)


class TagNotFoundError(EntityNotFoundError):
    """Raised when an association references a tag the user does not own."""

    def __init__(self, tag_id: UUID) -> None:
        super().__init__("Tag", tag_id)


class DuplicateNameError(Exception):
    """Raised when a folder or tag name is already used by the same user."""

    def __init__(self, entity_name: str, name: str) -> None:
        self.entity_name = entity_name
        self.name = name
        super().__init__(f"{entity_name} '{name}' already exists")

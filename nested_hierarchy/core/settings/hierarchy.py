"""Nested set column naming and locking settings.

Environment variables use HIERARCHY_ prefix.
Example: HIERARCHY_LEFT_COLUMN=lft, HIERARCHY_SCOPE_COLUMN=tenant_id
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nested_hierarchy.core.database.validation import validate_identifier


class HierarchySettings(BaseSettings):
    """Default attribute names for nested set models.

    These names are the ORM attribute names of the mapped columns. A model
    may override them by pinning its own ``__hierarchy__`` schema.

    Attributes:
        id_column: Primary identifier attribute.
        root_column: Attribute holding the id of the tree's root.
        parent_column: Attribute holding the id of the direct parent.
        left_column: Left interval boundary.
        right_column: Right interval boundary.
        depth_column: Distance from the tree's root.
        scope_column: Optional partition attribute (e.g. a tenant id).
        lock_trees: Serialize mutations per tree with in-process locks.
    """

    id_column: str = Field(default="id", description="Primary identifier attribute")
    root_column: str = Field(default="root_id", description="Tree root attribute")
    parent_column: str = Field(default="parent_id", description="Direct parent attribute")
    left_column: str = Field(default="lft", description="Left boundary attribute")
    right_column: str = Field(default="rgt", description="Right boundary attribute")
    depth_column: str = Field(default="depth", description="Depth attribute")
    scope_column: str | None = Field(
        default=None,
        description="Partition attribute; None means the whole table is one forest",
    )
    lock_trees: bool = Field(
        default=True,
        description="Serialize attach/detach/prune per (root, scope) within this process",
    )

    @field_validator(
        "id_column",
        "root_column",
        "parent_column",
        "left_column",
        "right_column",
        "depth_column",
        "scope_column",
    )
    @classmethod
    def check_identifier(cls, v: str | None) -> str | None:
        """Reject names that could not be ORM attribute names."""
        if v is None:
            return v
        return validate_identifier(v)

    model_config = SettingsConfigDict(
        env_prefix="HIERARCHY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

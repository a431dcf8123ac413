"""Database models."""

from nested_hierarchy.core.models.category import Category

__all__ = ["Category"]

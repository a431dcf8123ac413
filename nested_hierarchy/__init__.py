"""Nested set trees on SQLAlchemy models."""

__version__ = "0.1.0"

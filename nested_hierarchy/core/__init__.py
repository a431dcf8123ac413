"""Core package: database layer, models and settings."""

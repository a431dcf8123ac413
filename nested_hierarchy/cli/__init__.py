"""Management CLI for nested-hierarchy."""

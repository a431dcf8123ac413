"""Attribute name validation for hierarchy schemas.

Schema names end up in ``getattr(model, name)`` lookups and in settings read
from the environment, so they are checked once at configuration time.

Example:
    from nested_hierarchy.core.database.validation import validate_identifier

    validate_identifier("lft")           # 'lft'
    validate_identifier("left; DROP")    # raises IdentifierValidationError
"""

from __future__ import annotations

import keyword
import re

VALID_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
MAX_IDENTIFIER_LENGTH = 63


class IdentifierValidationError(ValueError):
    """Invalid attribute or column identifier."""


def validate_identifier(name: str, *, identifier_type: str = "attribute") -> str:
    """Validate a column attribute name.

    Args:
        name: The identifier to validate
        identifier_type: Type description for error messages

    Returns:
        The validated identifier (unchanged if valid)

    Raises:
        IdentifierValidationError: If the identifier is invalid
    """
    if not name:
        msg = f"Empty {identifier_type} name not allowed"
        raise IdentifierValidationError(msg)

    if len(name) > MAX_IDENTIFIER_LENGTH:
        msg = f"{identifier_type} name exceeds maximum length of {MAX_IDENTIFIER_LENGTH}"
        raise IdentifierValidationError(msg)

    if not VALID_IDENTIFIER.match(name):
        msg = (
            f"Invalid {identifier_type} name {name!r}: must start with letter or underscore, "
            "contain only letters, digits, or underscores"
        )
        raise IdentifierValidationError(msg)

    if keyword.iskeyword(name):
        msg = f"{identifier_type} name {name!r} is a Python keyword"
        raise IdentifierValidationError(msg)

    return name


__all__ = [
    "IdentifierValidationError",
    "validate_identifier",
]

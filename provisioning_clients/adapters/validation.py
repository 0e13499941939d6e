"""
Argument checks run before any cache access or I/O.
"""

from collections.abc import Mapping
from typing import Any

from shared.errors import ValidationError


def require(**arguments: Any) -> None:
    """Raise ``ValidationError`` naming the first missing argument."""
    for name, value in arguments.items():
        if value is None or value == "":
            raise ValidationError(f"{name} is required", details={"argument": name})


def require_mapping(name: str, value: Any) -> None:
    if not isinstance(value, Mapping):
        raise ValidationError(f"{name} is required (object)", details={"argument": name})

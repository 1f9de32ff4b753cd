"""
Type checks for values arriving from the request layer.

Request bodies are decoded JSON, so a field can hold any JSON type.
These helpers turn a wrong type into a ValidationError naming the field.
"""

from typing import Any, Dict, Mapping, Optional

from .exceptions import ValidationError


def clean_text(value: Any, field: str) -> str:
    """Return ``value`` stripped; ``None`` becomes an empty string."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    return value.strip()


def clean_optional_text(value: Any, field: str) -> Optional[str]:
    return clean_text(value, field) or None


def clean_mapping(value: Any, field: str) -> Dict[str, Any]:
    """Return a plain dict copy of ``value``; ``None`` becomes ``{}``."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError(f"{field} must be an object", field=field)
    return dict(value)

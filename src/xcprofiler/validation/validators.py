"""
Argument and configuration validation functions.

Validators return the normalized value or raise ValidationError naming the
offending field.
"""

from typing import Any, Dict, Iterable, List, Optional

from .exceptions import ValidationError

# Template short names accepted by the profiling tools.
VALID_TEMPLATES = ("time", "allocations", "leaks")


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is a positive integer.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a number within the given bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated float value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_non_empty_string(value: Any, field_name: str = "value") -> str:
    """Validate that a value is a string with at least one non-blank character."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=value
        )
    return value


def validate_string_list(value: Any, field_name: str = "value") -> List[str]:
    """Validate that a value is a list of strings."""
    if not isinstance(value, (list, tuple)):
        raise ValidationError(
            f"{field_name} must be a list of strings",
            field_name=field_name,
            value=value
        )
    for item in value:
        if not isinstance(item, str):
            raise ValidationError(
                f"{field_name} must contain only strings, got {item!r}",
                field_name=field_name,
                value=value
            )
    return list(value)


def validate_templates(
    templates: Iterable[Any],
    field_name: str = "templates"
) -> List[str]:
    """
    Validate template short names.

    Duplicates are dropped while keeping the first occurrence, so the result is
    an ordered set.

    Raises:
        ValidationError: If the list is empty or contains an unknown template
    """
    items = validate_string_list(templates, field_name=field_name)
    if not items:
        raise ValidationError(
            "At least one template must be specified",
            field_name=field_name,
            value=templates
        )

    result: List[str] = []
    for name in items:
        if name not in VALID_TEMPLATES:
            raise ValidationError(
                f"Template must be one of: {', '.join(VALID_TEMPLATES)} (got '{name}')",
                field_name=field_name,
                value=templates
            )
        if name not in result:
            result.append(name)
    return result


def validate_env_vars(value: Any, field_name: str = "env_vars") -> Dict[str, str]:
    """Validate an environment mapping of string keys to string values."""
    if not isinstance(value, dict):
        raise ValidationError(
            f"{field_name} must be an object mapping names to string values",
            field_name=field_name,
            value=value
        )
    for key, item in value.items():
        if not isinstance(key, str) or not key or "=" in key:
            raise ValidationError(
                f"{field_name} has an invalid variable name: {key!r}",
                field_name=field_name,
                value=value
            )
        if not isinstance(item, str):
            raise ValidationError(
                f"{field_name}['{key}'] must be a string",
                field_name=field_name,
                value=value
            )
    return dict(value)

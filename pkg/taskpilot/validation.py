"""
Input validation for workspace operations.

Runs before any mutator: a rejected input never touches the document.
"""
import re
from typing import Any, Dict

from .schema import (
    MAX_QUICK_POINTS,
    MIN_QUICK_POINTS,
    ProjectStatus,
    TaskPriority,
    TaskStatus,
)


class ValidationError(Exception):
    """Raised when operation input fails validation."""
    pass


class ParamValidator:
    """
    Validates and coerces input fields against a schema.

    Supports:
        - required / optional with defaults
        - types: string, integer, boolean, list
        - allowed-value lists
        - regex pattern matching
        - min/max bounds for integers
        - rejection of unknown fields
        - non-nullable fields (explicit null rejected)
    """

    def validate(self, params: Dict[str, Any], schema: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Validate and coerce params against schema.

        Returns:
            dict of validated, coerced fields (only those supplied or defaulted).

        Raises:
            ValidationError with a readable message on failure.
        """
        result = {}

        for name, field_schema in schema.items():
            value = params.get(name)
            field_type = field_schema.get("type", "string")
            required = field_schema.get("required", False)
            default = field_schema.get("default")

            # ── Missing value handling ──
            if value is None:
                if required:
                    raise ValidationError(f"Missing required field: {name}")
                if name in params:
                    if field_schema.get("nullable", True) is False:
                        raise ValidationError(f"Field {name} cannot be null")
                    # Explicit null clears an optional field
                    result[name] = None
                elif default is not None:
                    result[name] = default
                continue
            if required and isinstance(value, str) and not value.strip():
                raise ValidationError(f"Missing required field: {name}")

            # ── Type: string ──
            if field_type == "string":
                if not isinstance(value, str):
                    raise ValidationError(f"Field {name} must be a string")
                if field_schema.get("strip"):
                    value = value.strip()

                allowed = field_schema.get("allowed")
                if allowed and value not in allowed:
                    raise ValidationError(
                        f"Invalid value for {name}: '{value}'. "
                        f"Allowed: {', '.join(str(a) for a in allowed)}"
                    )

                pattern = field_schema.get("pattern")
                if pattern and not re.fullmatch(pattern, value):
                    raise ValidationError(
                        f"Invalid format for {name}: '{value}' does not match pattern {pattern}"
                    )

            # ── Type: integer ──
            elif field_type == "integer":
                if isinstance(value, bool):
                    raise ValidationError(f"Field {name} must be an integer, got: {value!r}")
                try:
                    value = int(value)
                except (ValueError, TypeError):
                    raise ValidationError(f"Field {name} must be an integer, got: {value!r}")

                min_val = field_schema.get("min")
                max_val = field_schema.get("max")
                if min_val is not None and value < min_val:
                    raise ValidationError(f"Field {name} must be >= {min_val}, got: {value}")
                if max_val is not None and value > max_val:
                    raise ValidationError(f"Field {name} must be <= {max_val}, got: {value}")

            elif field_type == "boolean":
                if not isinstance(value, bool):
                    raise ValidationError(f"Field {name} must be true or false")

            elif field_type == "list":
                if not isinstance(value, list):
                    raise ValidationError(f"Field {name} must be a list")

            else:
                raise ValidationError(f"Unknown field type in schema: {field_type}")

            result[name] = value

        # ── Reject unknown fields ──
        unknown = set(params.keys()) - set(schema.keys())
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        return result


_validator = ParamValidator()


def validate(params: Dict[str, Any], schema: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    return _validator.validate(params, schema)


# ── Schemas ──────────────────────────────────────────────────────────────────

PROJECT_STATUSES = [s.value for s in ProjectStatus]
TASK_STATUSES = [s.value for s in TaskStatus]
TASK_PRIORITIES = [p.value for p in TaskPriority]

PROJECT_CREATE = {
    "name": {"type": "string", "required": True, "strip": True},
    "description": {"type": "string"},
    "status": {"type": "string", "allowed": PROJECT_STATUSES},
    "priority": {"type": "integer", "min": 0},
    "categoryId": {"type": "string"},
    "categoryIds": {"type": "list"},
}

PROJECT_UPDATE = dict(PROJECT_CREATE, name={"type": "string", "strip": True}, notes={"type": "list"})

TASK_CREATE = {
    "projectId": {"type": "string", "required": True},
    "title": {"type": "string", "required": True, "strip": True},
    "description": {"type": "string"},
    "status": {"type": "string", "allowed": TASK_STATUSES},
    "priority": {"type": "string", "allowed": TASK_PRIORITIES},
    "deadline": {"type": "string"},
    "link": {"type": "string", "strip": True},
    "subtasks": {"type": "list"},
    # Accepted for compatibility; always recomputed from subtasks
    "storyPoints": {"type": "integer"},
}

TASK_UPDATE = dict(
    TASK_CREATE,
    projectId={"type": "string"},
    title={"type": "string", "strip": True},
    logs={"type": "list"},
)

QUICK_TASK_CREATE = {
    "projectId": {"type": "string", "required": True},
    "title": {"type": "string", "strip": True},
    "description": {"type": "string"},
    "points": {"type": "integer", "min": MIN_QUICK_POINTS, "max": MAX_QUICK_POINTS},
    "priority": {"type": "string", "allowed": TASK_PRIORITIES},
    "status": {"type": "string", "allowed": TASK_STATUSES},
    "link": {"type": "string", "strip": True},
}

QUICK_TASK_UPDATE = dict(QUICK_TASK_CREATE, projectId={"type": "string"}, isDone={"type": "boolean"})

SUBTASK_UPDATE = {
    "title": {"type": "string", "strip": True, "nullable": False},
    "isCompleted": {"type": "boolean", "nullable": False},
    "storyPoints": {"type": "integer", "min": 0, "nullable": False},
}

CATEGORY = {
    "name": {"type": "string", "strip": True},
    "color": {"type": "string", "pattern": r"#[0-9A-Fa-f]{6}"},
}


def require_text(value: Any, name: str) -> str:
    """Trimmed non-empty string, or ValidationError."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing required field: {name}")
    return value.strip()

"""
Tests for ParamValidator and the operation schemas.
"""
import pytest

from pkg.taskpilot.validation import (
    CATEGORY,
    PROJECT_CREATE,
    QUICK_TASK_CREATE,
    TASK_CREATE,
    ParamValidator,
    ValidationError,
    require_text,
    validate,
)


class TestParamValidator:

    def setup_method(self):
        self.v = ParamValidator()

    def test_required_missing(self):
        with pytest.raises(ValidationError, match="Missing required field: name"):
            self.v.validate({}, {"name": {"type": "string", "required": True}})

    def test_required_blank_string(self):
        with pytest.raises(ValidationError):
            self.v.validate({"name": "  "}, {"name": {"type": "string", "required": True}})

    def test_default_applied(self):
        result = self.v.validate({}, {"n": {"type": "integer", "default": 3}})
        assert result == {"n": 3}

    def test_explicit_null_kept(self):
        result = self.v.validate({"deadline": None}, {"deadline": {"type": "string"}})
        assert result == {"deadline": None}

    def test_strip(self):
        result = self.v.validate({"t": "  x "}, {"t": {"type": "string", "strip": True}})
        assert result["t"] == "x"

    def test_allowed_values(self):
        schema = {"s": {"type": "string", "allowed": ["a", "b"]}}
        assert self.v.validate({"s": "a"}, schema) == {"s": "a"}
        with pytest.raises(ValidationError, match="Allowed: a, b"):
            self.v.validate({"s": "c"}, schema)

    def test_pattern(self):
        with pytest.raises(ValidationError):
            self.v.validate({"color": "#12345G"}, CATEGORY)
        assert self.v.validate({"color": "#12345f"}, CATEGORY) == {"color": "#12345f"}

    def test_integer_bounds_and_coercion(self):
        schema = {"n": {"type": "integer", "min": 1, "max": 5}}
        assert self.v.validate({"n": "4"}, schema) == {"n": 4}
        with pytest.raises(ValidationError):
            self.v.validate({"n": 6}, schema)
        with pytest.raises(ValidationError):
            self.v.validate({"n": 0}, schema)
        with pytest.raises(ValidationError):
            self.v.validate({"n": True}, schema)

    def test_boolean_and_list(self):
        schema = {"b": {"type": "boolean"}, "l": {"type": "list"}}
        assert self.v.validate({"b": False, "l": []}, schema) == {"b": False, "l": []}
        with pytest.raises(ValidationError):
            self.v.validate({"b": "yes"}, schema)
        with pytest.raises(ValidationError):
            self.v.validate({"l": "a,b"}, schema)

    def test_non_nullable_field(self):
        schema = {"n": {"type": "integer", "nullable": False}}
        with pytest.raises(ValidationError, match="Field n cannot be null"):
            self.v.validate({"n": None}, schema)
        assert self.v.validate({}, schema) == {}

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError, match="Unknown fields: extra"):
            self.v.validate({"extra": 1}, {})


def test_project_schema():
    assert validate({"name": " Demo "}, PROJECT_CREATE) == {"name": "Demo"}


def test_task_schema_accepts_story_points():
    result = validate({"projectId": "p", "title": "t", "storyPoints": 3}, TASK_CREATE)
    assert result["storyPoints"] == 3


def test_quick_task_schema_bounds():
    with pytest.raises(ValidationError):
        validate({"projectId": "p", "points": 0}, QUICK_TASK_CREATE)


def test_require_text():
    assert require_text("  hi ", "x") == "hi"
    with pytest.raises(ValidationError):
        require_text(None, "x")
